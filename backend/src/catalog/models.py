from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import CheckConstraint, Date, DateTime, ForeignKey, Index, Integer, Numeric, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from src.db.main import Base


class Product(Base):
    """
    Product model: the canonical catalog entry voice lines are matched against.
    Maintained by catalog administration; the voice pipeline only reads it.

    Attributes:
        id: Primary key (auto-incremented)
        name: Canonical product name (unique case-insensitively) (not nullable)
        default_unit: Canonical unit used when a spoken line has none (nullable)
        created_at: Timestamp of creation (not nullable, server default now())
        updated_at: Timestamp of last update (not nullable, server default now(), onupdate=now())
        aliases: Alternate names (back-populates 'product')
        price_records: Append-only price history (back-populates 'product')
    """
    __tablename__ = 'products'

    __table_args__ = (
        Index('uq_products_name_lower', text('lower(name)'), unique=True),
        {'comment': 'Product catalog used by voice reconciliation'}
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    default_unit: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
    aliases: Mapped[List['ProductAlias']] = relationship('ProductAlias', back_populates='product', cascade='all, delete-orphan')
    price_records: Mapped[List['PriceRecord']] = relationship('PriceRecord', back_populates='product', cascade='all, delete-orphan')


class ProductAlias(Base):
    """
    Alternate spoken or written name of a product ("आलू", "batata" for Aloo).

    Attributes:
        id: Primary key (auto-incremented)
        product_id: Foreign key to product (not nullable, indexed)
        alias: Alias text (not nullable)
        locale: Language code of the alias (nullable)
        created_at: Timestamp of creation (not nullable, server default now())
    """
    __tablename__ = 'product_aliases'

    __table_args__ = (
        Index('idx_product_aliases_product_id', 'product_id'),
        Index('idx_product_aliases_alias_lower', text('lower(alias)')),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    product_id: Mapped[int] = mapped_column(Integer, ForeignKey('products.id', ondelete='CASCADE'), nullable=False)
    alias: Mapped[str] = mapped_column(Text, nullable=False)
    locale: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    product: Mapped['Product'] = relationship('Product', back_populates='aliases')


class PriceRecord(Base):
    """
    One price of a product, effective from a date. Append-only: a new price
    is a new row. The current price is the row with the latest effective_date,
    ties broken by the most recent write.

    Attributes:
        id: Primary key (auto-incremented)
        product_id: Foreign key to product (not nullable, indexed)
        price: Price per default unit (> 0)
        effective_date: Date the price applies from (not nullable)
        created_at: Timestamp of the write (not nullable, server default now())
    """
    __tablename__ = 'price_records'

    __table_args__ = (
        CheckConstraint('price > 0', name='check_price_records_price_positive'),
        Index('idx_price_records_product_effective', 'product_id', 'effective_date'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    product_id: Mapped[int] = mapped_column(Integer, ForeignKey('products.id', ondelete='CASCADE'), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    effective_date: Mapped[date] = mapped_column(Date, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    product: Mapped['Product'] = relationship('Product', back_populates='price_records')
