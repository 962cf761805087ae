"""
Read-only catalog access for the Product Reconciler.

Every lookup has a single-name form and a batched form; the reconciler uses
the batched forms so a request costs a fixed number of round-trips no matter
how many lines were spoken.
"""
import logging
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence

from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.catalog.models import PriceRecord, Product, ProductAlias
from src.catalog.schemas import CatalogProduct, FuzzyCandidate
from src.matching.similarity import RatioScorer, SimilarityScorer, fold
from src.voice.exceptions import ReconciliationDataError

logger = logging.getLogger(__name__)


def _to_catalog_product(product: Product) -> CatalogProduct:
    return CatalogProduct(
        id=product.id,
        name=product.name,
        aliases=sorted(alias.alias for alias in product.aliases),
        default_unit=product.default_unit,
    )


def _names_of(product: CatalogProduct) -> List[str]:
    return [product.name, *product.aliases]


class CatalogService:
    def __init__(self, session: AsyncSession, scorer: Optional[SimilarityScorer] = None):
        self.session = session
        self.scorer = scorer or RatioScorer()

    async def find_exact_or_alias(self, name: str) -> List[CatalogProduct]:
        """Products whose name or alias equals or contains the query (case-insensitive)."""
        found = await self.find_exact_or_alias_many([name])
        return found.get(name, [])

    async def find_exact_or_alias_many(self, names: Sequence[str]) -> Dict[str, List[CatalogProduct]]:
        """
        Batched find_exact_or_alias: one query for all names.

        SQL narrows the catalog down; the final equality/containment check
        runs on folded text so results do not depend on the database collation.
        """
        queries = [name for name in dict.fromkeys(names) if fold(name)]
        if not queries:
            return {name: [] for name in names}

        lowered = [fold(name) for name in queries]
        conditions = [
            func.lower(Product.name).in_(lowered),
            Product.aliases.any(func.lower(ProductAlias.alias).in_(lowered)),
        ]
        for query in lowered:
            conditions.append(func.lower(Product.name).contains(query, autoescape=True))
            conditions.append(Product.aliases.any(func.lower(ProductAlias.alias).contains(query, autoescape=True)))

        stmt = (
            select(Product)
            .options(selectinload(Product.aliases))
            .where(or_(*conditions))
            .order_by(Product.id)
        )
        products = await self._load_products(stmt, "exact/alias lookup")

        result: Dict[str, List[CatalogProduct]] = {name: [] for name in names}
        for name in queries:
            query = fold(name)
            result[name] = [
                product for product in products
                if any(query in fold(candidate) for candidate in _names_of(product))
            ]
        return result

    async def find_fuzzy(self, name: str, limit: int = 5) -> List[FuzzyCandidate]:
        found = await self.find_fuzzy_many([name], limit)
        return found.get(name, [])

    async def find_fuzzy_many(self, names: Sequence[str], limit: int = 5) -> Dict[str, List[FuzzyCandidate]]:
        """
        Batched fuzzy lookup: loads the catalog snapshot once and scores every
        query against every name and alias.

        Candidates are ordered best first: score desc, edit distance asc,
        matched name, product id. No threshold is applied here.
        """
        if not names:
            return {}

        stmt = select(Product).options(selectinload(Product.aliases)).order_by(Product.id)
        products = await self._load_products(stmt, "fuzzy lookup")

        return {name: self._rank(name, products, limit) for name in dict.fromkeys(names)}

    def _rank(self, name: str, products: Iterable[CatalogProduct], limit: int) -> List[FuzzyCandidate]:
        ranked: List[FuzzyCandidate] = []
        for product in products:
            best: Optional[FuzzyCandidate] = None
            for candidate_name in _names_of(product):
                candidate = FuzzyCandidate(
                    product=product,
                    score=self.scorer.score(name, candidate_name),
                    matched_name=candidate_name,
                    distance=self.scorer.distance(name, candidate_name),
                )
                if best is None or _fuzzy_key(candidate) < _fuzzy_key(best):
                    best = candidate
            if best is not None:
                ranked.append(best)

        ranked.sort(key=_fuzzy_key)
        return ranked[:max(limit, 0)]

    async def get_current_price(self, product_id: int) -> Optional[Decimal]:
        prices = await self.get_current_prices([product_id])
        return prices.get(product_id)

    async def get_current_prices(self, product_ids: Iterable[int]) -> Dict[int, Decimal]:
        """
        Current price per product: latest effective_date, ties broken by the
        most recent write. Products without price records are absent.
        """
        ids = sorted(set(product_ids))
        if not ids:
            return {}

        stmt = (
            select(PriceRecord)
            .where(PriceRecord.product_id.in_(ids))
            .order_by(
                PriceRecord.product_id,
                PriceRecord.effective_date.desc(),
                PriceRecord.created_at.desc(),
                PriceRecord.id.desc(),
            )
        )
        try:
            result = await self.session.execute(stmt)
            records = result.scalars().all()
        except SQLAlchemyError as e:
            await self._reset()
            logger.error(f"Catalog price lookup failed for products {ids}: {e}", exc_info=True)
            raise ReconciliationDataError(f"Price lookup failed: {e}") from e

        prices: Dict[int, Decimal] = {}
        for record in records:
            # Rows arrive newest first per product
            prices.setdefault(record.product_id, Decimal(record.price))
        return prices

    async def _load_products(self, stmt, operation: str) -> List[CatalogProduct]:
        try:
            result = await self.session.execute(stmt)
            return [_to_catalog_product(product) for product in result.scalars().unique().all()]
        except SQLAlchemyError as e:
            await self._reset()
            logger.error(f"Catalog {operation} failed: {e}", exc_info=True)
            raise ReconciliationDataError(f"Catalog {operation} failed: {e}") from e

    async def _reset(self) -> None:
        # The pipeline never writes through this session, so a rollback only
        # clears the failed transaction for the next read.
        try:
            await self.session.rollback()
        except SQLAlchemyError as e:
            logger.warning(f"Catalog session rollback failed: {e}")


def _fuzzy_key(candidate: FuzzyCandidate):
    return (-candidate.score, candidate.distance, fold(candidate.matched_name), candidate.product.id)
