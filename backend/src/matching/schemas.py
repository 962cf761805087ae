import enum
from decimal import Decimal
from typing import Optional
from pydantic import Field

from src.common.schemas import AppResponseModel
from src.extraction.schemas import NormalizedItem


class MatchType(str, enum.Enum):
    EXACT = "exact"
    ALIAS = "alias"
    FUZZY = "fuzzy"
    NONE = "none"


class SlipLine(AppResponseModel):
    """Line handed to the slip assembler."""
    product_id: Optional[int] = None
    name: str
    qty: Decimal
    unit: Optional[str] = None
    rate: Optional[Decimal] = None
    match_type: MatchType
    match_score: int = Field(..., ge=0, le=100)
    needs_price: bool = False
    unit_needs_review: bool = False


class MatchResult(AppResponseModel):
    """
    Outcome of reconciling one NormalizedItem against the catalog.
    """
    item: NormalizedItem
    product_id: Optional[int] = Field(None, description="Matched product, null for 'none'")
    product_name: Optional[str] = Field(None, description="Canonical name of the matched product")
    default_unit: Optional[str] = Field(None, description="Matched product's default unit")
    match_type: MatchType = MatchType.NONE
    match_score: int = Field(0, ge=0, le=100)
    matched_name: Optional[str] = Field(None, description="Catalog name or alias that matched")
    resolved_rate: Optional[Decimal] = Field(None, description="Current price, else the spoken rate")
    needs_price: bool = Field(False, description="Neither a catalog price nor a spoken rate exists")
    error: Optional[str] = Field(None, description="Error tag when a catalog read failed")

    @property
    def is_matched(self) -> bool:
        return self.product_id is not None

    def to_slip_line(self) -> SlipLine:
        if self.item.unit is not None:
            unit = self.item.unit.value
        elif self.item.raw_unit:
            unit = self.item.raw_unit
        else:
            unit = self.default_unit
        return SlipLine(
            product_id=self.product_id,
            name=self.product_name or self.item.name,
            qty=self.item.quantity,
            unit=unit,
            rate=self.resolved_rate if self.resolved_rate is not None else self.item.rate,
            match_type=self.match_type,
            match_score=self.match_score,
            needs_price=self.needs_price,
            unit_needs_review=self.item.unit_needs_review,
        )
