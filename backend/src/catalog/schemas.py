from typing import List, Optional
from pydantic import Field

from src.common.schemas import AppBaseModel


class CatalogProduct(AppBaseModel):
    """Point-in-time view of one catalog product, as the reconciler sees it."""
    id: int = Field(..., gt=0)
    name: str = Field(..., min_length=1, description="Canonical product name")
    aliases: List[str] = Field(default_factory=list, description="Alternate names")
    default_unit: Optional[str] = Field(None, description="Canonical unit used when none was spoken")


class FuzzyCandidate(AppBaseModel):
    product: CatalogProduct
    score: int = Field(..., ge=0, le=100, description="Best similarity across name and aliases")
    matched_name: str = Field(..., description="Name or alias that produced the score")
    distance: int = Field(..., ge=0, description="Edit distance to matched_name")
