from decimal import Decimal
from typing import List, Optional
from pydantic import Field, field_validator

from src.common.schemas import AppBaseModel, AppResponseModel
from src.extraction.units import CanonicalUnit


class ExtractionCandidate(AppResponseModel):
    """
    One sale line recognized by an extraction strategy.
    Span bounds index into the NFC-normalized transcript.
    """
    raw_name: str = Field(..., min_length=1, description="Product name as spoken")
    quantity: Decimal = Field(..., description="Parsed quantity (not yet validated)")
    raw_unit: Optional[str] = Field(None, description="Unit token as spoken")
    unit: Optional[CanonicalUnit] = Field(None, description="Canonical unit, if the token is known")
    rate: Optional[Decimal] = Field(None, description="Rate per unit, if spoken")
    strategy_id: str = Field(..., description="Strategy that produced the candidate")
    span_start: int = Field(..., ge=0)
    span_end: int = Field(..., ge=0)

    @property
    def unit_needs_review(self) -> bool:
        """A unit was spoken but is outside the unit vocabulary."""
        return self.raw_unit is not None and self.unit is None


class ExtractionAmbiguity(AppResponseModel):
    """Transcript fragment no strategy could claim. Recorded, never raised."""
    text: str
    reason: str = "unrecognized_text"


class ExtractionResult(AppBaseModel):
    candidates: List[ExtractionCandidate] = Field(default_factory=list)
    leftover: str = Field("", description="Transcript text not claimed by any strategy")
    ambiguities: List[ExtractionAmbiguity] = Field(default_factory=list)

    model_config = {"str_strip_whitespace": False}


class NormalizedItem(AppResponseModel):
    """
    Sale-line candidate after normalization, ready for reconciliation.
    """
    name: str = Field(..., min_length=1, description="Trimmed product name")
    quantity: Decimal = Field(..., gt=0, description="Quantity (> 0)")
    unit: Optional[CanonicalUnit] = Field(None, description="Canonical unit")
    raw_unit: Optional[str] = Field(None, description="Unit token as spoken")
    unit_needs_review: bool = Field(default=False, description="Spoken unit not in the unit vocabulary")
    rate: Optional[Decimal] = Field(None, description="Rate per unit from the transcript")

    @field_validator("rate")
    @classmethod
    def validate_rate(cls, value: Optional[Decimal]) -> Optional[Decimal]:
        if value is not None and value <= 0:
            return None
        return value


class RejectedCandidate(AppResponseModel):
    candidate: ExtractionCandidate
    reason: str
