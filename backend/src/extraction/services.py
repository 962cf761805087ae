"""
Grammar Extractor and Item Normalizer.

The extractor runs the strategies in priority order over a working copy of
the transcript; every accepted candidate blanks its span, so one spoken
phrase yields at most one candidate. The normalizer validates candidates
into NormalizedItems.
"""
import logging
import re
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple

from src.config import settings
from src.extraction.numerals import nfc
from src.extraction.schemas import (
    ExtractionAmbiguity,
    ExtractionCandidate,
    ExtractionResult,
    NormalizedItem,
    RejectedCandidate,
)
from src.extraction.strategies import CONNECTOR_WORDS, ExtractionStrategy, WorkingText, default_strategies

logger = logging.getLogger(__name__)

_FRAGMENT_SEPARATORS = re.compile(r"[,;।|\n\x00]+")
_TOKEN = re.compile(r"[^\W_]+|[\u0900-\u0DFF\u200c\u200d]+")
_CONNECTORS = {nfc(word).casefold() for word in CONNECTOR_WORDS}


class GrammarExtractor:
    """
    Turns transcript text into an ordered list of ExtractionCandidates.

    Never raises for malformed input: the worst case is no candidates and a
    leftover equal to the whole transcript.
    """

    def __init__(
        self,
        strategies: Optional[Sequence[ExtractionStrategy]] = None,
        max_name_words: int = settings.EXTRACTION_MAX_NAME_WORDS
    ):
        self.strategies = list(strategies) if strategies is not None else default_strategies(max_name_words)

    def extract(self, transcript: Optional[str]) -> ExtractionResult:
        text = transcript or ""
        if not text.strip():
            return ExtractionResult(candidates=[], leftover=text, ambiguities=[])

        working = WorkingText(nfc(text))
        candidates: List[ExtractionCandidate] = []

        for strategy in self.strategies:
            candidates.extend(self._run_strategy(strategy, working))

        candidates.sort(key=lambda candidate: candidate.span_start)

        if not candidates:
            stripped = " ".join(text.split())
            return ExtractionResult(
                candidates=[],
                leftover=text,
                ambiguities=[ExtractionAmbiguity(text=stripped)],
            )

        fragments = self._leftover_fragments(working.text)
        logger.info(
            f"Extracted {len(candidates)} candidates, "
            f"{len(fragments)} unrecognized fragments"
        )
        return ExtractionResult(
            candidates=candidates,
            leftover=" ".join(fragments),
            ambiguities=[ExtractionAmbiguity(text=fragment) for fragment in fragments],
        )

    @staticmethod
    def _run_strategy(strategy: ExtractionStrategy, working: WorkingText) -> List[ExtractionCandidate]:
        found: List[ExtractionCandidate] = []
        while True:
            try:
                candidate = strategy.attempt(working)
            except Exception as e:
                # Matches already consumed from the working text are kept
                logger.error(f"Extraction strategy {strategy.strategy_id} failed: {e}", exc_info=True)
                return found
            if candidate is None or candidate.span_end <= candidate.span_start:
                return found
            working.consume(candidate.span_start, candidate.span_end)
            found.append(candidate)

    @staticmethod
    def _leftover_fragments(text: str) -> List[str]:
        fragments = []
        for piece in _FRAGMENT_SEPARATORS.split(text):
            fragment = " ".join(piece.split())
            tokens = [token.casefold() for token in _TOKEN.findall(fragment)]
            if not tokens or all(token in _CONNECTORS for token in tokens):
                continue
            fragments.append(fragment)
        return fragments


def _canonical_decimal(value: Decimal) -> Decimal:
    """Drops insignificant zeros so 5, 5.0 and 'five' compare and print alike."""
    if value == value.to_integral_value():
        return value.quantize(Decimal(1))
    return value.normalize()


class ItemNormalizer:
    """Validates extraction candidates into NormalizedItems."""

    def normalize(
        self, candidates: Sequence[ExtractionCandidate]
    ) -> Tuple[List[NormalizedItem], List[RejectedCandidate]]:
        items: List[NormalizedItem] = []
        rejected: List[RejectedCandidate] = []

        for candidate in candidates:
            reason = self._rejection_reason(candidate)
            if reason:
                logger.info(f"Rejected candidate '{candidate.raw_name}' ({candidate.strategy_id}): {reason}")
                rejected.append(RejectedCandidate(candidate=candidate, reason=reason))
                continue

            items.append(NormalizedItem(
                name=self._clean_name(candidate.raw_name),
                quantity=_canonical_decimal(candidate.quantity),
                unit=candidate.unit,
                raw_unit=candidate.raw_unit,
                unit_needs_review=candidate.unit_needs_review,
                rate=_canonical_decimal(candidate.rate) if candidate.rate is not None else None,
            ))

        return items, rejected

    def _rejection_reason(self, candidate: ExtractionCandidate) -> Optional[str]:
        # Zero or negative quantities are rejected, never coerced
        if candidate.quantity <= 0:
            return "non_positive_quantity"
        if not self._clean_name(candidate.raw_name):
            return "empty_name"
        return None

    @staticmethod
    def _clean_name(raw_name: str) -> str:
        name = " ".join(raw_name.split())
        return name.strip(" .,-;:")
