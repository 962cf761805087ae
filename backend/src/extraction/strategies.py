"""
Extraction strategies.

Each strategy recognizes one spoken phrase order (for example
"5 kg aloo 40" or "aloo 5 kg ₹40") and knows how to turn one match into an
ExtractionCandidate. Strategies only read the working text; the extractor
decides what gets consumed.
"""
import re
from abc import ABC, abstractmethod
from typing import List, Optional

from src.extraction.numerals import BLANK, BOUNDARY, nfc, number_pattern, numeral_words, parse_number
from src.extraction.schemas import ExtractionCandidate
from src.extraction.units import UNIT_TABLE, canonicalize_unit, unit_pattern


CURRENCY_WORDS = (
    "rs", "inr", "rupees", "rupee", "rupaye", "rupaiye", "rupay",
    "रुपये", "रुपए", "रुपया", "रुपय", "रु",
)
CONNECTOR_WORDS = (
    "and", "aur", "और", "or", "plus", "also", "then", "phir", "फिर",
    "of", "ka", "ki", "ke", "का", "की", "के",
    "at", "per", "rate", "bhav", "भाव", "प्रति",
)

# Letters of any script, including Indic combining marks that \w misses,
# but never digits or the danda.
LETTER = r"(?![\d\u0964\u0965])(?:[^\W_]|[\u0900-\u0DFF\u200c\u200d])"
LEFT = r"(?<![^\s,;:!?।|\x00])"

_B = BOUNDARY
_NUM = number_pattern()
_UNIT = rf"(?:{unit_pattern()})\.?{_B}"
_CURRENCY_WORD = "|".join(re.escape(nfc(word)) for word in sorted(set(CURRENCY_WORDS), key=len, reverse=True))
_CURRENCY = rf"(?:₹|(?:{_CURRENCY_WORD})\.?(?=[\s\d,;!?।|/\x00\-]|$))"
_MARKER = r"(?:(?:@|(?:at|rate|bhav|भाव)(?=\s))\s*)?"
_PER = r"(?:per|प्रति|/)"
_PER_UNIT = rf"(?:\s*{_PER}\s*|\s+)(?:{unit_pattern()}){_B}"
_OF = r"(?:(?:of|ka|ki|ke|का|की|के)\s+)?"


def _stop_words() -> List[str]:
    words = set(UNIT_TABLE) | set(numeral_words()) | {nfc(word) for word in CURRENCY_WORDS + CONNECTOR_WORDS}
    return sorted(words, key=len, reverse=True)


_STOP = "|".join(re.escape(word) for word in _stop_words())
_NAME_WORD = rf"(?!(?:{_STOP}){_B}){LETTER}+{_B}"


def name_pattern(max_words: int) -> str:
    """One to max_words product-name words, captured as 'name'."""
    return rf"(?P<name>{_NAME_WORD}(?:(?:\s+|-){_NAME_WORD}){{0,{max(max_words, 1) - 1}}})"


def rate_pattern(require_currency: bool = False) -> str:
    """
    A unit rate captured as 'rate'.

    A bare rate must not be the start of the next quantity-unit phrase, so
    "pyaz 2 kg" never reads the 2 as the previous line's rate.
    """
    after_currency = rf"\s*{_CURRENCY}(?:{_PER_UNIT})?"
    bare = (
        rf"(?:\s*{_PER}\s*(?:{unit_pattern()}){_B}"
        rf"|(?!\s*{_UNIT})(?:(?<=\d)|(?![\s\-]+{_NUM})))"
    )
    if require_currency:
        return rf"{_MARKER}(?P<cur>{_CURRENCY}\s*)?(?P<rate>{_NUM})(?(cur){bare}|{after_currency})"
    return rf"{_MARKER}(?:{_CURRENCY}\s*)?(?P<rate>{_NUM})(?:{after_currency}|{bare})"


class WorkingText:
    """
    Mutable copy of the transcript.

    Consumed spans are overwritten with BLANK so the text keeps its length
    and later matches can never cross a consumed region.
    """

    def __init__(self, text: str):
        self._chars = list(text)

    @property
    def text(self) -> str:
        return "".join(self._chars)

    def consume(self, start: int, end: int) -> None:
        for index in range(start, end):
            self._chars[index] = BLANK


class ExtractionStrategy(ABC):
    """One phrase order the extractor can recognize."""

    strategy_id: str = ""

    @abstractmethod
    def attempt(self, working: WorkingText) -> Optional[ExtractionCandidate]:
        """Returns the first usable candidate in the unconsumed text, or None."""


class RegexStrategy(ExtractionStrategy):
    """
    Strategy backed by one regular expression with named groups
    'qty', 'name' and optionally 'unit' and 'rate'.
    """

    flag_raw_unit = False

    def __init__(self, max_name_words: int = 3):
        self.pattern = re.compile(self.build(name_pattern(max_name_words)), re.IGNORECASE)

    def build(self, name: str) -> str:
        raise NotImplementedError

    def attempt(self, working: WorkingText) -> Optional[ExtractionCandidate]:
        for match in self.pattern.finditer(working.text):
            candidate = self._to_candidate(match)
            if candidate is not None:
                return candidate
        return None

    def _to_candidate(self, match: re.Match) -> Optional[ExtractionCandidate]:
        quantity = parse_number(match.group("qty"))
        if quantity is None:
            # No usable line without a quantity
            return None

        groups = match.groupdict()
        raw_unit = groups.get("unit")
        unit = canonicalize_unit(raw_unit)
        if raw_unit is not None and unit is None and not self.flag_raw_unit:
            return None

        raw_rate = groups.get("rate")
        rate = parse_number(raw_rate) if raw_rate else None

        return ExtractionCandidate(
            raw_name=" ".join(match.group("name").split()),
            quantity=quantity,
            raw_unit=raw_unit.strip() if raw_unit else None,
            unit=unit,
            rate=rate,
            strategy_id=self.strategy_id,
            span_start=match.start(),
            span_end=match.end(),
        )


class QtyUnitNameRate(RegexStrategy):
    """'5 kg aloo 40', 'do kilo pyaz @ 30/kg'"""
    strategy_id = "qty_unit_name_rate"

    def build(self, name: str) -> str:
        return rf"{LEFT}(?P<qty>{_NUM})\s*(?P<unit>{_UNIT})\s*{_OF}{name}\s+{rate_pattern()}"


class NameQtyUnitCurrencyRate(RegexStrategy):
    """'aloo 5 kg ₹40', 'चीनी दो किलो चालीस रुपये'"""
    strategy_id = "name_qty_unit_currency_rate"

    def build(self, name: str) -> str:
        return rf"{LEFT}{name}\s+(?P<qty>{_NUM})\s*(?P<unit>{_UNIT})\s*{rate_pattern(require_currency=True)}"


class QtyUnitName(RegexStrategy):
    """'2 kg of sugar', 'teen packet maggi'"""
    strategy_id = "qty_unit_name"

    def build(self, name: str) -> str:
        return rf"{LEFT}(?P<qty>{_NUM})\s*(?P<unit>{_UNIT})\s*{_OF}{name}"


class NameQtyUnit(RegexStrategy):
    """'aloo 5 kg', 'aloo 5 kg 40'"""
    strategy_id = "name_qty_unit"

    def build(self, name: str) -> str:
        return rf"{LEFT}{name}\s+(?P<qty>{_NUM})\s*(?P<unit>{_UNIT})(?:\s*{rate_pattern()})?"


class QtyRawUnitNameRate(RegexStrategy):
    """
    '3ctn chawal 50', '3 ctn. chawal 50'

    The unit word is outside the vocabulary. It only counts as a unit when it
    is glued to the digits or written as a dotted abbreviation; otherwise
    "2 amul butter 50" would lose 'amul' to the unit slot.
    """
    strategy_id = "qty_rawunit_name_rate"
    flag_raw_unit = True

    def build(self, name: str) -> str:
        raw_unit = rf"(?:(?<=\d){LETTER}+|\s+{LETTER}+\.)"
        return rf"{LEFT}(?P<qty>\d+(?:\.\d+)?)(?P<unit>{raw_unit})\s+{name}\s+{rate_pattern()}"


class QtyNameRate(RegexStrategy):
    """'12 ande 6', 'two samosa @ 15'"""
    strategy_id = "qty_name_rate"

    def build(self, name: str) -> str:
        return rf"{LEFT}(?P<qty>{_NUM})\s+{name}\s+{rate_pattern()}"


class QtyName(RegexStrategy):
    """'12 ande', 'do samose'"""
    strategy_id = "qty_name"

    def build(self, name: str) -> str:
        return rf"{LEFT}(?P<qty>{_NUM})\s+{name}"


def default_strategies(max_name_words: int = 3) -> List[ExtractionStrategy]:
    """The built-in strategies in priority order."""
    return [
        QtyUnitNameRate(max_name_words),
        NameQtyUnitCurrencyRate(max_name_words),
        QtyUnitName(max_name_words),
        NameQtyUnit(max_name_words),
        QtyRawUnitNameRate(max_name_words),
        QtyNameRate(max_name_words),
        QtyName(max_name_words),
    ]
