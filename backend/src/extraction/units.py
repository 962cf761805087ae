"""
Unit vocabulary for spoken sale lines.

Maps the unit tokens heard in transcripts (English, Hindi, Hinglish, plurals
and abbreviations) onto a fixed enumeration of canonical units. The
enumeration mirrors the unit picker used on the slip screen, so a canonical
token can be handed to the slip assembler unchanged.
"""
import enum
import re
from typing import Dict, Optional

from src.extraction.numerals import nfc


class UnitFamily(str, enum.Enum):
    WEIGHT = "weight"
    VOLUME = "volume"
    COUNT = "count"


class CanonicalUnit(str, enum.Enum):
    KG = "kg"
    G = "g"
    LB = "lb"
    L = "l"
    ML = "ml"
    PC = "pc"
    DZ = "dz"
    BOX = "box"
    PKT = "pkt"
    BAG = "bag"
    BTL = "btl"
    CAN = "can"
    TIN = "tin"
    JAR = "jar"
    SET = "set"
    PAIR = "pair"
    BUNDLE = "bundle"
    ROLL = "roll"
    PACK = "pack"
    SHEET = "sheet"

    @property
    def family(self) -> UnitFamily:
        if self in (CanonicalUnit.KG, CanonicalUnit.G, CanonicalUnit.LB):
            return UnitFamily.WEIGHT
        if self in (CanonicalUnit.L, CanonicalUnit.ML):
            return UnitFamily.VOLUME
        return UnitFamily.COUNT


UNIT_SYNONYMS: Dict[CanonicalUnit, tuple[str, ...]] = {
    # Weight
    CanonicalUnit.KG: (
        "kg", "kgs", "kilo", "kilos", "kilogram", "kilograms", "kilogramme", "kilogrammes",
        "किलो", "किलोग्राम", "किग्रा", "केजी",
    ),
    CanonicalUnit.G: (
        "g", "gm", "gms", "gr", "gram", "grams", "gramme", "grammes",
        "ग्राम", "ग्रा",
    ),
    CanonicalUnit.LB: ("lb", "lbs", "pound", "pounds"),
    # Volume
    CanonicalUnit.L: (
        "l", "ltr", "ltrs", "litre", "litres", "liter", "liters",
        "लीटर", "लिटर",
    ),
    CanonicalUnit.ML: (
        "ml", "mls", "millilitre", "millilitres", "milliliter", "milliliters",
        "मिलीलीटर", "मिली",
    ),
    # Count
    CanonicalUnit.PC: (
        "pc", "pcs", "piece", "pieces", "nos", "nag", "peace",
        "पीस", "नग",
    ),
    CanonicalUnit.DZ: ("dz", "doz", "dozen", "dozens", "darjan", "दर्जन"),
    CanonicalUnit.BOX: ("box", "boxes", "dibba", "dabba", "डिब्बा", "डिब्बे"),
    CanonicalUnit.PKT: ("pkt", "pkts", "packet", "packets", "paket", "पैकेट"),
    CanonicalUnit.BAG: ("bag", "bags", "bori", "thaila", "बोरी", "थैला", "थैले"),
    CanonicalUnit.BTL: ("btl", "btls", "bottle", "bottles", "botal", "बोतल"),
    CanonicalUnit.CAN: ("can", "cans"),
    CanonicalUnit.TIN: ("tin", "tins", "टिन"),
    CanonicalUnit.JAR: ("jar", "jars", "जार"),
    CanonicalUnit.SET: ("set", "sets", "सेट"),
    CanonicalUnit.PAIR: ("pair", "pairs", "jodi", "जोड़ी", "जोड़ा"),
    CanonicalUnit.BUNDLE: ("bundle", "bundles", "gaddi", "गड्डी", "गट्ठर"),
    CanonicalUnit.ROLL: ("roll", "rolls", "रोल"),
    CanonicalUnit.PACK: ("pack", "packs", "पैक"),
    CanonicalUnit.SHEET: ("sheet", "sheets", "शीट"),
}

# token -> canonical unit, built once
UNIT_TABLE: Dict[str, CanonicalUnit] = {
    nfc(synonym): unit
    for unit, synonyms in UNIT_SYNONYMS.items()
    for synonym in synonyms
}


def _fold(token: str) -> str:
    return nfc(token.strip().strip(".")).casefold()


def canonicalize_unit(raw_unit: Optional[str]) -> Optional[CanonicalUnit]:
    """
    Resolves a raw unit token to its canonical unit.

    Matching is case-insensitive and ignores a trailing abbreviation dot
    ("Kg." -> kg). Returns None for tokens outside the vocabulary; callers
    keep the raw token for review instead of dropping the line.
    """
    if not raw_unit:
        return None
    return UNIT_TABLE.get(_fold(raw_unit))


def is_known_unit(raw_unit: Optional[str]) -> bool:
    return canonicalize_unit(raw_unit) is not None


def unit_pattern() -> str:
    """Regex alternation of every unit synonym, longest first."""
    tokens = sorted(UNIT_TABLE, key=len, reverse=True)
    return "|".join(re.escape(token) for token in tokens)
