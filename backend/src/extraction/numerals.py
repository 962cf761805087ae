"""
Locale numeral vocabulary and parsing.

Spoken quantities arrive as digits ("5", "२.५"), as number words in English,
Hindi (Devanagari) or romanized Hindi, or as fractional words common at
Indian shop counters (डेढ़ = 1.5, ढाई = 2.5, साढ़े तीन = 3.5, सवा = 1.25,
पौने दो = 1.75). Everything is parsed to a Decimal.
"""
import re
import unicodedata
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional


ENGLISH_NUMERALS: Dict[str, int] = {
    "zero": 0, "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10,
    "eleven": 11, "twelve": 12, "thirteen": 13, "fourteen": 14, "fifteen": 15,
    "sixteen": 16, "seventeen": 17, "eighteen": 18, "nineteen": 19,
    "twenty": 20, "thirty": 30, "forty": 40, "fourty": 40, "fifty": 50,
    "sixty": 60, "seventy": 70, "eighty": 80, "ninety": 90,
}

# Hindi has a distinct word for every number up to 100
HINDI_NUMERALS: Dict[str, int] = {
    "शून्य": 0, "एक": 1, "दो": 2, "तीन": 3, "चार": 4, "पांच": 5, "पाँच": 5,
    "छह": 6, "छः": 6, "छे": 6, "छै": 6, "सात": 7, "आठ": 8, "नौ": 9, "दस": 10,
    "ग्यारह": 11, "बारह": 12, "तेरह": 13, "चौदह": 14, "पंद्रह": 15, "पन्द्रह": 15,
    "सोलह": 16, "सत्रह": 17, "अठारह": 18, "उन्नीस": 19, "बीस": 20,
    "इक्कीस": 21, "बाईस": 22, "तेईस": 23, "चौबीस": 24, "पच्चीस": 25,
    "छब्बीस": 26, "सत्ताईस": 27, "अट्ठाईस": 28, "उनतीस": 29, "तीस": 30,
    "इकतीस": 31, "बत्तीस": 32, "तैंतीस": 33, "चौंतीस": 34, "पैंतीस": 35,
    "छत्तीस": 36, "सैंतीस": 37, "अड़तीस": 38, "उनतालीस": 39, "चालीस": 40,
    "इकतालीस": 41, "बयालीस": 42, "तैंतालीस": 43, "चौवालीस": 44, "पैंतालीस": 45,
    "छियालीस": 46, "सैंतालीस": 47, "अड़तालीस": 48, "उनचास": 49, "पचास": 50,
    "इक्यावन": 51, "बावन": 52, "तिरेपन": 53, "चौवन": 54, "पचपन": 55,
    "छप्पन": 56, "सत्तावन": 57, "अट्ठावन": 58, "उनसठ": 59, "साठ": 60,
    "इकसठ": 61, "बासठ": 62, "तिरेसठ": 63, "चौंसठ": 64, "पैंसठ": 65,
    "छियासठ": 66, "सड़सठ": 67, "अड़सठ": 68, "उनहत्तर": 69, "सत्तर": 70,
    "इकहत्तर": 71, "बहत्तर": 72, "तिहत्तर": 73, "चौहत्तर": 74, "पचहत्तर": 75,
    "छिहत्तर": 76, "सतहत्तर": 77, "अठहत्तर": 78, "उन्यासी": 79, "अस्सी": 80,
    "इक्यासी": 81, "बयासी": 82, "तिरासी": 83, "चौरासी": 84, "पचासी": 85,
    "छियासी": 86, "सत्तासी": 87, "अट्ठासी": 88, "नवासी": 89, "नब्बे": 90,
    "इक्यानबे": 91, "बानबे": 92, "तिरानबे": 93, "चौरानबे": 94, "पंचानबे": 95,
    "छियानबे": 96, "सत्तानबे": 97, "अट्ठानबे": 98, "निन्यानबे": 99,
}

# "tin" and "no" are left out: they collide with a unit and an English word
ROMAN_HINDI_NUMERALS: Dict[str, int] = {
    "ek": 1, "do": 2, "teen": 3, "char": 4, "chaar": 4, "paanch": 5, "panch": 5,
    "paach": 5, "chhe": 6, "chhah": 6, "che": 6, "saat": 7, "aath": 8, "nau": 9,
    "das": 10, "gyarah": 11, "gyaarah": 11, "barah": 12, "baarah": 12,
    "terah": 13, "chaudah": 14, "chaudha": 14, "pandrah": 15, "pandra": 15,
    "solah": 16, "sola": 16, "satrah": 17, "satra": 17, "atharah": 18, "athara": 18,
    "unnis": 19, "unees": 19, "bees": 20, "bis": 20, "pachchis": 25, "pachees": 25,
    "tees": 30, "chalis": 40, "chaalis": 40, "pachas": 50, "pachaas": 50,
    "saath": 60, "sattar": 70, "assi": 80, "nabbe": 90,
}

MULTIPLIERS: Dict[str, int] = {
    "hundred": 100, "thousand": 1000, "lakh": 100000,
    "सौ": 100, "हजार": 1000, "हज़ार": 1000, "लाख": 100000,
    "sau": 100, "hazaar": 1000, "hazar": 1000, "lac": 100000,
}

FRACTIONS: Dict[str, Decimal] = {
    "half": Decimal("0.5"), "quarter": Decimal("0.25"),
    "आधा": Decimal("0.5"), "आधी": Decimal("0.5"), "पाव": Decimal("0.25"),
    "डेढ़": Decimal("1.5"), "डेढ": Decimal("1.5"), "ढाई": Decimal("2.5"),
    "aadha": Decimal("0.5"), "adha": Decimal("0.5"), "aadhi": Decimal("0.5"),
    "paav": Decimal("0.25"), "pav": Decimal("0.25"),
    "dedh": Decimal("1.5"), "derh": Decimal("1.5"),
    "dhai": Decimal("2.5"), "dhaai": Decimal("2.5"),
}

# Prefix words shifting the number that follows them
MODIFIERS: Dict[str, Decimal] = {
    "साढ़े": Decimal("0.5"), "साढे": Decimal("0.5"),
    "सवा": Decimal("0.25"), "पौने": Decimal("-0.25"), "पोने": Decimal("-0.25"),
    "saadhe": Decimal("0.5"), "sadhe": Decimal("0.5"),
    "sava": Decimal("0.25"), "sawa": Decimal("0.25"),
    "paune": Decimal("-0.25"), "pone": Decimal("-0.25"),
}

def nfc(text: str) -> str:
    """Canonical composition, so nukta spellings (ज़ vs ज + ़) compare equal."""
    return unicodedata.normalize("NFC", text)


def _nfc_keys(table: Dict) -> Dict:
    return {nfc(key): value for key, value in table.items()}


CARDINALS: Dict[str, int] = _nfc_keys({**ENGLISH_NUMERALS, **HINDI_NUMERALS, **ROMAN_HINDI_NUMERALS})
MULTIPLIERS = _nfc_keys(MULTIPLIERS)
FRACTIONS = _nfc_keys(FRACTIONS)
MODIFIERS = _nfc_keys(MODIFIERS)

# Consumed transcript spans are overwritten with this character
BLANK = "\x00"

_DIGITS = r"\d+(?:\.\d+)?(?!\.?\d)"
BOUNDARY = r"(?=[\s,;!?।|/\-\x00]|\.(?!\d)|$)"
_HALF_SUFFIX = r"(?:\s+and\s+(?:a\s+)?half)"


def _alternation(words) -> str:
    return "|".join(re.escape(word) for word in sorted(words, key=len, reverse=True))


def number_pattern() -> str:
    """
    Regex matching one spoken number: digits or a numeral-word phrase.

    The pattern carries no capture groups, so strategies can wrap it in
    their own named groups.
    """
    value_words = _alternation(list(CARDINALS) + list(MULTIPLIERS))
    fraction_words = _alternation(FRACTIONS)
    modifier_words = _alternation(MODIFIERS)
    word = rf"(?:{value_words}){BOUNDARY}"
    phrase = rf"{word}(?:[\s\-]+{word})*{_HALF_SUFFIX}?"
    return (
        rf"(?:{_DIGITS}"
        rf"|(?:{fraction_words}){BOUNDARY}"
        rf"|(?:{modifier_words}){BOUNDARY}(?:\s+(?:{phrase}|{_DIGITS}))?"
        rf"|{phrase})"
    )


def numeral_words() -> List[str]:
    """Every word that can be part of a spoken number."""
    return list(CARDINALS) + list(MULTIPLIERS) + list(FRACTIONS) + list(MODIFIERS)


def to_ascii_digits(text: str) -> str:
    """Replaces Devanagari (and other Unicode) decimal digits with ASCII digits."""
    return "".join(
        str(unicodedata.decimal(ch)) if ch.isdecimal() and not ch.isascii() else ch
        for ch in text
    )


def _parse_cardinal(tokens: List[str]) -> Optional[Decimal]:
    total = 0
    current = 0
    for token in tokens:
        if token in MULTIPLIERS:
            multiplier = MULTIPLIERS[token]
            if multiplier >= 1000:
                total += (current or 1) * multiplier
                current = 0
            else:
                current = (current or 1) * multiplier
            continue
        if token in CARDINALS:
            current += CARDINALS[token]
            continue
        try:
            current += Decimal(token)
        except InvalidOperation:
            return None
    return Decimal(total + current)


def parse_number(text: Optional[str]) -> Optional[Decimal]:
    """
    Parses a spoken number into a Decimal.

    Returns None when the text is not a number; never raises.

    Examples:
        >>> parse_number("5")
        Decimal('5')
        >>> parse_number("पांच सौ")
        Decimal('500')
        >>> parse_number("saadhe teen")
        Decimal('3.5')
        >>> parse_number("two and a half")
        Decimal('2.5')
    """
    if not text or not text.strip():
        return None

    normalized = nfc(to_ascii_digits(text)).casefold().strip()
    tokens = [token for token in re.split(r"[\s\-]+", normalized) if token]

    offset = Decimal("0")
    if tokens and tokens[0] in MODIFIERS:
        offset = MODIFIERS[tokens[0]]
        tokens = tokens[1:]
        if not tokens:
            # "सवा" on its own means one and a quarter
            return Decimal("1") + offset

    if tokens[-2:] == ["and", "half"]:
        tokens = tokens[:-2]
        offset += Decimal("0.5")
    elif tokens[-3:] == ["and", "a", "half"]:
        tokens = tokens[:-3]
        offset += Decimal("0.5")

    if not tokens:
        return None

    if len(tokens) == 1 and tokens[0] in FRACTIONS:
        return FRACTIONS[tokens[0]] + offset

    value = _parse_cardinal(tokens)
    if value is None:
        return None
    return value + offset
