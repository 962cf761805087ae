"""
String-similarity primitive used by fuzzy matching.

Kept behind a narrow protocol so the reconciler never depends on a
database similarity operator; swap the scorer to retune fuzzy matching.
"""
import re
from typing import Protocol

from rapidfuzz import fuzz
from rapidfuzz.distance import Levenshtein

from src.extraction.numerals import nfc

_REPEATED = re.compile(r"(.)\1+")


def fold(text: str) -> str:
    """Case- and composition-insensitive form used for every name comparison."""
    return " ".join(nfc(text).casefold().split())


def spelling_key(text: str) -> str:
    """
    Folded name with runs of one letter collapsed, so romanized spellings
    like "aaloo", "aloo" and "alo" share a key.
    """
    return _REPEATED.sub(r"\1", fold(text))


class SimilarityScorer(Protocol):
    def score(self, query: str, candidate: str) -> int:
        """Similarity in [0, 100]; 100 means identical after folding."""
        ...

    def distance(self, query: str, candidate: str) -> int:
        """Edit distance, used to break equal scores."""
        ...


class RatioScorer:
    """
    Normalized Indel similarity (rapidfuzz `fuzz.ratio`) over spelling keys,
    rounded to an integer.

    "Alu" vs "Aloo" scores 67; unrelated grocery names ("paneer" vs "Pyaz",
    "aloo" vs "Doodh") stay well below the default threshold.
    """

    def score(self, query: str, candidate: str) -> int:
        a, b = spelling_key(query), spelling_key(candidate)
        if not a or not b:
            return 0
        return int(round(fuzz.ratio(a, b)))

    def distance(self, query: str, candidate: str) -> int:
        return Levenshtein.distance(fold(query), fold(candidate))
