"""String normalization and edit-distance similarity.

Shared by the vendor and reference matchers. Uses rapidfuzz for the
Levenshtein distance.
"""

import re
import unicodedata

from rapidfuzz.distance import Levenshtein

_WHITESPACE = re.compile(r"\s+")
_PUNCTUATION = re.compile(r"[.,;:!?()\[\]{}\"'\-]")


def remove_diacritics(text: str) -> str:
    """Strip combining marks ("Müller" -> "Muller")."""
    decomposed = unicodedata.normalize("NFD", text)
    stripped = "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")
    return unicodedata.normalize("NFC", stripped)


def normalize_for_matching(text: str | None) -> str:
    """Lower-case, diacritic-free, punctuation-free, single-spaced form of ``text``."""
    if not text or not text.strip():
        return ""

    normalized = remove_diacritics(text.strip().lower())
    normalized = _WHITESPACE.sub(" ", normalized)
    normalized = _PUNCTUATION.sub("", normalized)
    return normalized.strip()


def levenshtein_similarity(source: str | None, target: str | None) -> float:
    """Similarity in [0.0, 1.0] based on edit distance of the normalized strings."""
    source_empty = not source or not source.strip()
    target_empty = not target or not target.strip()
    if source_empty and target_empty:
        return 1.0
    if source_empty or target_empty:
        return 0.0

    a = normalize_for_matching(source)
    b = normalize_for_matching(target)
    if a == b:
        return 1.0

    max_length = max(len(a), len(b))
    if max_length == 0:
        return 1.0
    return 1.0 - Levenshtein.distance(a, b) / max_length


def contains_ignore_case(source: str | None, target: str | None) -> bool:
    """True when normalized ``source`` contains normalized ``target``."""
    if not source or not target:
        return False
    needle = normalize_for_matching(target)
    if not needle:
        return False
    return needle in normalize_for_matching(source)
