"""Reference (invoice number) matcher.

Compares invoice numbers quoted in the transaction note with the number on
the document. Scoring levels, first hit wins:

1. Exact match after normalization -> 1.0
2. Note contains the invoice number -> 0.8
3. Invoice number contains the note -> 0.7
4. Shared digit run of 3+ digits -> up to 0.6
5. Same letter/digit layout -> up to 0.4

Notes often list several vouchers ("RG 2024-001 und 2024-002"), so the
matcher can also extract them and score a whole document set.
"""

import re
from collections.abc import Iterable
from typing import TYPE_CHECKING

from .base import IScoreMatcher
from .similarity import contains_ignore_case, levenshtein_similarity

if TYPE_CHECKING:
    from ..config import MatchingConfiguration
    from ..domain.models import FinancialTransaction, TaxDocument

_REFERENCE_PREFIXES = ("INV", "INVOICE", "REF", "REFERENCE", "NO", "NR", "NUM")
_REFERENCE_SUFFIXES = (" INV", " INVOICE", " REF", " REFERENCE")
_GENERIC_REFERENCES = frozenset({"N/A", "NA", "NONE", "NULL", "UNKNOWN", "TBD", "PENDING"})

_DIGIT_RUN = re.compile(r"\d+")
_WHITESPACE = re.compile(r"\s+")
_HYPHENS = re.compile(r"-+")

# Labels that precede voucher numbers in German and English notes
_VOUCHER_LABEL = re.compile(
    r"\b(?:rechnungsnummer|rechnung|rg-nr\.?|beleg|invoice\s+no\.?|nr\.)\s*:?",
    re.IGNORECASE,
)
# List separators and the range word "bis"; ranges keep only their endpoints
_VOUCHER_SEPARATOR = re.compile(r"[,;&+]|\b(?:and|und|sowie|bis)\b", re.IGNORECASE)
_VOUCHER_TOKEN = re.compile(r"[A-Za-z0-9]+(?:[-/_.][A-Za-z0-9]+)*")
# Dates such as 15.01.2024, 15/01/24 or 2024-01-15 are not vouchers
_DATE_TOKEN = re.compile(r"\d{1,2}[./]\d{1,2}[./]\d{2,4}|\d{4}-\d{1,2}-\d{1,2}")

_MIN_DIGIT_RUN = 3
_NUMERIC_CAP = 0.6
_PATTERN_CAP = 0.4


def normalize_reference(reference: str | None) -> str:
    """Upper-case a reference and strip labels and separator noise.

    Example:
        >>> normalize_reference("inv: 2024/001")
        '2024-001'
    """
    if not reference or not reference.strip():
        return ""

    normalized = reference.strip().upper()

    for prefix in _REFERENCE_PREFIXES:
        if any(normalized.startswith(prefix + sep) for sep in (" ", ".", "-", ":")):
            normalized = normalized[len(prefix) :].lstrip(" .-:")
            break

    for suffix in _REFERENCE_SUFFIXES:
        if normalized.endswith(suffix):
            normalized = normalized[: -len(suffix)].rstrip()
            break

    normalized = normalized.replace("/", "-").replace("_", "-").replace(".", "-")
    normalized = _WHITESPACE.sub(" ", normalized)
    normalized = _HYPHENS.sub("-", normalized)
    return normalized.strip()


def is_valid_reference(reference: str | None) -> bool:
    """Reject blank, too short and placeholder references such as "N/A"."""
    if not reference or not reference.strip():
        return False

    normalized = normalize_reference(reference)
    if len(normalized) < 3:
        return False
    if not any(ch.isalnum() for ch in normalized):
        return False
    if reference.strip().upper() in _GENERIC_REFERENCES or normalized in _GENERIC_REFERENCES:
        return False
    return True


def extract_voucher_numbers(text: str | None) -> list[str]:
    """Pull every voucher-like token out of a free-text note.

    A voucher token is an alphanumeric run, optionally joined by "-", "/",
    "_" or ".", with at least one digit and at least three characters.
    Dates such as "15.01.2024" or "2024-01-15" are skipped. Duplicates are removed case-insensitively, keeping the first spelling.

    Example:
        >>> extract_voucher_numbers("Rechnung RG-2024-001 sowie Beleg REF-456")
        ['RG-2024-001', 'REF-456']
        >>> extract_voucher_numbers("INV-001 bis INV-005")
        ['INV-001', 'INV-005']
    """
    if not text or not text.strip():
        return []

    cleaned = _VOUCHER_LABEL.sub(" ", text)

    vouchers: list[str] = []
    seen: set[str] = set()
    for part in _VOUCHER_SEPARATOR.split(cleaned):
        for token in _VOUCHER_TOKEN.findall(part):
            if len(token) < 3 or not any(ch.isdigit() for ch in token):
                continue
            if _DATE_TOKEN.fullmatch(token):
                continue
            key = token.casefold()
            if key in seen:
                continue
            seen.add(key)
            vouchers.append(token)
    return vouchers


def _digit_runs(reference: str) -> list[str]:
    return [run for run in _DIGIT_RUN.findall(reference) if len(run) >= _MIN_DIGIT_RUN]


def _numeric_significance(number: str, first: str, second: str) -> float:
    length_score = min(len(number) / 10.0, 1.0)
    ratio_score = (len(number) / len(first) + len(number) / len(second)) / 2.0
    return length_score * 0.7 + ratio_score * 0.3


def _numerically_similar(first: str, second: str) -> bool:
    if len(first) != len(second):
        return False
    a, b = int(first), int(second)
    tolerance = max(1, int(max(a, b) * 0.01))
    return abs(a - b) <= tolerance


def _numeric_match(first: str, second: str) -> float:
    best = 0.0
    for a in _digit_runs(first):
        for b in _digit_runs(second):
            if a == b:
                best = max(best, _numeric_significance(a, first, second))
            elif _numerically_similar(a, b):
                best = max(best, _numeric_significance(a, first, second) * 0.7)
    return best


def _layout(reference: str) -> str:
    """Letters become "L", digits "#", punctuation stays, whitespace is dropped."""
    layout = []
    for ch in reference:
        if ch.isalpha():
            layout.append("L")
        elif ch.isdigit():
            layout.append("#")
        elif not ch.isspace():
            layout.append(ch)
    return "".join(layout)


def _pattern_match(first: str, second: str) -> float:
    a, b = _layout(first), _layout(second)
    if a == b:
        return 0.3
    similarity = levenshtein_similarity(a, b)
    if similarity >= 0.8:
        return similarity * 0.25
    return 0.0


def score_references(transaction_reference: str | None, document_reference: str | None) -> float:
    """Score two raw reference strings on the five-level ladder."""
    if not is_valid_reference(transaction_reference) or not is_valid_reference(document_reference):
        return 0.0

    txn_ref = normalize_reference(transaction_reference)
    doc_ref = normalize_reference(document_reference)

    if txn_ref.casefold() == doc_ref.casefold():
        return 1.0
    if contains_ignore_case(txn_ref, doc_ref):
        return 0.8
    if contains_ignore_case(doc_ref, txn_ref):
        return 0.7

    numeric = _numeric_match(txn_ref, doc_ref)
    if numeric > 0:
        return min(numeric, _NUMERIC_CAP)

    pattern = _pattern_match(txn_ref, doc_ref)
    if pattern > 0:
        return min(pattern, _PATTERN_CAP)
    return 0.0


def transaction_reference_text(transaction: "FinancialTransaction | None") -> str | None:
    """The note, or the bank reference field when the note is blank."""
    if transaction is None:
        return None
    note = getattr(transaction, "transaction_note", None)
    if note and note.strip():
        return note
    return getattr(transaction, "transaction_reference", None)


class ReferenceMatcher(IScoreMatcher):
    """Score invoice-number agreement for single documents and document sets."""

    factor = "reference"

    def score(self, transaction, document, config) -> float:
        return self.calculate_reference_score(transaction, document)

    def calculate_reference_score(
        self,
        transaction: "FinancialTransaction | None",
        document: "TaxDocument | None",
    ) -> float:
        if transaction is None or document is None:
            return 0.0
        return score_references(
            transaction_reference_text(transaction),
            getattr(document, "invoice_number", None),
        )

    def calculate_multiple_reference_score(
        self,
        transaction: "FinancialTransaction | None",
        documents: "Iterable[TaxDocument] | None",
        config: "MatchingConfiguration | None" = None,
    ) -> float:
        """Score a document set against all vouchers quoted in the note.

        The best single-document score is the base. When the note lists more
        than one voucher, a bonus proportional to the share of vouchers that
        found a document is added. The result is capped at 1.0.
        """
        if transaction is None or documents is None:
            return 0.0
        candidates = [doc for doc in documents if doc is not None]
        if not candidates:
            return 0.0
        if len(candidates) == 1:
            return self.calculate_reference_score(transaction, candidates[0])

        bonus = config.multiple_reference_bonus if config is not None else 0.2
        threshold = config.voucher_match_threshold if config is not None else 0.7

        vouchers = extract_voucher_numbers(transaction_reference_text(transaction))
        satisfied: set[str] = set()
        best = 0.0
        for document in candidates:
            invoice_number = getattr(document, "invoice_number", None)
            document_best = self.calculate_reference_score(transaction, document)
            for voucher in vouchers:
                voucher_score = score_references(voucher, invoice_number)
                if voucher_score >= threshold:
                    satisfied.add(voucher.casefold())
                document_best = max(document_best, voucher_score)
            best = max(best, document_best)

        if len(vouchers) > 1:
            best += bonus * len(satisfied) / len(vouchers)
        return min(best, 1.0)
