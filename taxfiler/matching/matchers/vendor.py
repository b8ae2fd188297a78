"""Vendor name matcher.

Compares the document issuer with every name field the bank provides and
keeps the best result.
"""

from typing import TYPE_CHECKING

from .base import IScoreMatcher
from .similarity import levenshtein_similarity, normalize_for_matching

if TYPE_CHECKING:
    from ..config import MatchingConfiguration
    from ..domain.models import FinancialTransaction, TaxDocument

_NAME_FIELDS = ("counterparty", "sender_receiver")


def transaction_vendor_fields(transaction: "FinancialTransaction | None") -> list[str]:
    """Non-blank name fields of a transaction, counterparty first."""
    if transaction is None:
        return []
    fields = []
    for name in _NAME_FIELDS:
        value = getattr(transaction, name, None)
        if value and value.strip():
            fields.append(value)
    return fields


def are_likely_same_vendor(first: str | None, second: str | None, threshold: float = 0.7) -> bool:
    """Loose check used to group documents by issuer."""
    a = normalize_for_matching(first)
    b = normalize_for_matching(second)
    if not a or not b:
        return False
    if a == b or a in b or b in a:
        return True
    return levenshtein_similarity(a, b) >= threshold


class VendorMatcher(IScoreMatcher):
    """Score how well the transaction's counterparty names match the vendor.

    Per name field:
    - normalized exact match -> 1.0
    - transaction name contains vendor -> 0.8
    - vendor contains transaction name -> 0.7
    - Levenshtein similarity >= fuzzy threshold -> the similarity
    - otherwise 0.0

    The result is the maximum over all fields.

    Example:
        >>> VendorMatcher().calculate_vendor_score(txn("REWE"), doc("REWE Markt GmbH"), config)
        0.7
    """

    factor = "vendor"

    def score(self, transaction, document, config) -> float:
        return self.calculate_vendor_score(transaction, document, config)

    def calculate_vendor_score(
        self,
        transaction: "FinancialTransaction | None",
        document: "TaxDocument | None",
        config: "MatchingConfiguration | None",
    ) -> float:
        if transaction is None or document is None or config is None:
            return 0.0

        vendor = normalize_for_matching(getattr(document, "vendor_name", None))
        if not vendor:
            return 0.0

        best = 0.0
        for field_value in transaction_vendor_fields(transaction):
            best = max(best, self._score_name(field_value, vendor, config.vendor.fuzzy_threshold))
            if best == 1.0:
                break
        return best

    @staticmethod
    def _score_name(transaction_name: str, vendor: str, fuzzy_threshold: float) -> float:
        name = normalize_for_matching(transaction_name)
        if not name:
            return 0.0
        if name == vendor:
            return 1.0
        if vendor in name:
            return 0.8
        if name in vendor:
            return 0.7

        similarity = levenshtein_similarity(name, vendor)
        return similarity if similarity >= fuzzy_threshold else 0.0
