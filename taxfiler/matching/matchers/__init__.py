"""Per-factor matchers.

Each matcher scores one aspect of a (transaction, document) pair in [0.0, 1.0]:

- AmountMatcher: relative amount difference, Skonto-aware
- DateMatcher: day distance to the invoice date
- VendorMatcher: counterparty name vs. document vendor
- ReferenceMatcher: invoice numbers quoted in the transaction note

Usage:
    >>> from taxfiler.matching.matchers import AmountMatcher
    >>> AmountMatcher().calculate_amount_score(transaction, document, config)
    1.0
"""

__all__ = [
    "IScoreMatcher",
    "AmountMatcher",
    "DateMatcher",
    "VendorMatcher",
    "ReferenceMatcher",
]

from .amount import AmountMatcher
from .base import IScoreMatcher
from .date_matcher import DateMatcher
from .reference import ReferenceMatcher
from .vendor import VendorMatcher
