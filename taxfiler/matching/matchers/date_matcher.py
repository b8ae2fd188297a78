"""Date proximity matcher."""

from datetime import date
from typing import TYPE_CHECKING

from .base import IScoreMatcher, tiered_score, to_date

if TYPE_CHECKING:
    from ..config import MatchingConfiguration
    from ..domain.models import FinancialTransaction, TaxDocument


def best_document_date(document: "TaxDocument | None") -> date | None:
    """Invoice date if present, else the folder-derived fallback date."""
    if document is None:
        return None
    invoice_date = to_date(getattr(document, "invoice_date", None))
    if invoice_date is not None:
        return invoice_date
    return alternative_document_date(document)


def alternative_document_date(document: "TaxDocument | None") -> date | None:
    if document is None:
        return None
    return to_date(getattr(document, "invoice_date_from_folder", None))


def days_between(first: date, second: date) -> int:
    return abs((first - second).days)


class DateMatcher(IScoreMatcher):
    """Score whole-day distance between booking date and document date.

    Scoring (default thresholds):
    - same day -> 1.0
    - <= 7 days -> 0.8
    - <= 30 days -> 0.5
    - <= 90 days -> linear decay from 0.2 to 0.0
    - beyond or no document date -> 0.0
    """

    factor = "date"

    def score(self, transaction, document, config) -> float:
        return self.calculate_date_score(transaction, document, config)

    def calculate_date_score(
        self,
        transaction: "FinancialTransaction | None",
        document: "TaxDocument | None",
        config: "MatchingConfiguration | None",
    ) -> float:
        if transaction is None or document is None or config is None:
            return 0.0

        transaction_date = to_date(getattr(transaction, "transaction_datetime", None))
        document_date = best_document_date(document)
        if transaction_date is None or document_date is None:
            return 0.0

        days = days_between(transaction_date, document_date)
        thresholds = config.date
        return tiered_score(
            days, thresholds.exact_days, thresholds.high_days, thresholds.medium_days
        )
