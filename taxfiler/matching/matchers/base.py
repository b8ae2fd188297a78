"""Base interface for per-factor document matchers.

Each matcher scores one aspect of a (transaction, document) pair and returns
a value in [0.0, 1.0]. Matchers are stateless; everything tunable comes in
through the ``MatchingConfiguration`` passed to each call, so one instance
can be shared across threads.

Implementing a new matcher:
    1. Inherit from IScoreMatcher
    2. Implement score()
    3. Return 0.0 for absent or unusable input instead of raising
"""

from abc import ABC, abstractmethod
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..config import MatchingConfiguration
    from ..domain.models import FinancialTransaction, TaxDocument


class IScoreMatcher(ABC):
    """Abstract base class for factor matchers."""

    #: Name of the factor, used in logs and score breakdowns
    factor: str = ""

    @abstractmethod
    def score(
        self,
        transaction: "FinancialTransaction | None",
        document: "TaxDocument | None",
        config: "MatchingConfiguration | None",
    ) -> float:
        """Score how well ``document`` matches ``transaction`` on this factor.

        Returns:
            Score between 0.0 and 1.0. 0.0 when any argument is absent.
        """

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}>"


def to_decimal(value: Any) -> Decimal | None:
    """Convert a stored amount to Decimal, returning None when unusable."""
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    try:
        result = Decimal(str(value))
    except (TypeError, ValueError, InvalidOperation):
        return None
    return result if result.is_finite() else None


def to_date(value: Any) -> date | None:
    """Reduce datetimes to dates; pass dates through."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return None


def tiered_score(difference: float, exact: float, high: float, medium: float) -> float:
    """Map a non-negative difference onto the shared scoring ladder.

    - <= exact  -> 1.0
    - <= high   -> 0.8
    - <= medium -> 0.5
    - <= 3 x medium -> linear decay from 0.2 to 0.0
    - beyond    -> 0.0
    """
    if difference <= exact:
        return 1.0
    if difference <= high:
        return 0.8
    if difference <= medium:
        return 0.5

    low_window = medium * 3
    if difference <= low_window and low_window > medium:
        return 0.2 * (1 - (difference - medium) / (low_window - medium))
    return 0.0


def clamp_score(value: float) -> float:
    """Clamp a score into [0.0, 1.0]."""
    return max(0.0, min(1.0, value))
