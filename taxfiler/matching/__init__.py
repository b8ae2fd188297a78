"""Document/transaction matching engine.

Scores how well a tax document (invoice or receipt) justifies a bank
transaction and links the best candidates automatically.

Components:
- similarity / skonto: string normalization and early-payment discount math
- AmountMatcher, DateMatcher, VendorMatcher, ReferenceMatcher: per-factor scores
- MatchingConfiguration: weights, tolerances and thresholds
- DocumentMatchingService: composite ranking and auto-assignment

Architecture: Domain-Driven Design (DDD) + Hexagonal Architecture
"""

__all__ = [
    "MatchingConfiguration",
    "DocumentMatchingService",
    "FinancialTransaction",
    "TaxDocument",
    "DocumentAttachment",
    "DocumentMatch",
    "ScoreBreakdown",
    "MultipleDocumentMatch",
    "MultipleAmountValidationResult",
    "AutoAssignResult",
    "MultipleAssignmentResult",
]

from .application.services.matching_service import DocumentMatchingService
from .config import MatchingConfiguration
from .domain.models import DocumentAttachment, FinancialTransaction, TaxDocument
from .domain.value_objects import (
    AutoAssignResult,
    DocumentMatch,
    MultipleAmountValidationResult,
    MultipleAssignmentResult,
    MultipleDocumentMatch,
    ScoreBreakdown,
)
