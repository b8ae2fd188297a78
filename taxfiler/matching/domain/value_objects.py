"""Value objects produced by the matching engine.

All of them are immutable and created fresh for each comparison or run.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from ...exceptions import DuplicateAttachmentError
from .enums import (
    AssignmentOutcome,
    AttachmentState,
    AttachStatus,
    CombinationStrategy,
    MatchConfidenceLevel,
    TransactionMatchState,
)

if TYPE_CHECKING:
    from .models import FinancialTransaction, TaxDocument


@dataclass(frozen=True)
class ScoreBreakdown:
    """Per-factor scores for one (transaction, document) comparison.

    Component scores are in [0.0, 1.0]. ``composite_score`` is the weighted
    sum after the optional bonus multiplier, clamped to [0.0, 1.0].
    """

    amount_score: float
    date_score: float
    vendor_score: float
    reference_score: float
    composite_score: float
    bonus_applied: bool = False

    @property
    def strongest_factor(self) -> str:
        scores = {
            "amount": self.amount_score,
            "date": self.date_score,
            "vendor": self.vendor_score,
            "reference": self.reference_score,
        }
        return max(scores, key=lambda k: scores[k])

    def to_dict(self) -> dict[str, Any]:
        return {
            "amount_score": self.amount_score,
            "date_score": self.date_score,
            "vendor_score": self.vendor_score,
            "reference_score": self.reference_score,
            "composite_score": self.composite_score,
            "bonus_applied": self.bonus_applied,
        }


@dataclass(frozen=True)
class DocumentMatch:
    """A candidate document together with its score breakdown."""

    document: "TaxDocument"
    score: ScoreBreakdown

    @property
    def composite_score(self) -> float:
        return self.score.composite_score

    @property
    def confidence_level(self) -> MatchConfidenceLevel:
        return MatchConfidenceLevel.from_score(self.score.composite_score)

    def __repr__(self) -> str:
        return (
            f"<DocumentMatch(document_id={getattr(self.document, 'id', None)}, "
            f"composite={self.score.composite_score:.3f})>"
        )


@dataclass(frozen=True)
class MultipleScoreBreakdown:
    """Scores for a combination of documents matched against one transaction.

    ``amount_score`` compares the summed amount; ``date_score`` and
    ``vendor_score`` are averages over the documents.
    """

    amount_score: float
    date_score: float
    vendor_score: float
    reference_score: float
    composite_score: float
    document_count: int


@dataclass(frozen=True)
class MultipleDocumentMatch:
    """A ranked document combination."""

    documents: tuple["TaxDocument", ...]
    score: MultipleScoreBreakdown
    strategy: CombinationStrategy
    total_amount: Decimal

    @property
    def composite_score(self) -> float:
        return self.score.composite_score

    @property
    def document_ids(self) -> tuple[int, ...]:
        return tuple(sorted(doc.id for doc in self.documents if doc.id is not None))

    @property
    def confidence_level(self) -> MatchConfidenceLevel:
        return MatchConfidenceLevel.from_score(self.score.composite_score)


@dataclass(frozen=True)
class MultipleAmountValidationResult:
    """Diagnostic comparison of summed document amounts with a transaction.

    ``percentage_difference`` is a fraction of the absolute transaction
    amount (0.05 means 5 %), ``amount_difference`` is signed
    (document total minus transaction amount).
    """

    is_valid: bool
    transaction_amount: Decimal
    total_document_amount: Decimal = Decimal("0")
    valid_document_count: int = 0
    skonto_applied_count: int = 0
    amount_difference: Decimal = Decimal("0")
    percentage_difference: float = 0.0
    has_significant_overage: bool = False
    has_significant_underage: bool = False
    warnings: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)


@dataclass(frozen=True)
class AttachResult:
    """Outcome of one attach or detach request against the attachment store."""

    status: AttachStatus
    transaction_id: int
    document_id: int
    warnings: tuple[str, ...] = ()
    message: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status.succeeded

    @property
    def is_duplicate(self) -> bool:
        return self.status is AttachStatus.DUPLICATE

    @property
    def link_state(self) -> AttachmentState:
        return self.status.link_state

    def raise_for_status(self) -> None:
        """Raise DuplicateAttachmentError for strict callers."""
        if self.is_duplicate:
            raise DuplicateAttachmentError(
                self.message or "Document is already attached to this transaction",
                transaction_id=self.transaction_id,
                document_id=self.document_id,
            )


@dataclass(frozen=True)
class AutoAssignResult:
    """Summary of a single-document auto-assignment batch."""

    total_processed: int = 0
    assigned_count: int = 0
    skipped_count: int = 0
    issues: list[str] = field(default_factory=list)
    states: dict[int, TransactionMatchState] = field(default_factory=dict)

    @property
    def has_issues(self) -> bool:
        return bool(self.issues)


@dataclass(frozen=True)
class MultipleAssignmentResult:
    """Outcome of attaching the best document combination to a transaction."""

    transaction_id: int | None
    outcome: AssignmentOutcome
    documents_attached: int = 0
    total_amount: Decimal = Decimal("0")
    warnings: list[str] = field(default_factory=list)
    attached_document_ids: list[int] = field(default_factory=list)
    best_match: MultipleDocumentMatch | None = None

    @property
    def is_success(self) -> bool:
        return self.outcome is AssignmentOutcome.ASSIGNED

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)


@dataclass(frozen=True)
class AttachmentSummary:
    """Attached documents of a transaction compared with its amount."""

    transaction_id: int
    attachment_count: int
    total_attached_amount: Decimal
    transaction_amount: Decimal
    amount_difference: Decimal
    attached_document_ids: list[int] = field(default_factory=list)

    @property
    def has_amount_mismatch(self) -> bool:
        return abs(self.amount_difference) > Decimal("0.01")


@dataclass(frozen=True)
class TransactionFacts:
    """Detached copy of the transaction fields the matchers read.

    Scoring runs in worker threads; copying the fields first keeps ORM
    entities (and their session) on the event loop thread.
    """

    id: int | None
    gross_amount: Decimal | None
    transaction_datetime: datetime | None
    counterparty: str | None
    sender_receiver: str | None
    transaction_reference: str | None
    transaction_note: str | None

    @classmethod
    def from_entity(cls, transaction: "FinancialTransaction") -> "TransactionFacts":
        return cls(
            id=getattr(transaction, "id", None),
            gross_amount=getattr(transaction, "gross_amount", None),
            transaction_datetime=getattr(transaction, "transaction_datetime", None),
            counterparty=getattr(transaction, "counterparty", None),
            sender_receiver=getattr(transaction, "sender_receiver", None),
            transaction_reference=getattr(transaction, "transaction_reference", None),
            transaction_note=getattr(transaction, "transaction_note", None),
        )


@dataclass(frozen=True)
class DocumentFacts:
    """Detached copy of the document fields the matchers read."""

    id: int | None
    total: Decimal | None
    sub_total: Decimal | None
    tax_amount: Decimal | None
    skonto: Decimal | None
    invoice_date: date | None
    invoice_date_from_folder: date | None
    invoice_number: str | None
    vendor_name: str | None

    @classmethod
    def from_entity(cls, document: "TaxDocument") -> "DocumentFacts":
        return cls(
            id=getattr(document, "id", None),
            total=getattr(document, "total", None),
            sub_total=getattr(document, "sub_total", None),
            tax_amount=getattr(document, "tax_amount", None),
            skonto=getattr(document, "skonto", None),
            invoice_date=getattr(document, "invoice_date", None),
            invoice_date_from_folder=getattr(document, "invoice_date_from_folder", None),
            invoice_number=getattr(document, "invoice_number", None),
            vendor_name=getattr(document, "vendor_name", None),
        )
