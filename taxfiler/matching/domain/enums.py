"""Domain enumerations for document matching."""

from enum import Enum


class MatchConfidenceLevel(Enum):
    """Coarse confidence bucket derived from a composite score."""

    HIGH = "high"  # >= 0.7
    MEDIUM = "medium"  # >= 0.4
    LOW = "low"

    @classmethod
    def from_score(cls, score: float) -> "MatchConfidenceLevel":
        if score >= 0.7:
            return cls.HIGH
        if score >= 0.4:
            return cls.MEDIUM
        return cls.LOW


class TransactionMatchState(Enum):
    """Where a transaction ended up in a matching run."""

    UNMATCHED = "unmatched"
    CANDIDATES_RANKED = "candidates_ranked"
    ASSIGNED = "assigned"
    SKIPPED_BELOW_THRESHOLD = "skipped_below_threshold"
    SKIPPED_NO_CANDIDATES = "skipped_no_candidates"

    @property
    def is_terminal(self) -> bool:
        return self in (
            TransactionMatchState.ASSIGNED,
            TransactionMatchState.SKIPPED_BELOW_THRESHOLD,
            TransactionMatchState.SKIPPED_NO_CANDIDATES,
        )


class AttachmentState(Enum):
    """Lifecycle of a transaction/document link."""

    UNATTACHED = "unattached"
    ATTACHED = "attached"
    DETACHED = "detached"


class AttachStatus(Enum):
    """Outcome of a single attach or detach request."""

    CREATED = "created"
    REMOVED = "removed"
    DUPLICATE = "duplicate"
    NOT_FOUND = "not_found"

    @property
    def succeeded(self) -> bool:
        return self in (AttachStatus.CREATED, AttachStatus.REMOVED)

    @property
    def link_state(self) -> AttachmentState:
        """State of the (transaction, document) link after the request."""
        if self in (AttachStatus.CREATED, AttachStatus.DUPLICATE):
            return AttachmentState.ATTACHED
        if self is AttachStatus.REMOVED:
            return AttachmentState.DETACHED
        return AttachmentState.UNATTACHED


class AssignmentOutcome(Enum):
    """Result of a multi-document auto-assignment request."""

    ASSIGNED = "assigned"
    ALREADY_ATTACHED = "already_attached"
    SKIPPED_BELOW_THRESHOLD = "skipped_below_threshold"
    SKIPPED_NO_CANDIDATES = "skipped_no_candidates"
    FAILED = "failed"
    TRANSACTION_NOT_FOUND = "transaction_not_found"


class CombinationStrategy(Enum):
    """How a candidate document combination was generated."""

    REFERENCE = "reference"
    AMOUNT = "amount"
    HYBRID = "hybrid"
