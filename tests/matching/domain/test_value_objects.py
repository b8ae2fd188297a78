"""Tests for matching value objects and enums."""

from dataclasses import FrozenInstanceError
from decimal import Decimal

import pytest

from taxfiler.exceptions import DuplicateAttachmentError
from taxfiler.matching.domain.enums import (
    AttachmentState,
    AttachStatus,
    CombinationStrategy,
    MatchConfidenceLevel,
    TransactionMatchState,
)
from taxfiler.matching.domain.value_objects import (
    AttachmentSummary,
    AttachResult,
    DocumentFacts,
    MultipleDocumentMatch,
    MultipleScoreBreakdown,
    ScoreBreakdown,
    TransactionFacts,
)

pytestmark = pytest.mark.unit


def _breakdown(**overrides):
    values = dict(
        amount_score=0.8,
        date_score=1.0,
        vendor_score=0.5,
        reference_score=0.0,
        composite_score=0.7,
    )
    values.update(overrides)
    return ScoreBreakdown(**values)


class TestScoreBreakdown:
    def test_strongest_factor(self):
        assert _breakdown().strongest_factor == "date"

    def test_immutable(self):
        with pytest.raises(FrozenInstanceError):
            _breakdown().composite_score = 0.1

    def test_to_dict(self):
        assert _breakdown(bonus_applied=True).to_dict()["bonus_applied"] is True


class TestMultipleDocumentMatch:
    def test_document_ids_sorted(self, make_document):
        match = MultipleDocumentMatch(
            documents=(make_document(id=9), make_document(id=4)),
            score=MultipleScoreBreakdown(1.0, 1.0, 1.0, 0.0, 0.99, 2),
            strategy=CombinationStrategy.AMOUNT,
            total_amount=Decimal("200.00"),
        )

        assert match.document_ids == (4, 9)
        assert match.confidence_level is MatchConfidenceLevel.HIGH


class TestAttachResult:
    def test_created_succeeds(self):
        result = AttachResult(status=AttachStatus.CREATED, transaction_id=1, document_id=2)

        assert result.succeeded is True
        result.raise_for_status()

    def test_duplicate_raises_on_request(self):
        result = AttachResult(status=AttachStatus.DUPLICATE, transaction_id=1, document_id=2)

        assert result.succeeded is False
        assert result.is_duplicate is True
        with pytest.raises(DuplicateAttachmentError):
            result.raise_for_status()

    @pytest.mark.parametrize(
        "status,state",
        [
            (AttachStatus.CREATED, AttachmentState.ATTACHED),
            (AttachStatus.DUPLICATE, AttachmentState.ATTACHED),
            (AttachStatus.REMOVED, AttachmentState.DETACHED),
            (AttachStatus.NOT_FOUND, AttachmentState.UNATTACHED),
        ],
    )
    def test_link_state(self, status, state):
        result = AttachResult(status=status, transaction_id=1, document_id=2)

        assert result.link_state is state


class TestAttachmentSummary:
    @pytest.mark.parametrize(
        "difference,expected",
        [(Decimal("0.00"), False), (Decimal("0.01"), False), (Decimal("-0.02"), True)],
    )
    def test_amount_mismatch(self, difference, expected):
        summary = AttachmentSummary(
            transaction_id=1,
            attachment_count=1,
            total_attached_amount=Decimal("100.00") + difference,
            transaction_amount=Decimal("100.00"),
            amount_difference=difference,
        )
        assert summary.has_amount_mismatch is expected


class TestFacts:
    def test_snapshots_copy_matching_fields(self, make_transaction, make_document):
        transaction = make_transaction(id=3, note="RE-1")
        document = make_document(id=5, skonto=Decimal("2"))

        transaction_facts = TransactionFacts.from_entity(transaction)
        document_facts = DocumentFacts.from_entity(document)

        assert transaction_facts.id == 3
        assert transaction_facts.transaction_note == "RE-1"
        assert transaction_facts.gross_amount == Decimal("100.00")
        assert document_facts.id == 5
        assert document_facts.skonto == Decimal("2")
        assert document_facts.vendor_name == "ACME GmbH"


def test_terminal_states():
    assert TransactionMatchState.ASSIGNED.is_terminal
    assert TransactionMatchState.SKIPPED_NO_CANDIDATES.is_terminal
    assert not TransactionMatchState.CANDIDATES_RANKED.is_terminal
    assert not TransactionMatchState.UNMATCHED.is_terminal
