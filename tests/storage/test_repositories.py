"""Integration tests for the SQLAlchemy repositories and attachment store."""

from datetime import date, datetime
from decimal import Decimal
from unittest.mock import Mock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from taxfiler.exceptions import (
    DatabaseError,
    DatabaseIntegrityError,
    DuplicateAttachmentError,
    RecordNotFoundError,
)
from taxfiler.matching.application.services import DocumentMatchingService
from taxfiler.matching.domain.enums import AssignmentOutcome, AttachmentState, AttachStatus
from taxfiler.matching.domain.models import DocumentAttachment, FinancialTransaction, TaxDocument
from taxfiler.storage.repositories import (
    SQLAlchemyAttachmentStore,
    SQLAlchemyDocumentRepository,
    SQLAlchemyTransactionRepository,
)

pytestmark = pytest.mark.integration


class TestDocumentRepository:
    @pytest.mark.asyncio
    async def test_unconnected_documents(self, db_session, stored_transaction, stored_documents):
        store = SQLAlchemyAttachmentStore(db_session)
        await store.attach(stored_transaction.id, stored_documents[0].id)

        repository = SQLAlchemyDocumentRepository(db_session)
        unconnected = await repository.get_unconnected_documents()
        everything = await repository.get_documents(unconnected_only=False)

        assert [d.id for d in unconnected] == [stored_documents[1].id, stored_documents[2].id]
        assert len(everything) == 3

    @pytest.mark.asyncio
    async def test_get_document(self, db_session, stored_documents):
        repository = SQLAlchemyDocumentRepository(db_session)

        assert (await repository.get_document(stored_documents[1].id)).name == "office.pdf"
        assert await repository.get_document(9999) is None


class TestTransactionRepository:
    @pytest.mark.asyncio
    async def test_unmatched_by_period(self, db_session, stored_transaction):
        db_session.add(
            FinancialTransaction(
                gross_amount=Decimal("-20.00"),
                transaction_datetime=datetime(2024, 4, 2, 8, 0),
                counterparty="Bakery",
            )
        )
        db_session.commit()
        repository = SQLAlchemyTransactionRepository(db_session)

        march = await repository.get_unmatched_transactions(2024, 3)
        year = await repository.get_unmatched_transactions(2024)

        assert [t.id for t in march] == [stored_transaction.id]
        assert len(year) == 2

    @pytest.mark.asyncio
    async def test_attached_transactions_excluded(
        self, db_session, stored_transaction, stored_documents
    ):
        await SQLAlchemyAttachmentStore(db_session).attach(
            stored_transaction.id, stored_documents[0].id
        )

        unmatched = await SQLAlchemyTransactionRepository(db_session).get_unmatched_transactions()

        assert unmatched == []


class TestAttachmentStore:
    @pytest.mark.asyncio
    async def test_attach_creates_link(self, db_session, stored_transaction, stored_documents):
        store = SQLAlchemyAttachmentStore(db_session)

        result = await store.attach(
            stored_transaction.id, stored_documents[0].id, is_automatic=True, attached_by="tester"
        )

        assert result.status is AttachStatus.CREATED
        assert result.warnings == ()
        attachment = db_session.query(DocumentAttachment).one()
        assert attachment.is_automatic is True
        assert attachment.attached_by == "tester"
        assert attachment.attached_at is not None

    @pytest.mark.asyncio
    async def test_duplicate_returns_status(self, db_session, stored_transaction, stored_documents):
        store = SQLAlchemyAttachmentStore(db_session)
        await store.attach(stored_transaction.id, stored_documents[0].id)

        result = await store.attach(stored_transaction.id, stored_documents[0].id)

        assert result.status is AttachStatus.DUPLICATE
        assert db_session.query(DocumentAttachment).count() == 1
        with pytest.raises(DuplicateAttachmentError):
            result.raise_for_status()

    @pytest.mark.asyncio
    async def test_unknown_ids(self, db_session, stored_transaction):
        store = SQLAlchemyAttachmentStore(db_session)

        missing_document = await store.attach(stored_transaction.id, 9999)
        missing_transaction = await store.attach(9999, 1)

        assert missing_document.status is AttachStatus.NOT_FOUND
        assert missing_document.message == "Document with ID 9999 not found"
        assert missing_transaction.status is AttachStatus.NOT_FOUND
        assert missing_transaction.message == "Transaction with ID 9999 not found"

    @pytest.mark.asyncio
    async def test_document_linked_elsewhere_warns(
        self, db_session, stored_transaction, stored_documents
    ):
        other = FinancialTransaction(
            gross_amount=Decimal("-119.00"),
            transaction_datetime=datetime(2024, 3, 16, 9, 0),
            counterparty="ACME GmbH",
        )
        db_session.add(other)
        db_session.commit()
        store = SQLAlchemyAttachmentStore(db_session)
        await store.attach(stored_transaction.id, stored_documents[0].id)

        result = await store.attach(other.id, stored_documents[0].id)

        assert result.status is AttachStatus.CREATED
        assert result.warnings == (
            f"Document {stored_documents[0].id} is already attached to other transaction(s): "
            f"{stored_transaction.id}",
        )

    @pytest.mark.asyncio
    async def test_amount_overage_warns(self, db_session, stored_transaction, stored_documents):
        store = SQLAlchemyAttachmentStore(db_session)

        results = await store.attach_many(
            stored_transaction.id, [stored_documents[0].id, stored_documents[1].id]
        )

        assert results[0].warnings == ()
        assert results[1].warnings == (
            "Total attached document amount (164.50) will exceed "
            "transaction amount (119.00) by 45.50",
        )

    @pytest.mark.asyncio
    async def test_attach_many_reports_each_document(
        self, db_session, stored_transaction, stored_documents
    ):
        store = SQLAlchemyAttachmentStore(db_session)
        await store.attach(stored_transaction.id, stored_documents[0].id)

        results = await store.attach_many(
            stored_transaction.id, [stored_documents[0].id, 9999, stored_documents[2].id]
        )

        assert [r.status for r in results] == [
            AttachStatus.DUPLICATE,
            AttachStatus.NOT_FOUND,
            AttachStatus.CREATED,
        ]
        assert db_session.query(DocumentAttachment).count() == 2

    @pytest.mark.asyncio
    async def test_detach(self, db_session, stored_transaction, stored_documents):
        store = SQLAlchemyAttachmentStore(db_session)
        await store.attach(stored_transaction.id, stored_documents[0].id)

        removed = await store.detach(stored_transaction.id, stored_documents[0].id)
        again = await store.detach(stored_transaction.id, stored_documents[0].id)

        assert removed.status is AttachStatus.REMOVED
        assert again.status is AttachStatus.NOT_FOUND
        assert again.message == (
            f"No attachment found between transaction {stored_transaction.id} "
            f"and document {stored_documents[0].id}"
        )
        assert await store.list_attachments(stored_transaction.id) == []

    @pytest.mark.asyncio
    async def test_attachment_summary(self, db_session, stored_transaction, stored_documents):
        store = SQLAlchemyAttachmentStore(db_session)
        await store.attach_many(
            stored_transaction.id, [stored_documents[0].id, stored_documents[2].id]
        )

        summary = await store.attachment_summary(stored_transaction.id)

        assert summary.attachment_count == 2
        assert summary.total_attached_amount == Decimal("178.50")
        assert summary.transaction_amount == Decimal("119.00")
        assert summary.amount_difference == Decimal("59.50")
        assert summary.has_amount_mismatch is True

    @pytest.mark.asyncio
    async def test_summary_unknown_transaction(self, db_session):
        with pytest.raises(RecordNotFoundError):
            await SQLAlchemyAttachmentStore(db_session).attachment_summary(9999)

    @pytest.mark.asyncio
    async def test_storage_failure_wrapped(self):
        session = Mock()
        session.query.side_effect = OperationalError("SELECT", {}, Exception("disk I/O error"))

        with pytest.raises(DatabaseError) as exc_info:
            await SQLAlchemyAttachmentStore(session).list_attachments(1)

        assert exc_info.value.context == {"transaction_id": 1}
        assert isinstance(exc_info.value.original_error, OperationalError)

    @pytest.mark.asyncio
    async def test_constraint_violation_wrapped(
        self, db_session, monkeypatch, stored_transaction, stored_documents
    ):
        monkeypatch.setattr(
            db_session,
            "commit",
            Mock(side_effect=IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))),
        )

        with pytest.raises(DatabaseIntegrityError) as exc_info:
            await SQLAlchemyAttachmentStore(db_session).attach(
                stored_transaction.id, stored_documents[0].id
            )

        assert exc_info.value.context == {"transaction_id": stored_transaction.id}
        assert isinstance(exc_info.value.original_error, IntegrityError)
        assert db_session.query(DocumentAttachment).count() == 0

    @pytest.mark.asyncio
    async def test_link_state_follows_requests(
        self, db_session, stored_transaction, stored_documents
    ):
        store = SQLAlchemyAttachmentStore(db_session)
        document_id = stored_documents[0].id

        created = await store.attach(stored_transaction.id, document_id)
        duplicate = await store.attach(stored_transaction.id, document_id)
        removed = await store.detach(stored_transaction.id, document_id)
        missing = await store.detach(stored_transaction.id, document_id)

        assert created.link_state is AttachmentState.ATTACHED
        assert duplicate.link_state is AttachmentState.ATTACHED
        assert removed.link_state is AttachmentState.DETACHED
        assert missing.link_state is AttachmentState.UNATTACHED


class TestEndToEnd:
    @pytest.mark.asyncio
    async def test_auto_assign_from_session(
        self, db_session, matching_config, stored_transaction, stored_documents
    ):
        service = DocumentMatchingService.from_session(db_session, matching_config)

        result = await service.auto_assign()

        assert result.assigned_count == 1
        attachment = db_session.query(DocumentAttachment).one()
        assert attachment.transaction_id == stored_transaction.id
        assert attachment.document_id == stored_documents[0].id
        assert attachment.is_automatic is True
        assert attachment.attached_by == "auto-assign"

    @pytest.mark.asyncio
    async def test_auto_assign_multiple_from_session(self, db_session, matching_config):
        transaction = FinancialTransaction(
            gross_amount=Decimal("-300.00"),
            transaction_datetime=datetime(2024, 6, 3, 12, 0),
            counterparty="Hosting AG",
            transaction_note="Beleg HO-501 und HO-502",
        )
        documents = [
            TaxDocument(
                name=f"hosting-{n}.pdf",
                total=Decimal(amount),
                invoice_date=date(2024, 6, 1),
                vendor_name="Hosting AG",
                invoice_number=f"HO-50{n}",
            )
            for n, amount in ((1, "120.00"), (2, "180.00"))
        ]
        db_session.add(transaction)
        db_session.add_all(documents)
        db_session.commit()
        service = DocumentMatchingService.from_session(db_session, matching_config)

        result = await service.auto_assign_multiple(transaction.id)

        assert result.outcome is AssignmentOutcome.ASSIGNED
        assert sorted(result.attached_document_ids) == sorted(d.id for d in documents)
        assert db_session.query(DocumentAttachment).count() == 2
