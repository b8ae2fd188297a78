"""SQLAlchemy implementations of the matching service's storage ports.

All three repositories share one ``Session``. Their methods are coroutines so
they satisfy the async ports, but the SQLAlchemy work itself is synchronous.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

from sqlalchemy import extract
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..exceptions import (
    DatabaseError,
    DatabaseIntegrityError,
    RecordNotFoundError,
    wrap_exception,
)
from ..matching.domain.enums import AttachStatus
from ..matching.domain.models import DocumentAttachment, FinancialTransaction, TaxDocument
from ..matching.domain.value_objects import AttachmentSummary, AttachResult
from ..matching.matchers.amount import best_document_amount
from ..utils.logging import get_logger, log_attachment_created, log_attachment_removed

logger = get_logger(__name__)

# Warn once attached documents exceed the transaction amount by 10 %
AMOUNT_WARNING_RATIO = Decimal("1.10")


class SQLAlchemyDocumentRepository:
    """Read access to tax documents."""

    def __init__(self, session: Session):
        self._session = session

    async def get_unconnected_documents(self) -> list[TaxDocument]:
        return await self.get_documents(unconnected_only=True)

    async def get_documents(self, unconnected_only: bool = True) -> list[TaxDocument]:
        try:
            query = self._session.query(TaxDocument)
            if unconnected_only:
                query = query.filter(~TaxDocument.attachments.any())
            return query.order_by(TaxDocument.id).all()
        except SQLAlchemyError as e:
            raise wrap_exception(
                e, "Failed to load documents", exception_class=DatabaseError
            ) from e

    async def get_document(self, document_id: int) -> TaxDocument | None:
        try:
            return self._session.get(TaxDocument, document_id)
        except SQLAlchemyError as e:
            raise wrap_exception(
                e, "Failed to load document", exception_class=DatabaseError, document_id=document_id
            ) from e


class SQLAlchemyTransactionRepository:
    """Read access to financial transactions."""

    def __init__(self, session: Session):
        self._session = session

    async def get_transaction(self, transaction_id: int) -> FinancialTransaction | None:
        try:
            return self._session.get(FinancialTransaction, transaction_id)
        except SQLAlchemyError as e:
            raise wrap_exception(
                e,
                "Failed to load transaction",
                exception_class=DatabaseError,
                transaction_id=transaction_id,
            ) from e

    async def get_unmatched_transactions(
        self, year: int | None = None, month: int | None = None
    ) -> list[FinancialTransaction]:
        """Transactions without any attachment, optionally limited to a booking period."""
        try:
            query = self._session.query(FinancialTransaction).filter(
                ~FinancialTransaction.attachments.any()
            )
            if year is not None:
                query = query.filter(
                    extract("year", FinancialTransaction.transaction_datetime) == year
                )
            if month is not None:
                query = query.filter(
                    extract("month", FinancialTransaction.transaction_datetime) == month
                )
            return query.order_by(
                FinancialTransaction.transaction_datetime, FinancialTransaction.id
            ).all()
        except SQLAlchemyError as e:
            raise wrap_exception(
                e, "Failed to load unmatched transactions", exception_class=DatabaseError
            ) from e


class SQLAlchemyAttachmentStore:
    """Creates and removes transaction/document links.

    Business rules:
    - a (transaction, document) pair exists at most once; a repeat request
      returns status DUPLICATE
    - attaching a document that is already linked elsewhere succeeds with a warning
    - attaching past 110 % of the transaction amount succeeds with a warning
    - every create and remove is written to the audit log
    """

    def __init__(self, session: Session, default_actor: str | None = None):
        self._session = session
        self._default_actor = default_actor

    async def attach(
        self,
        transaction_id: int,
        document_id: int,
        *,
        is_automatic: bool = False,
        attached_by: str | None = None,
    ) -> AttachResult:
        results = await self.attach_many(
            transaction_id, [document_id], is_automatic=is_automatic, attached_by=attached_by
        )
        return results[0]

    async def attach_many(
        self,
        transaction_id: int,
        document_ids: Sequence[int],
        *,
        is_automatic: bool = False,
        attached_by: str | None = None,
    ) -> list[AttachResult]:
        """Attach several documents in a single commit.

        Duplicates and unknown ids are reported per document and do not stop
        the others. A storage failure rolls back every link of the call.
        """
        actor = attached_by or self._default_actor or ("automatic" if is_automatic else None)
        db = self._session

        try:
            transaction = db.get(FinancialTransaction, transaction_id)
            if transaction is None:
                logger.warning("attach_transaction_not_found", transaction_id=transaction_id)
                return [
                    AttachResult(
                        status=AttachStatus.NOT_FOUND,
                        transaction_id=transaction_id,
                        document_id=document_id,
                        message=f"Transaction with ID {transaction_id} not found",
                    )
                    for document_id in document_ids
                ]

            existing_ids = {a.document_id for a in transaction.attachments}
            attached_total = self._attached_total(transaction)
            transaction_amount = abs(transaction.gross_amount)

            results: list[AttachResult] = []
            created: list[DocumentAttachment] = []
            for document_id in document_ids:
                document = db.get(TaxDocument, document_id)
                if document is None:
                    logger.warning(
                        "attach_document_not_found",
                        transaction_id=transaction_id,
                        document_id=document_id,
                    )
                    results.append(
                        AttachResult(
                            status=AttachStatus.NOT_FOUND,
                            transaction_id=transaction_id,
                            document_id=document_id,
                            message=f"Document with ID {document_id} not found",
                        )
                    )
                    continue

                if document_id in existing_ids:
                    logger.warning(
                        "attach_duplicate_rejected",
                        transaction_id=transaction_id,
                        document_id=document_id,
                    )
                    results.append(
                        AttachResult(
                            status=AttachStatus.DUPLICATE,
                            transaction_id=transaction_id,
                            document_id=document_id,
                            message=(
                                f"Document {document_id} is already attached to "
                                f"transaction {transaction_id}"
                            ),
                        )
                    )
                    continue

                warnings: list[str] = []
                other_ids = sorted(
                    a.transaction_id for a in document.attachments if a.transaction_id != transaction_id
                )
                if other_ids:
                    warnings.append(
                        f"Document {document_id} is already attached to other transaction(s): "
                        + ", ".join(str(i) for i in other_ids)
                    )

                amount = best_document_amount(document)
                if amount is not None:
                    attached_total += abs(amount)
                    if attached_total > transaction_amount * AMOUNT_WARNING_RATIO:
                        overage = attached_total - transaction_amount
                        warnings.append(
                            f"Total attached document amount ({attached_total:.2f}) will exceed "
                            f"transaction amount ({transaction_amount:.2f}) by {overage:.2f}"
                        )
                        logger.warning(
                            "attachment_amount_overage",
                            transaction_id=transaction_id,
                            total_attached=str(attached_total),
                            transaction_amount=str(transaction_amount),
                        )

                attachment = DocumentAttachment(
                    transaction=transaction,
                    document=document,
                    attached_by=actor,
                    is_automatic=is_automatic,
                )
                db.add(attachment)
                created.append(attachment)
                existing_ids.add(document_id)
                results.append(
                    AttachResult(
                        status=AttachStatus.CREATED,
                        transaction_id=transaction_id,
                        document_id=document_id,
                        warnings=tuple(warnings),
                    )
                )

            if created:
                db.commit()
        except IntegrityError as e:
            db.rollback()
            raise wrap_exception(
                e,
                "Attachment violates a database constraint",
                exception_class=DatabaseIntegrityError,
                transaction_id=transaction_id,
            ) from e
        except SQLAlchemyError as e:
            db.rollback()
            raise wrap_exception(
                e,
                "Failed to attach documents",
                exception_class=DatabaseError,
                transaction_id=transaction_id,
            ) from e

        for attachment in created:
            log_attachment_created(
                logger,
                transaction_id=transaction_id,
                document_id=attachment.document_id,
                attached_by=actor,
                is_automatic=is_automatic,
            )
        return results

    async def detach(self, transaction_id: int, document_id: int) -> AttachResult:
        db = self._session
        try:
            attachment = (
                db.query(DocumentAttachment)
                .filter(
                    DocumentAttachment.transaction_id == transaction_id,
                    DocumentAttachment.document_id == document_id,
                )
                .first()
            )
            if attachment is None:
                logger.warning(
                    "detach_attachment_not_found",
                    transaction_id=transaction_id,
                    document_id=document_id,
                )
                return AttachResult(
                    status=AttachStatus.NOT_FOUND,
                    transaction_id=transaction_id,
                    document_id=document_id,
                    message=(
                        f"No attachment found between transaction {transaction_id} "
                        f"and document {document_id}"
                    ),
                )

            db.delete(attachment)
            db.commit()
            db.expire_all()
        except SQLAlchemyError as e:
            db.rollback()
            raise wrap_exception(
                e,
                "Failed to detach document",
                exception_class=DatabaseError,
                transaction_id=transaction_id,
                document_id=document_id,
            ) from e

        log_attachment_removed(logger, transaction_id=transaction_id, document_id=document_id)
        return AttachResult(
            status=AttachStatus.REMOVED, transaction_id=transaction_id, document_id=document_id
        )

    async def list_attachments(self, transaction_id: int) -> list[DocumentAttachment]:
        try:
            return (
                self._session.query(DocumentAttachment)
                .filter(DocumentAttachment.transaction_id == transaction_id)
                .order_by(DocumentAttachment.attached_at, DocumentAttachment.id)
                .all()
            )
        except SQLAlchemyError as e:
            raise wrap_exception(
                e,
                "Failed to list attachments",
                exception_class=DatabaseError,
                transaction_id=transaction_id,
            ) from e

    async def attachment_summary(self, transaction_id: int) -> AttachmentSummary:
        """Compare the attached documents' total with the transaction amount.

        Raises:
            RecordNotFoundError: If the transaction does not exist
        """
        try:
            transaction = self._session.get(FinancialTransaction, transaction_id)
        except SQLAlchemyError as e:
            raise wrap_exception(
                e,
                "Failed to load transaction",
                exception_class=DatabaseError,
                transaction_id=transaction_id,
            ) from e

        if transaction is None:
            raise RecordNotFoundError(
                f"Transaction with ID {transaction_id} not found",
                entity_type="FinancialTransaction",
                entity_id=transaction_id,
            )

        total = self._attached_total(transaction)
        transaction_amount = abs(transaction.gross_amount)
        summary = AttachmentSummary(
            transaction_id=transaction_id,
            attachment_count=len(transaction.attachments),
            total_attached_amount=total,
            transaction_amount=transaction_amount,
            amount_difference=total - transaction_amount,
            attached_document_ids=[a.document_id for a in transaction.attachments],
        )
        logger.debug(
            "attachment_summary_generated",
            transaction_id=transaction_id,
            attachment_count=summary.attachment_count,
            has_amount_mismatch=summary.has_amount_mismatch,
        )
        return summary

    @staticmethod
    def _attached_total(transaction: FinancialTransaction) -> Decimal:
        total = Decimal("0")
        for attachment in transaction.attachments:
            amount = best_document_amount(attachment.document)
            if amount is not None:
                total += abs(amount)
        return total
