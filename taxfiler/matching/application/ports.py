"""Storage ports used by the matching service.

The engine never talks to a database directly. It reads candidates and
writes attachments through these protocols; ``taxfiler.storage.repositories``
provides the SQLAlchemy implementation and tests use ``AsyncMock``.
"""

from collections.abc import Sequence
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from ..domain.models import DocumentAttachment, FinancialTransaction, TaxDocument
    from ..domain.value_objects import AttachmentSummary, AttachResult


class DocumentRepository(Protocol):
    async def get_unconnected_documents(self) -> Sequence["TaxDocument"]: ...

    async def get_documents(self, unconnected_only: bool = True) -> Sequence["TaxDocument"]: ...

    async def get_document(self, document_id: int) -> "TaxDocument | None": ...


class TransactionRepository(Protocol):
    async def get_transaction(self, transaction_id: int) -> "FinancialTransaction | None": ...

    async def get_unmatched_transactions(
        self, year: int | None = None, month: int | None = None
    ) -> Sequence["FinancialTransaction"]: ...


class AttachmentStore(Protocol):
    """Creates and removes transaction/document links.

    Re-attaching an existing pair must not raise; it returns an
    ``AttachResult`` with status ``DUPLICATE``.
    """

    async def attach(
        self,
        transaction_id: int,
        document_id: int,
        *,
        is_automatic: bool = False,
        attached_by: str | None = None,
    ) -> "AttachResult": ...

    async def attach_many(
        self,
        transaction_id: int,
        document_ids: Sequence[int],
        *,
        is_automatic: bool = False,
        attached_by: str | None = None,
    ) -> list["AttachResult"]:
        """Attach all documents as one unit: either every new link is stored or none."""
        ...

    async def detach(self, transaction_id: int, document_id: int) -> "AttachResult": ...

    async def list_attachments(self, transaction_id: int) -> Sequence["DocumentAttachment"]: ...

    async def attachment_summary(self, transaction_id: int) -> "AttachmentSummary": ...
