"""Domain entities for document matching.

DDD Entities:
- Have identity (integer primary key from Base)
- Owned by other subsystems (bank import, document ingestion); the matching
  engine reads them and only mutates attachments
- Mapped to database tables via SQLAlchemy
"""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Date, DateTime, ForeignKey, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ...storage.database.base import Base, utcnow


class FinancialTransaction(Base):
    """Bank-account transaction that may need supporting documents.

    Attributes:
        gross_amount: Signed amount (negative for outgoing payments)
        net_amount: Amount without tax, when known
        tax_amount: Tax part of the amount, when known
        tax_rate: Tax rate in percent
        transaction_datetime: Booking timestamp
        counterparty: Name of the other party as reported by the bank
        sender_receiver: Alternate name field from the statement
        transaction_reference: Bank reference field
        transaction_note: Free text, may contain one or more invoice numbers
        is_outgoing: Whether money left the account
        is_sales_tax_relevant: Counts towards sales tax reporting
        is_income_tax_relevant: Counts towards income tax reporting
        tax_year / tax_month: Reporting period
    """

    __tablename__ = "financial_transactions"

    gross_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, index=True)
    net_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    tax_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    tax_rate: Mapped[Decimal | None] = mapped_column(Numeric(5, 2))

    transaction_datetime: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)

    counterparty: Mapped[str | None] = mapped_column(String(200))
    sender_receiver: Mapped[str | None] = mapped_column(String(200))
    counterparty_iban: Mapped[str | None] = mapped_column(String(34))

    transaction_reference: Mapped[str | None] = mapped_column(String(200))
    transaction_note: Mapped[str | None] = mapped_column(Text)

    is_outgoing: Mapped[bool] = mapped_column(default=True, nullable=False)
    is_sales_tax_relevant: Mapped[bool] = mapped_column(default=False, nullable=False)
    is_income_tax_relevant: Mapped[bool] = mapped_column(default=False, nullable=False)

    tax_year: Mapped[int | None] = mapped_column(index=True)
    tax_month: Mapped[int | None] = mapped_column(index=True)

    attachments: Mapped[list["DocumentAttachment"]] = relationship(
        back_populates="transaction", cascade="all, delete-orphan"
    )

    @property
    def has_attachments(self) -> bool:
        return bool(self.attachments)

    @property
    def transaction_date(self) -> date | None:
        if self.transaction_datetime is None:
            return None
        return self.transaction_datetime.date()

    def __repr__(self) -> str:
        return (
            f"<FinancialTransaction(id={self.id}, amount={self.gross_amount}, "
            f"counterparty='{self.counterparty}')>"
        )


class TaxDocument(Base):
    """Invoice or receipt with fields already extracted by ingestion.

    Amount fields are optional because extraction is often partial. A zero
    amount is treated like a missing one when matching.

    Attributes:
        name: File name of the source document
        external_ref: Identifier in the file store the document came from
        total / sub_total / tax_amount / tax_rate: Extracted amounts
        skonto: Early-payment discount in percent
        invoice_date: Date printed on the document
        invoice_date_from_folder: Fallback date derived from the storage folder
        invoice_number: Invoice or receipt number
        vendor_name: Issuer of the document
        parsed: Whether field extraction has run
    """

    __tablename__ = "tax_documents"

    name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    external_ref: Mapped[str | None] = mapped_column(String(255), index=True)

    total: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    sub_total: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    tax_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    tax_rate: Mapped[Decimal | None] = mapped_column(Numeric(5, 2))
    skonto: Mapped[Decimal | None] = mapped_column(Numeric(7, 4))

    invoice_date: Mapped[date | None] = mapped_column(Date, index=True)
    invoice_date_from_folder: Mapped[date | None] = mapped_column(Date)
    invoice_number: Mapped[str | None] = mapped_column(String(100), index=True)
    vendor_name: Mapped[str | None] = mapped_column(String(200))

    parsed: Mapped[bool] = mapped_column(default=False, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text)

    attachments: Mapped[list["DocumentAttachment"]] = relationship(
        back_populates="document", cascade="all, delete-orphan"
    )

    @property
    def unconnected(self) -> bool:
        """True while no transaction links to this document."""
        return not self.attachments

    def __repr__(self) -> str:
        return (
            f"<TaxDocument(id={self.id}, invoice_number='{self.invoice_number}', "
            f"total={self.total})>"
        )


class DocumentAttachment(Base):
    """Link between one transaction and one document.

    A pair exists at most once. Both sides may hold many links.
    """

    __tablename__ = "document_attachments"
    __table_args__ = (UniqueConstraint("transaction_id", "document_id"),)

    transaction_id: Mapped[int] = mapped_column(
        ForeignKey("financial_transactions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    document_id: Mapped[int] = mapped_column(
        ForeignKey("tax_documents.id", ondelete="CASCADE"), nullable=False, index=True
    )
    attached_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    attached_by: Mapped[str | None] = mapped_column(String(100))
    is_automatic: Mapped[bool] = mapped_column(default=False, nullable=False)

    transaction: Mapped["FinancialTransaction"] = relationship(back_populates="attachments")
    document: Mapped["TaxDocument"] = relationship(back_populates="attachments")

    def __repr__(self) -> str:
        return (
            f"<DocumentAttachment(transaction_id={self.transaction_id}, "
            f"document_id={self.document_id}, automatic={self.is_automatic})>"
        )
