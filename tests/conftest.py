"""
Pytest configuration and global fixtures.

This module provides shared fixtures used across all tests.
"""

from collections.abc import Callable, Generator
from datetime import date, datetime
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from taxfiler.matching.config import MatchingConfiguration
from taxfiler.matching.domain.models import FinancialTransaction, TaxDocument
from taxfiler.storage.database.base import Base


@pytest.fixture(scope="function")
def db_engine():
    """Create an in-memory SQLite database engine for testing."""
    engine = create_engine("sqlite:///:memory:", echo=False)
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """
    Create a database session for testing.

    Each test gets a fresh session with automatic rollback.
    """
    SessionLocal = sessionmaker(bind=db_engine)
    session = SessionLocal()

    yield session

    session.rollback()
    session.close()


@pytest.fixture
def matching_config() -> MatchingConfiguration:
    """Default configuration, isolated from any .env file or environment."""
    return MatchingConfiguration(_env_file=None)


@pytest.fixture
def make_transaction() -> Callable[..., FinancialTransaction]:
    """Factory for transient transactions (not added to a session)."""

    def _make(
        id: int | None = 1,
        amount: str | Decimal = "100.00",
        booked: datetime = datetime(2024, 3, 15, 10, 30),
        counterparty: str | None = "ACME GmbH",
        note: str | None = None,
        **fields,
    ) -> FinancialTransaction:
        return FinancialTransaction(
            id=id,
            gross_amount=Decimal(amount),
            transaction_datetime=booked,
            counterparty=counterparty,
            transaction_note=note,
            **fields,
        )

    return _make


@pytest.fixture
def make_document() -> Callable[..., TaxDocument]:
    """Factory for transient documents (not added to a session)."""

    def _make(
        id: int | None = 1,
        total: str | Decimal | None = "100.00",
        invoice_date: date | None = date(2024, 3, 15),
        vendor: str | None = "ACME GmbH",
        invoice_number: str | None = None,
        **fields,
    ) -> TaxDocument:
        return TaxDocument(
            id=id,
            name=f"document-{id}.pdf",
            total=Decimal(total) if total is not None else None,
            invoice_date=invoice_date,
            vendor_name=vendor,
            invoice_number=invoice_number,
            **fields,
        )

    return _make


@pytest.fixture
def stored_transaction(db_session: Session) -> FinancialTransaction:
    """A persisted outgoing payment of 119.00 to ACME."""
    transaction = FinancialTransaction(
        gross_amount=Decimal("-119.00"),
        transaction_datetime=datetime(2024, 3, 15, 9, 0),
        counterparty="ACME GmbH",
        transaction_note="Rechnung RE-2024-001",
        is_outgoing=True,
    )
    db_session.add(transaction)
    db_session.commit()
    db_session.refresh(transaction)
    return transaction


@pytest.fixture
def stored_documents(db_session: Session) -> list[TaxDocument]:
    """Three persisted documents; the first one matches ``stored_transaction``."""
    documents = [
        TaxDocument(
            name="acme.pdf",
            total=Decimal("119.00"),
            invoice_date=date(2024, 3, 14),
            vendor_name="ACME GmbH",
            invoice_number="RE-2024-001",
        ),
        TaxDocument(
            name="office.pdf",
            total=Decimal("45.50"),
            invoice_date=date(2024, 1, 3),
            vendor_name="Office Supplies AG",
            invoice_number="OS-77812",
        ),
        TaxDocument(
            name="fuel.pdf",
            sub_total=Decimal("50.00"),
            tax_amount=Decimal("9.50"),
            invoice_date=date(2024, 3, 2),
            vendor_name="Shell Station",
        ),
    ]
    db_session.add_all(documents)
    db_session.commit()
    for document in documents:
        db_session.refresh(document)
    return documents
