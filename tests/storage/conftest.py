"""Fixtures for storage layer tests."""

import pytest

from taxfiler.storage.database import base


@pytest.fixture(scope="function")
def test_db():
    """
    Initialize the module-level engine with an in-memory SQLite database.

    Used by the session context manager tests, which go through
    ``get_session()`` instead of the ``db_session`` fixture.
    """
    base.init_db("sqlite:///:memory:")

    yield

    if base.engine is not None:
        base.engine.dispose()
