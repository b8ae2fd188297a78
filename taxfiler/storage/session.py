"""Database session context managers.

Usage:
    with db_session() as db:
        store = SQLAlchemyAttachmentStore(db)
        ...

    async with async_db_session() as db:
        service = DocumentMatchingService.from_session(db)
        await service.auto_assign()
"""

import asyncio
from collections.abc import AsyncGenerator, Generator
from contextlib import asynccontextmanager, contextmanager

from sqlalchemy.orm import Session

from taxfiler.utils.logging import get_logger

logger = get_logger(__name__)


@contextmanager
def db_session() -> Generator[Session, None, None]:
    """Context manager for database sessions with automatic cleanup.

    The session is rolled back if the block raises and is always closed.
    Committing is left to the caller.

    Raises:
        RuntimeError: If database not initialized
    """
    from taxfiler.storage.database.base import get_session

    db = get_session()
    try:
        logger.debug("db_session_created", session_id=id(db))
        yield db
    except Exception as e:
        logger.error(
            "db_session_error_rollback",
            error=str(e),
            error_type=type(e).__name__,
            session_id=id(db),
        )
        db.rollback()
        raise
    finally:
        logger.debug("db_session_closed", session_id=id(db))
        db.close()


@asynccontextmanager
async def async_db_session() -> AsyncGenerator[Session, None]:
    """Async wrapper around a synchronous session.

    SQLAlchemy work stays synchronous; the wrapper only yields to the event
    loop so it can be used from coroutines.
    """
    from taxfiler.storage.database.base import get_session

    db = get_session()
    try:
        logger.debug("async_db_session_created", session_id=id(db))
        await asyncio.sleep(0)
        yield db
    except BaseException as e:
        logger.error(
            "async_db_session_error_rollback",
            error=str(e),
            error_type=type(e).__name__,
            session_id=id(db),
        )
        db.rollback()
        raise
    finally:
        logger.debug("async_db_session_closed", session_id=id(db))
        db.close()
