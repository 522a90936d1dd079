"""Transaction unit for service operations.

Repositories ``flush()`` but never ``commit()``; the service wraps each
write operation in ``transaction(db)`` so that every statement inside the
block commits together or not at all.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from survey_core.errors import StorageError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def transaction(db: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Commit on normal exit, roll back on any exception.

    Database failures (including a failing commit) surface as
    :class:`StorageError`.  Every other exception, cancellation included,
    is re-raised unchanged after the rollback.
    """
    try:
        yield db
        await db.commit()
    except SQLAlchemyError as exc:
        logger.error("Transaction failed, rolling back: %s", exc)
        await db.rollback()
        raise StorageError("storage operation failed") from exc
    except BaseException:
        await db.rollback()
        raise
