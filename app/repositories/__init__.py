"""
Storage backends.
"""

import logging

from app.core.config import Settings
from app.core.database import create_engine, create_session_factory
from app.repositories.base import StatusTotals, StorageBackend, UnitOfWork
from app.repositories.document import DocumentStorage
from app.repositories.sql import SqlAlchemyStorage


logger = logging.getLogger(__name__)


def create_storage(settings: Settings) -> StorageBackend:
    """Build the process-wide storage backend selected by STORAGE_BACKEND."""
    if settings.STORAGE_BACKEND == "document":
        logger.info("Using document storage backend")
        return DocumentStorage()

    logger.info("Using relational storage backend")
    engine = create_engine(settings.DATABASE_URL, echo=settings.DEBUG and settings.is_development)
    return SqlAlchemyStorage(create_session_factory(engine), engine=engine)


__all__ = [
    "StatusTotals",
    "StorageBackend",
    "UnitOfWork",
    "DocumentStorage",
    "SqlAlchemyStorage",
    "create_storage",
]
