"""SQL implementation of the document store."""

import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tripdesk.db.models import ItineraryDocument
from tripdesk.db.repositories import Document
from tripdesk.errors import StoreError

logger = logging.getLogger(__name__)


class SqlDocumentStore:
    """SQL implementation of DocumentStore."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get(self, context_id: str) -> Document | None:
        """Get the document for a context."""
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(ItineraryDocument.document).where(
                        ItineraryDocument.context_id == context_id
                    )
                )
                return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.warning("Document read failed for %s: %s", context_id, type(e).__name__)
            raise StoreError(f"read failed: {type(e).__name__}") from e

    async def put(self, context_id: str, document: Document) -> None:
        """Insert or replace the document for a context."""
        try:
            async with self._session_factory() as session:
                row = await session.get(ItineraryDocument, context_id)
                if row is None:
                    session.add(ItineraryDocument(context_id=context_id, document=document))
                else:
                    row.document = document
                await session.commit()
        except SQLAlchemyError as e:
            logger.warning("Document write failed for %s: %s", context_id, type(e).__name__)
            raise StoreError(f"write failed: {type(e).__name__}") from e
