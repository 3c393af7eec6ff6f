"""Persistence for generated documents."""

from datetime import datetime, timedelta, timezone

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from data_agent.documents.ids import generate_document_id
from data_agent.documents.models import DocumentRecord, SharedDocumentModel
from data_agent.telemetry import DOCUMENT_SAVED, DOCUMENTS_PURGED, get_logger

log = get_logger(__name__)


class DocumentStoreError(Exception):
    """Raised when a document cannot be saved or read."""

    pass


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the timezone-less columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class DocumentStore:
    """Key-value store for generated documents with a fixed retention window.

    Usage:
        store = DocumentStore(AsyncSessionLocal, retention_days=30)
        doc_id = await store.save("<!DOCTYPE html>...", model="blended")
        record = await store.get(doc_id)
    """

    def __init__(
        self, session_factory: async_sessionmaker[AsyncSession], retention_days: int = 30
    ):
        """Initialize the store.

        Args:
            session_factory: Async session factory bound to the document database.
            retention_days: Days a saved document stays retrievable.
        """
        self.session_factory = session_factory
        self.retention = timedelta(days=retention_days)

    async def save(self, content: str, model: str | None = None) -> str:
        """Save a document under a fresh random id.

        Args:
            content: Document body.
            model: Model id or route that generated it.

        Returns:
            The 64-character document id.

        Raises:
            DocumentStoreError: If the insert fails.
        """
        now = utcnow()
        doc_id = generate_document_id()
        try:
            async with self.session_factory() as db:
                db.add(
                    SharedDocumentModel(
                        id=doc_id,
                        content=content,
                        model=model,
                        created_at=now,
                        expires_at=now + self.retention,
                    )
                )
                await db.commit()
        except SQLAlchemyError as e:
            raise DocumentStoreError(f"Failed to save document: {e}") from e

        log.info(DOCUMENT_SAVED, document_id=doc_id, model=model, size=len(content))
        return doc_id

    async def get(self, doc_id: str) -> DocumentRecord | None:
        """Get an unexpired document.

        Args:
            doc_id: Document id.

        Returns:
            The document, or None if missing or expired.

        Raises:
            DocumentStoreError: If the query fails.
        """
        try:
            async with self.session_factory() as db:
                result = await db.execute(
                    select(SharedDocumentModel).where(
                        SharedDocumentModel.id == doc_id,
                        SharedDocumentModel.expires_at > utcnow(),
                    )
                )
                row = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise DocumentStoreError(f"Failed to read document: {e}") from e
        return DocumentRecord.model_validate(row) if row is not None else None

    async def purge_expired(self) -> int:
        """Delete expired documents.

        Returns:
            Number of rows deleted.
        """
        try:
            async with self.session_factory() as db:
                result = await db.execute(
                    delete(SharedDocumentModel).where(SharedDocumentModel.expires_at <= utcnow())
                )
                await db.commit()
        except SQLAlchemyError as e:
            raise DocumentStoreError(f"Failed to purge documents: {e}") from e

        count = result.rowcount or 0
        log.info(DOCUMENTS_PURGED, count=count)
        return count
