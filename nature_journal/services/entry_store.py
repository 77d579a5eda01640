"""
Nature Journal — Entry Store
==============================

What:  Insert, query-by-owner and delete operations on journal entries.
How:   One short transaction per operation through `session_scope()`.
       SQLAlchemy failures are logged with full detail and re-raised as the
       operation's JournalError (WriteFailedError, QueryFailedError,
       DeleteFailedError) with a user-safe message.
Who:   CaptureHandler writes; CalendarHandler queries and deletes.

Query contract:
    - The only predicate is equality on owner_id.
    - No time-range filter, no pagination, no ORDER BY. Callers order the
      result in memory if they need an order.
    - Every call is a full reload; nothing is cached here.
"""

import logging
import uuid
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from nature_journal.database import session_scope
from nature_journal.exceptions import DeleteFailedError, QueryFailedError, WriteFailedError
from nature_journal.models.entry import JournalEntryRecord
from nature_journal.schemas.entry import EntryCreate, JournalEntry

logger = logging.getLogger(__name__)


class EntryStore:
    """
    Document-store access for JournalEntry records.

    Args:
        session_factory: Session factory to use. Defaults to the process-wide
                         factory built from settings.database_url.
    """

    def __init__(self, session_factory: Optional[async_sessionmaker[AsyncSession]] = None):
        self.session_factory = session_factory

    async def insert(self, entry: EntryCreate) -> uuid.UUID:
        """
        Create exactly one entry record.

        Returns:
            The id assigned by the store.

        Raises:
            WriteFailedError: the insert or its commit failed
        """
        try:
            async with session_scope(self.session_factory) as session:
                record = JournalEntryRecord(
                    owner_id=entry.owner_id,
                    image_ref=entry.image_ref,
                    caption=entry.caption,
                    created_at=entry.created_at,
                )
                session.add(record)
                await session.flush()
                entry_id = record.id
        except SQLAlchemyError as e:
            logger.error("Database error inserting entry for %s: %s", entry.owner_id, e, exc_info=True)
            raise WriteFailedError(
                message="Could not store the journal entry. Please try again.",
                context={"error_type": type(e).__name__},
            ) from e

        logger.info("Entry saved: %s (owner=%s)", entry_id, entry.owner_id)
        return entry_id

    async def query_by_owner(self, owner_id: str) -> List[JournalEntry]:
        """
        Fetch every entry owned by `owner_id`, in store order.

        Raises:
            QueryFailedError: the query failed
        """
        try:
            async with session_scope(self.session_factory) as session:
                result = await session.execute(
                    select(JournalEntryRecord).where(JournalEntryRecord.owner_id == owner_id)
                )
                entries = [JournalEntry.model_validate(row) for row in result.scalars().all()]
        except SQLAlchemyError as e:
            logger.error("Database error listing entries for %s: %s", owner_id, e, exc_info=True)
            raise QueryFailedError(
                message="Failed to load entries",
                context={"error_type": type(e).__name__},
            ) from e

        logger.debug("Fetched %d entries for %s", len(entries), owner_id)
        return entries

    async def delete(self, entry_id: uuid.UUID) -> None:
        """
        Delete one entry record by id.

        Deleting an id that no longer exists succeeds. The uploaded image at
        the media host is not touched.

        Raises:
            DeleteFailedError: the delete failed
        """
        try:
            async with session_scope(self.session_factory) as session:
                result = await session.execute(
                    delete(JournalEntryRecord).where(JournalEntryRecord.id == entry_id)
                )
                removed = result.rowcount or 0
        except SQLAlchemyError as e:
            logger.error("Database error deleting entry %s: %s", entry_id, e, exc_info=True)
            raise DeleteFailedError(
                message="Failed to delete entry",
                context={"entry_id": str(entry_id), "error_type": type(e).__name__},
            ) from e

        if removed:
            logger.info("Entry deleted: %s", entry_id)
        else:
            logger.warning("Delete requested for unknown entry %s", entry_id)


# ── Singleton Instance ────────────────────────────────────────────────────
entry_store = EntryStore()
