"""
Nature Journal — Calendar Handler (Query → Group → Select → Delete)
=====================================================================

What:  The browsing side of the journal: day markers, per-day entry lists,
       deletion with confirmation.
How:   Every refresh is a full query for the current identity followed by
       in-memory grouping (services.calendar). Deletion asks the confirmer,
       deletes the record, then refreshes. Nothing is removed optimistically.
Who:   Owned by JournalApp (the "calendar" screen). Refreshed whenever the
       screen is shown.

Failure handling:
    - refresh fails → "Failed to load entries"; previous render list kept
    - delete fails  → "Failed to delete entry"; list left as it was
"""

import logging
import uuid
from datetime import date
from typing import Callable, Dict, List, Optional, Union

from nature_journal.exceptions import DeleteFailedError, IdentityUnavailableError, QueryFailedError
from nature_journal.logging_config import operation_scope
from nature_journal.schemas.entry import DayMarker, JournalEntry
from nature_journal.schemas.identity import Identity
from nature_journal.schemas.notice import Confirmer, Notice, Notifier
from nature_journal.services.calendar import (
    DayKey,
    day_key,
    format_day_title,
    group_entries_by_day,
    marked_dates,
)
from nature_journal.services.entry_store import EntryStore

logger = logging.getLogger(__name__)


class CalendarHandler:
    """
    Event handlers of the calendar screen.

    Args:
        store:              Entry store
        identity_provider:  Returns the current identity or None
        notify:             Receives every user-facing notice
        confirm:            Asks the user to confirm a deletion
    """

    def __init__(
        self,
        store: EntryStore,
        identity_provider: Callable[[], Optional[Identity]],
        notify: Notifier,
        confirm: Confirmer,
    ):
        self.store = store
        self.identity_provider = identity_provider
        self.notify = notify
        self.confirm = confirm

        self.entries_by_day: Dict[DayKey, List[JournalEntry]] = {}
        self.selected_day: Optional[DayKey] = None
        self.day_entries: List[JournalEntry] = []
        self.loading = False

    async def refresh(self) -> bool:
        """
        Reload every entry of the current identity and regroup them.

        The selected day's list is recomputed from the new groups.
        Returns True on success.
        """
        with operation_scope():
            identity = self.identity_provider()
            if identity is None:
                self.notify(Notice.error("Error", IdentityUnavailableError().message))
                return False

            self.loading = True
            try:
                entries = await self.store.query_by_owner(identity.uid)
                grouped = group_entries_by_day(entries)
            except (QueryFailedError, ValueError) as e:
                logger.error("Error fetching entries: %s", e)
                self.notify(Notice.error("Error", "Failed to load entries"))
                return False
            finally:
                self.loading = False

            self.entries_by_day = grouped
            if self.selected_day is not None:
                self.day_entries = list(self.entries_by_day.get(self.selected_day, []))
            logger.info(
                "Loaded %d entries across %d days", len(entries), len(self.entries_by_day)
            )
            return True

    def select_day(self, day: Union[DayKey, date]) -> List[JournalEntry]:
        """Select a calendar day and return exactly that day's entries."""
        self.selected_day = day_key(day)
        self.day_entries = list(self.entries_by_day.get(self.selected_day, []))
        return self.day_entries

    def marked_dates(self) -> Dict[DayKey, DayMarker]:
        return marked_dates(self.entries_by_day, self.selected_day)

    @property
    def selected_day_title(self) -> Optional[str]:
        if self.selected_day is None:
            return None
        return f"Entries for {format_day_title(self.selected_day)}"

    async def delete_entry(self, entry_id: Union[uuid.UUID, str]) -> bool:
        """
        Ask for confirmation, delete one entry and refresh.

        Returns:
            True if the entry was deleted. False if the user cancelled or the
            delete failed (a notice was raised in that case).
        """
        try:
            entry_uuid = entry_id if isinstance(entry_id, uuid.UUID) else uuid.UUID(str(entry_id))
        except ValueError:
            logger.error("Cannot delete entry with malformed id %r", entry_id)
            self.notify(Notice.error("Error", "Failed to delete entry"))
            return False

        confirmed = await self.confirm(
            "Delete Entry", "Are you sure you want to delete this entry?"
        )
        if not confirmed:
            logger.info("Delete of %s cancelled", entry_uuid)
            return False

        with operation_scope():
            try:
                await self.store.delete(entry_uuid)
            except DeleteFailedError as e:
                logger.error("Error deleting entry: %s | Context: %s", e.message, e.context)
                self.notify(Notice.error("Error", "Failed to delete entry"))
                return False

        await self.refresh()
        self.notify(Notice.info("Success", "Entry deleted successfully"))
        return True
