"""
Nature Journal — Calendar Grouping
====================================

What:  Pure functions turning a fetched entry list into calendar data.
How:   Entries are grouped under the UTC calendar day of `created_at`
       ("YYYY-MM-DD"). Each group is sorted by `created_at` after grouping;
       the sort is stable, so entries with equal timestamps keep the order
       the store returned them in. `server_timestamp` is never consulted.
Who:   CalendarHandler after every full refresh.
"""

import logging
from datetime import date, datetime, timezone
from typing import Dict, Iterable, List, Optional, Union

from nature_journal.schemas.entry import DayMarker, JournalEntry, parse_timestamp

logger = logging.getLogger(__name__)

DOT_COLOR = "#4CAF50"
SELECTED_COLOR = "#2196F3"

DayKey = str


def day_key(value: Union[str, date]) -> DayKey:
    """
    Normalize a timestamp or date into the "YYYY-MM-DD" grouping key.

    >>> day_key("2024-06-01T23:59:59Z")
    '2024-06-01'
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    text = value.strip()
    if len(text) == 10:
        # Already a bare calendar day
        return date.fromisoformat(text).isoformat()
    return parse_timestamp(text).date().isoformat()


def group_entries_by_day(entries: Iterable[JournalEntry]) -> Dict[DayKey, List[JournalEntry]]:
    """
    Entries whose `created_at` cannot be parsed (records written by another
    client) are logged and left out of every group.
    """
    groups: Dict[DayKey, List[JournalEntry]] = {}
    for entry in entries:
        try:
            key = day_key(entry.created_day)
        except ValueError:
            logger.warning(
                "Skipping entry %s with unreadable created_at %r", entry.id, entry.created_at
            )
            continue
        groups.setdefault(key, []).append(entry)

    for day_entries in groups.values():
        day_entries.sort(key=lambda e: e.created_at_utc)
    return groups


def marked_dates(
    groups: Dict[DayKey, List[JournalEntry]],
    selected_day: Optional[DayKey] = None,
) -> Dict[DayKey, DayMarker]:
    """
    Build calendar markings: a dot on every day with entries, plus the
    selection highlight (which may fall on a day without entries).
    """
    marked = {
        day: DayMarker(marked=True, dot_color=DOT_COLOR, selected_color=DOT_COLOR)
        for day in groups
    }
    if selected_day:
        base = marked.get(selected_day, DayMarker())
        marked[selected_day] = base.model_copy(
            update={"selected": True, "selected_color": SELECTED_COLOR}
        )
    return marked


def format_day_title(day: Union[DayKey, date]) -> str:
    """Header for the selected day, e.g. "Saturday, June 1, 2024"."""
    d = date.fromisoformat(day_key(day))
    return f"{d:%A}, {d:%B} {d.day}, {d.year}"
