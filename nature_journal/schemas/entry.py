"""
Nature Journal — Entry Schemas
================================

What:  Pydantic models describing journal entries and upload results.
How:   `EntryCreate` is what the composer writes; `JournalEntry` is what the
       store returns (built from ORM rows via from_attributes);
       `UploadResult` is the parsed media-host response.

Timestamps:
    `created_at` is stored as ISO-8601 text in UTC with millisecond precision
    and a `Z` suffix (e.g. "2024-05-10T12:00:00.000Z"). Any ISO-8601 value
    with an offset is accepted on read; naive values are taken as UTC.
"""

import uuid
from datetime import date, datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, field_validator


def format_timestamp(moment: datetime) -> str:
    """Render a datetime as a UTC ISO-8601 string with a `Z` suffix."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    utc = moment.astimezone(timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 string into an aware UTC datetime."""
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


class EntryCreate(BaseModel):
    """
    What:  The record written by the persistence step.
    Who:   Built by CaptureHandler.save() after a successful upload.
    """
    owner_id: str = Field(min_length=1, description="Identity uid of the creator")
    image_ref: str = Field(min_length=1, description="Secure URL of the uploaded image")
    caption: str = Field(default="", description="Free-text caption, already trimmed")
    created_at: str = Field(description="Client timestamp (ISO-8601)")

    @field_validator("created_at")
    @classmethod
    def validate_created_at(cls, v: str) -> str:
        """Rejects values that cannot be parsed back for grouping."""
        try:
            parse_timestamp(v)
        except ValueError as exc:
            raise ValueError(f"created_at must be ISO-8601, got '{v}'") from exc
        return v


class JournalEntry(BaseModel):
    """
    What:  A persisted journal entry as read back from the store.
    Who:   Returned by EntryStore.query_by_owner(); rendered by CalendarHandler.
    """
    id: uuid.UUID
    owner_id: str
    image_ref: str
    caption: str = ""
    created_at: str
    server_timestamp: Optional[datetime] = None

    model_config = {"from_attributes": True}

    @property
    def created_at_utc(self) -> datetime:
        return parse_timestamp(self.created_at)

    @property
    def created_day(self) -> date:
        """Calendar-day truncation of `created_at` (UTC), the grouping key."""
        return self.created_at_utc.date()

    @property
    def display_time(self) -> str:
        """Time of day shown under the caption, e.g. "12:00:00 PM"."""
        return self.created_at_utc.strftime("%I:%M:%S %p").lstrip("0")


class UploadResult(BaseModel):
    """
    What:  The subset of the media host's response the journal keeps.
    Only `secure_url` is required; the rest is logged for diagnostics.
    """
    secure_url: str = Field(min_length=1)
    public_id: Optional[str] = None
    bytes: Optional[int] = None
    format: Optional[str] = None


class DayMarker(BaseModel):
    """Calendar marking for one day (dot for entries, highlight for selection)."""
    marked: bool = False
    dot_color: Optional[str] = None
    selected: bool = False
    selected_color: Optional[str] = None
