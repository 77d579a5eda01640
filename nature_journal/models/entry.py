"""
Nature Journal — Journal Entry SQLAlchemy Model
=================================================

What:  ORM model for the `journal_entries` table.
Who:   Written and queried by EntryStore; read by Alembic for migrations.

Column notes:
    - id: UUID assigned by the store on insert
    - owner_id: identity uid of the creator, the only query predicate (indexed)
    - image_ref: secure URL returned by the media host
    - caption: free text, may be empty
    - created_at: client timestamp as ISO-8601 text; canonical for grouping
    - server_timestamp: assigned by the database; stored, not used in logic

Rows are never updated. The only mutation after insert is deletion.
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Index, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from nature_journal.database import Base


class JournalEntryRecord(Base):
    """One captured moment: image reference, caption, timestamps, owner."""

    __tablename__ = "journal_entries"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
        comment="Unique entry identifier assigned on insert",
    )

    owner_id: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
        comment="Identity uid of the creator",
    )

    image_ref: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Secure URL of the uploaded image",
    )

    caption: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
        comment="Free-text caption; may be empty",
    )

    created_at: Mapped[str] = mapped_column(
        String(40),
        nullable=False,
        comment="Client timestamp (ISO-8601, UTC) captured at write time",
    )

    server_timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        comment="Store-assigned ordering timestamp",
    )

    __table_args__ = (
        Index("idx_journal_entries_owner_id", "owner_id"),
    )

    def __repr__(self) -> str:
        return f"<JournalEntryRecord id={self.id} owner={self.owner_id} created_at={self.created_at}>"
