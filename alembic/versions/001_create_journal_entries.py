"""Create journal_entries table

Revision ID: 001
Revises: None
Create Date: 2024-05-10 00:00:00.000000+00:00

What:  Creates the `journal_entries` table holding one row per saved moment.
How:   UUID primary key, client `created_at` as ISO-8601 text, store-assigned
       `server_timestamp`, and an index on `owner_id` (the only query predicate).

Rollback: downgrade() drops the table (all entries are lost; uploaded images
at the media host are not touched).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "journal_entries",

        sa.Column(
            "id",
            sa.Uuid(),
            nullable=False,
            comment="Unique entry identifier assigned on insert",
        ),

        sa.Column(
            "owner_id",
            sa.String(128),
            nullable=False,
            comment="Identity uid of the creator",
        ),

        sa.Column(
            "image_ref",
            sa.Text(),
            nullable=False,
            comment="Secure URL of the uploaded image",
        ),

        sa.Column(
            "caption",
            sa.Text(),
            nullable=False,
            server_default=sa.text("''"),
            comment="Free-text caption; may be empty",
        ),

        # ISO-8601 UTC text, e.g. 2024-05-10T12:00:00.000Z
        sa.Column(
            "created_at",
            sa.String(40),
            nullable=False,
            comment="Client timestamp (ISO-8601, UTC) captured at write time",
        ),

        sa.Column(
            "server_timestamp",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
            comment="Store-assigned ordering timestamp",
        ),

        sa.PrimaryKeyConstraint("id"),
    )

    op.create_index(
        "idx_journal_entries_owner_id",
        "journal_entries",
        ["owner_id"],
    )


def downgrade() -> None:
    op.drop_index("idx_journal_entries_owner_id", table_name="journal_entries")
    op.drop_table("journal_entries")
