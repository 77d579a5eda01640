"""
Nature Journal — Entry Store Tests
====================================

What:  Tests for EntryStore insert / query_by_owner / delete.
How:   Runs against an in-memory SQLite database (aiosqlite); failure paths
       use a session factory whose sessions raise SQLAlchemy errors.

What we test:
    ✅ Queries only return the requesting owner's entries
    ✅ N inserts → N results
    ✅ Deleting one entry removes exactly that entry
    ✅ Deleting an unknown id succeeds
    ✅ Store failures map to WriteFailedError / QueryFailedError / DeleteFailedError
"""

import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from nature_journal.exceptions import DeleteFailedError, QueryFailedError, WriteFailedError
from nature_journal.schemas.entry import EntryCreate
from nature_journal.services.entry_store import EntryStore


def make_entry(owner_id="u1", caption="oak leaf", created_at="2024-05-10T12:00:00.000Z"):
    return EntryCreate(
        owner_id=owner_id,
        image_ref=f"https://res.cloudinary.com/demo/{uuid.uuid4().hex}.jpg",
        caption=caption,
        created_at=created_at,
    )


def broken_session_factory():
    """A session factory whose sessions fail on every statement."""
    error = OperationalError("SELECT 1", {}, Exception("database is locked"))
    session = MagicMock()
    session.add = MagicMock()
    session.flush = AsyncMock(side_effect=error)
    session.execute = AsyncMock(side_effect=error)
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()

    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=session)
    context.__aexit__ = AsyncMock(return_value=False)
    return MagicMock(return_value=context)


class TestEntryStore:

    @pytest.mark.asyncio
    async def test_insert_returns_id_and_round_trips(self, store):
        entry_id = await store.insert(make_entry())

        entries = await store.query_by_owner("u1")
        assert len(entries) == 1
        saved = entries[0]
        assert saved.id == entry_id
        assert saved.caption == "oak leaf"
        assert saved.created_at == "2024-05-10T12:00:00.000Z"
        assert saved.server_timestamp is not None

    @pytest.mark.asyncio
    async def test_query_is_isolated_by_owner(self, store):
        await store.insert(make_entry(owner_id="u1", caption="fern"))
        await store.insert(make_entry(owner_id="u2", caption="heron"))
        await store.insert(make_entry(owner_id="u1", caption="moss"))

        u1 = await store.query_by_owner("u1")
        u2 = await store.query_by_owner("u2")

        assert {e.caption for e in u1} == {"fern", "moss"}
        assert all(e.owner_id == "u1" for e in u1)
        assert [e.caption for e in u2] == ["heron"]
        assert await store.query_by_owner("nobody") == []

    @pytest.mark.asyncio
    async def test_n_inserts_n_results(self, store):
        for i in range(5):
            await store.insert(make_entry(caption=f"entry {i}"))

        assert len(await store.query_by_owner("u1")) == 5

    @pytest.mark.asyncio
    async def test_delete_removes_only_that_entry(self, store):
        keep_id = await store.insert(make_entry(caption="keep"))
        drop_id = await store.insert(make_entry(caption="drop"))

        await store.delete(drop_id)

        remaining = await store.query_by_owner("u1")
        assert [e.id for e in remaining] == [keep_id]

    @pytest.mark.asyncio
    async def test_delete_unknown_id_succeeds(self, store):
        await store.insert(make_entry())

        # Should not raise
        await store.delete(uuid.uuid4())
        assert len(await store.query_by_owner("u1")) == 1

    @pytest.mark.asyncio
    async def test_oak_leaf_scenario(self, store):
        """Create, find, delete, and find nothing."""
        entry_id = await store.insert(make_entry(
            owner_id="u1", caption="oak leaf", created_at="2024-05-10T12:00:00Z",
        ))

        entries = await store.query_by_owner("u1")
        assert len(entries) == 1
        assert entries[0].caption == "oak leaf"
        assert entries[0].created_day.isoformat() == "2024-05-10"

        await store.delete(entry_id)
        assert await store.query_by_owner("u1") == []


class TestEntryStoreFailures:

    @pytest.mark.asyncio
    async def test_insert_failure(self):
        store = EntryStore(session_factory=broken_session_factory())
        with pytest.raises(WriteFailedError) as exc_info:
            await store.insert(make_entry())
        assert exc_info.value.notice_title == "Save Failed"
        assert exc_info.value.context["error_type"] == "OperationalError"

    @pytest.mark.asyncio
    async def test_query_failure(self):
        store = EntryStore(session_factory=broken_session_factory())
        with pytest.raises(QueryFailedError, match="Failed to load entries"):
            await store.query_by_owner("u1")

    @pytest.mark.asyncio
    async def test_delete_failure(self):
        store = EntryStore(session_factory=broken_session_factory())
        with pytest.raises(DeleteFailedError, match="Failed to delete entry"):
            await store.delete(uuid.uuid4())
