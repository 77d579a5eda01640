"""
Nature Journal — Test Configuration (conftest.py)
===================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all
       tests. Nothing here talks to a real network service or device.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── engine / session_factory / store: in-memory SQLite entry store
    ├── notices: NoticeBoard collecting every notice raised
    ├── identity_service / failing_identity_service: in-process identities
    ├── picker: scripted MediaPicker
    ├── sample_image_bytes / sample_image: a tiny JPEG on disk
    └── test_settings: Settings pointing at temporary directories
"""

import os
import tempfile

# Override settings for testing BEFORE any package imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["FIREBASE_API_KEY"] = "test-key-not-real"
os.environ["CLOUDINARY_CLOUD_NAME"] = "demo"
os.environ["CLOUDINARY_UPLOAD_PRESET"] = "journal_unsigned"
os.environ["SESSION_STORE_PATH"] = os.path.join(
    tempfile.mkdtemp(prefix="nature_journal_test_"), "session.json"
)
os.environ["STAGING_DIR"] = tempfile.mkdtemp(prefix="nature_journal_staging_")
os.environ["LOG_LEVEL"] = "WARNING"

import asyncio
from typing import Callable, List, Optional

import httpx
import pytest
import pytest_asyncio

from nature_journal.config import Settings
from nature_journal.database import build_engine, init_models, make_session_factory
from nature_journal.exceptions import IdentityUnavailableError
from nature_journal.handlers.notices import NoticeBoard
from nature_journal.schemas.identity import Identity
from nature_journal.schemas.media import AcquisitionMode, PermissionStatus, PickResult
from nature_journal.services.entry_store import EntryStore
from nature_journal.services.identity_base import IdentityService
from nature_journal.services.media_picker import MediaPicker


# ══════════════════════════════════════════════════════════════════════════
# Test Doubles
# ══════════════════════════════════════════════════════════════════════════

class FakeIdentityService(IdentityService):
    """Issues a fixed uid, or fails like an unreachable identity service."""

    def __init__(self, uid: str = "u1", fail: bool = False):
        super().__init__()
        self.uid = uid
        self.fail = fail
        self.establish_calls = 0

    async def establish_anonymous_identity(self) -> Identity:
        self.establish_calls += 1
        if self.fail:
            raise IdentityUnavailableError(message="Network request failed")
        if self._current is None:
            self._set_current(Identity(uid=self.uid, refresh_token="refresh"))
        return self._current

    async def sign_out(self) -> None:
        self._set_current(None)


class FakePicker(MediaPicker):
    """
    Scripted picker.

    `results` are returned in order by launch(); `gate`, when set, makes
    launch() wait until the test releases it.
    """

    def __init__(
        self,
        results: Optional[List[PickResult]] = None,
        permission: PermissionStatus = PermissionStatus.GRANTED,
        error: Optional[Exception] = None,
    ):
        self.results = list(results or [])
        self.permission = permission
        self.error = error
        self.gate: Optional[asyncio.Event] = None
        self.launched: List[AcquisitionMode] = []

    async def request_permission(self, mode: AcquisitionMode) -> PermissionStatus:
        return self.permission

    async def launch(self, mode: AcquisitionMode) -> PickResult:
        self.launched.append(mode)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.results.pop(0) if self.results else PickResult.cancelled_result()


def mock_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    """httpx client whose requests are answered by `handler`."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


# ══════════════════════════════════════════════════════════════════════════
# Function-Scoped Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def engine():
    """A fresh in-memory SQLite database with the journal tables created."""
    test_engine = build_engine("sqlite+aiosqlite:///:memory:")
    await init_models(test_engine)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def store(session_factory):
    return EntryStore(session_factory=session_factory)


@pytest.fixture
def notices():
    return NoticeBoard()


@pytest.fixture
def identity_service():
    return FakeIdentityService(uid="u1")


@pytest.fixture
def failing_identity_service():
    return FakeIdentityService(fail=True)


@pytest.fixture
def picker():
    return FakePicker()


@pytest.fixture
def sample_image_bytes():
    """
    Minimal JPEG bytes: Start of Image + JFIF header + End of Image.
    Not a real photograph, but a non-empty .jpg payload.
    """
    return (
        b'\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00'
        b'\xff\xd9'
    )


@pytest.fixture
def sample_image(tmp_path, sample_image_bytes):
    """Path (as a string) of a small JPEG written to a temporary directory."""
    path = tmp_path / "oak-leaf.jpg"
    path.write_bytes(sample_image_bytes)
    return str(path)


@pytest.fixture
def test_settings(tmp_path):
    """Settings with credentials filled in and every path under tmp_path."""
    gallery = tmp_path / "gallery"
    gallery.mkdir()
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        firebase_api_key="test-key",
        cloudinary_cloud_name="demo",
        cloudinary_upload_preset="journal_unsigned",
        session_store_path=str(tmp_path / "session" / "session.json"),
        staging_dir=str(tmp_path / "staging"),
        gallery_dir=str(gallery),
        camera_device=str(tmp_path / "video0"),
        log_level="WARNING",
    )
