"""
Nature Journal — Capture Handler Tests
========================================

What:  Tests for the capture → upload → persist pipeline and its state machine.
How:   Scripted picker, mocked uploader, real in-memory entry store.

What we test:
    ✅ Acquisition stages the picked image; cancellation changes nothing
    ✅ Permission denied → "Permission Needed" notice
    ✅ Gallery chooser errors → "Capture Failed" notice
    ✅ Successful save writes one entry and resets staged image + caption
    ✅ Failed upload → no write, staged image + caption kept
    ✅ Failed write → staged image + caption kept
    ✅ Missing photo / identity are rejected before any upload
    ✅ Re-entry while busy → "Busy" notice
"""

import asyncio
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import FakePicker
from nature_journal.exceptions import AcquisitionError, UploadFailedError, WriteFailedError
from nature_journal.handlers.capture import CaptureHandler, ComposerState
from nature_journal.schemas.entry import UploadResult
from nature_journal.schemas.identity import Identity
from nature_journal.schemas.media import AcquisitionMode, PermissionStatus, PickResult
from nature_journal.schemas.notice import NoticeLevel
from nature_journal.services.media_picker import DeviceMediaPicker

SECURE_URL = "https://res.cloudinary.com/demo/image/upload/v1/nature-journal/oak.jpg"
FIXED_NOW = datetime(2024, 5, 10, 12, 0, tzinfo=timezone.utc)


def make_uploader(result=None, error=None):
    uploader = MagicMock()
    uploader.upload = AsyncMock(
        return_value=result or UploadResult(secure_url=SECURE_URL, public_id="nature-journal/oak"),
        side_effect=error,
    )
    return uploader


def make_handler(picker, store, notices, uploader=None, identity=Identity(uid="u1")):
    return CaptureHandler(
        picker=picker,
        uploader=uploader or make_uploader(),
        store=store,
        identity_provider=lambda: identity,
        notify=notices,
        clock=lambda: FIXED_NOW,
    )


class TestAcquire:

    @pytest.mark.asyncio
    async def test_acquire_stages_image(self, store, notices, sample_image):
        picker = FakePicker(results=[PickResult(local_uri=sample_image)])
        handler = make_handler(picker, store, notices)

        assert await handler.acquire(AcquisitionMode.GALLERY) is True
        assert handler.staged_image == sample_image
        assert handler.state is ComposerState.IDLE
        assert picker.launched == [AcquisitionMode.GALLERY]

    @pytest.mark.asyncio
    async def test_cancelled_acquire_keeps_state(self, store, notices, sample_image):
        picker = FakePicker(results=[PickResult(local_uri=sample_image), PickResult.cancelled_result()])
        handler = make_handler(picker, store, notices)
        await handler.acquire(AcquisitionMode.GALLERY)
        handler.set_caption("oak leaf")

        assert await handler.acquire(AcquisitionMode.CAMERA) is False

        assert handler.staged_image == sample_image
        assert handler.caption == "oak leaf"
        assert notices.notices == []

    @pytest.mark.asyncio
    async def test_permission_denied(self, store, notices):
        picker = FakePicker(permission=PermissionStatus.DENIED)
        handler = make_handler(picker, store, notices)

        assert await handler.acquire(AcquisitionMode.CAMERA) is False

        assert picker.launched == []
        assert notices.latest.title == "Permission Needed"
        assert notices.latest.message == "Camera permission is required to take photos."
        assert handler.state is ComposerState.IDLE

    @pytest.mark.asyncio
    async def test_capture_failure_notice(self, store, notices):
        picker = FakePicker(error=AcquisitionError(message="The camera did not respond in time."))
        handler = make_handler(picker, store, notices)

        assert await handler.acquire(AcquisitionMode.CAMERA) is False
        assert notices.latest.title == "Capture Failed"
        assert handler.state is ComposerState.IDLE

    @pytest.mark.asyncio
    async def test_gallery_chooser_error_notice(self, store, notices, test_settings):
        (test_settings.gallery_path / "leaf.jpg").write_bytes(b"jpeg")

        def broken_chooser(candidates):
            raise RuntimeError("picker window closed unexpectedly")

        picker = DeviceMediaPicker(config=test_settings, chooser=broken_chooser)
        handler = make_handler(picker, store, notices)

        assert await handler.acquire(AcquisitionMode.GALLERY) is False

        assert notices.latest.title == "Capture Failed"
        assert notices.latest.message == "Could not select a photo from the gallery."
        assert handler.staged_image is None
        assert handler.state is ComposerState.IDLE

    @pytest.mark.asyncio
    async def test_replaced_temporary_capture_is_removed(self, store, notices, tmp_path, sample_image):
        first = tmp_path / "capture-1.jpg"
        first.write_bytes(b"jpeg")
        picker = FakePicker(results=[
            PickResult(local_uri=str(first), temporary=True),
            PickResult(local_uri=sample_image),
        ])
        handler = make_handler(picker, store, notices)

        await handler.acquire(AcquisitionMode.CAMERA)
        await handler.acquire(AcquisitionMode.GALLERY)

        assert handler.staged_image == sample_image
        assert not first.exists()
        assert Path(sample_image).exists()


class TestSave:

    @pytest.mark.asyncio
    async def test_successful_save_resets_composer(self, store, notices, sample_image):
        picker = FakePicker(results=[PickResult(local_uri=sample_image)])
        uploader = make_uploader()
        handler = make_handler(picker, store, notices, uploader=uploader)
        await handler.acquire(AcquisitionMode.GALLERY)
        handler.set_caption("  oak leaf  ")

        entry_id = await handler.save()

        assert entry_id is not None
        uploader.upload.assert_awaited_once_with(sample_image)
        entries = await store.query_by_owner("u1")
        assert len(entries) == 1
        assert entries[0].id == entry_id
        assert entries[0].caption == "oak leaf"
        assert entries[0].image_ref == SECURE_URL
        assert entries[0].created_at == "2024-05-10T12:00:00.000Z"

        assert handler.staged_image is None
        assert handler.caption == ""
        assert handler.state is ComposerState.IDLE
        assert notices.latest.title == "Success!"
        assert notices.latest.level is NoticeLevel.INFO

    @pytest.mark.asyncio
    async def test_failed_upload_writes_nothing(self, store, notices, sample_image):
        picker = FakePicker(results=[PickResult(local_uri=sample_image)])
        uploader = make_uploader(error=UploadFailedError(message="Network request failed"))
        handler = make_handler(picker, store, notices, uploader=uploader)
        await handler.acquire(AcquisitionMode.GALLERY)
        handler.set_caption("oak leaf")

        assert await handler.save() is None

        assert await store.query_by_owner("u1") == []
        assert handler.staged_image == sample_image
        assert handler.caption == "oak leaf"
        assert handler.state is ComposerState.IDLE
        assert notices.latest.title == "Save Failed"
        assert notices.latest.message == "Could not save entry: Network request failed"

    @pytest.mark.asyncio
    async def test_failed_write_keeps_composer(self, notices, sample_image):
        picker = FakePicker(results=[PickResult(local_uri=sample_image)])
        store = MagicMock()
        store.insert = AsyncMock(side_effect=WriteFailedError())
        handler = make_handler(picker, store, notices)
        await handler.acquire(AcquisitionMode.GALLERY)
        handler.set_caption("oak leaf")

        assert await handler.save() is None

        store.insert.assert_awaited_once()
        assert handler.staged_image == sample_image
        assert handler.caption == "oak leaf"
        assert notices.latest.title == "Save Failed"

    @pytest.mark.asyncio
    async def test_save_without_photo(self, store, notices):
        uploader = make_uploader()
        handler = make_handler(FakePicker(), store, notices, uploader=uploader)

        assert await handler.save() is None

        uploader.upload.assert_not_awaited()
        assert notices.latest.title == "No Photo"
        assert notices.latest.message == "Please take or select a photo first."
        assert handler.state is ComposerState.IDLE

    @pytest.mark.asyncio
    async def test_save_without_identity(self, store, notices, sample_image):
        picker = FakePicker(results=[PickResult(local_uri=sample_image)])
        uploader = make_uploader()
        handler = make_handler(picker, store, notices, uploader=uploader, identity=None)
        await handler.acquire(AcquisitionMode.GALLERY)

        assert await handler.save() is None

        uploader.upload.assert_not_awaited()
        assert notices.latest.title == "Error"
        assert notices.latest.message == "User not authenticated."
        assert handler.staged_image == sample_image


class TestBusy:

    @pytest.mark.asyncio
    async def test_requests_rejected_while_acquiring(self, store, notices, sample_image):
        picker = FakePicker(results=[PickResult(local_uri=sample_image)])
        picker.gate = asyncio.Event()
        handler = make_handler(picker, store, notices)

        task = asyncio.create_task(handler.acquire(AcquisitionMode.GALLERY))
        while handler.state is not ComposerState.ACQUIRING:
            await asyncio.sleep(0)

        assert await handler.save() is None
        assert notices.latest.title == "Busy"
        assert handler.set_caption("too early") is False
        assert handler.caption == ""
        assert await handler.acquire(AcquisitionMode.CAMERA) is False

        picker.gate.set()
        assert await task is True
        assert handler.state is ComposerState.IDLE
        assert picker.launched == [AcquisitionMode.GALLERY]

    @pytest.mark.asyncio
    async def test_second_save_rejected_while_uploading(self, store, notices, sample_image):
        picker = FakePicker(results=[PickResult(local_uri=sample_image)])
        release = asyncio.Event()

        async def slow_upload(local_uri):
            await release.wait()
            return UploadResult(secure_url=SECURE_URL)

        uploader = MagicMock()
        uploader.upload = AsyncMock(side_effect=slow_upload)
        handler = make_handler(picker, store, notices, uploader=uploader)
        await handler.acquire(AcquisitionMode.GALLERY)

        first = asyncio.create_task(handler.save())
        while handler.state is not ComposerState.UPLOADING:
            await asyncio.sleep(0)

        assert await handler.save() is None
        assert notices.latest.title == "Busy"

        release.set()
        assert await first is not None
        assert uploader.upload.await_count == 1
        assert len(await store.query_by_owner("u1")) == 1
