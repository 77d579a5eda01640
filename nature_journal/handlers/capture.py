"""
Nature Journal — Capture Handler (Capture → Upload → Persist)
===============================================================

What:  The composing side of the journal: stage a photo, edit a caption, save.
How:   Composes MediaPicker, CloudinaryUploader and EntryStore behind an
       explicit state machine. Every entry point is a UI event; failures are
       caught here and turned into notices.
Who:   Owned by JournalApp (the "camera" screen).

State machine (the only legal entry points):
    IDLE ──acquire()──▶ ACQUIRING ──▶ IDLE
    IDLE ──save()─────▶ UPLOADING ──▶ WRITING ──▶ IDLE

    A request made outside IDLE is rejected with a "Busy" notice; caption
    edits are rejected the same way.

Save semantics:
    - Preconditions: staged photo, present identity (checked explicitly)
    - Upload failure: no write, staged photo and caption kept
    - Write failure: staged photo and caption kept; the uploaded object is
      orphaned (accepted, not detected)
    - Success: staged photo cleared, caption reset to ""
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

from nature_journal.exceptions import (
    IdentityUnavailableError,
    JournalError,
    PermissionDeniedError,
    PipelineBusyError,
    ValidationError,
)
from nature_journal.logging_config import operation_scope
from nature_journal.schemas.entry import EntryCreate, format_timestamp
from nature_journal.schemas.identity import Identity
from nature_journal.schemas.media import AcquisitionMode, PermissionStatus
from nature_journal.schemas.notice import Notice, Notifier
from nature_journal.services.entry_store import EntryStore
from nature_journal.services.image_service import ImageService, image_service
from nature_journal.services.media_picker import MediaPicker
from nature_journal.services.upload_service import CloudinaryUploader

logger = logging.getLogger(__name__)


class ComposerState(str, Enum):
    IDLE = "idle"
    ACQUIRING = "acquiring"
    UPLOADING = "uploading"
    WRITING = "writing"


@dataclass(frozen=True)
class StagedImage:
    local_uri: str
    temporary: bool = False


class CaptureHandler:
    """
    Event handlers of the capture screen.

    Args:
        picker:             Device camera/gallery access
        uploader:           Media host client
        store:              Entry store
        identity_provider:  Returns the current identity or None
        notify:             Receives every user-facing notice
        images:             Used to remove replaced temporary captures
        clock:              Source of the client `created_at` timestamp
    """

    def __init__(
        self,
        picker: MediaPicker,
        uploader: CloudinaryUploader,
        store: EntryStore,
        identity_provider: Callable[[], Optional[Identity]],
        notify: Notifier,
        images: Optional[ImageService] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.picker = picker
        self.uploader = uploader
        self.store = store
        self.identity_provider = identity_provider
        self.notify = notify
        self.images = images or image_service
        self.clock = clock or (lambda: datetime.now(timezone.utc))

        self._state = ComposerState.IDLE
        self._staged: Optional[StagedImage] = None
        self._caption = ""

    # ── Read-only view ────────────────────────────────────────────────────

    @property
    def state(self) -> ComposerState:
        return self._state

    @property
    def busy(self) -> bool:
        return self._state is not ComposerState.IDLE

    @property
    def staged_image(self) -> Optional[str]:
        return self._staged.local_uri if self._staged else None

    @property
    def caption(self) -> str:
        return self._caption

    # ── Transitions ───────────────────────────────────────────────────────

    def _begin(self, target: ComposerState, requested: str) -> None:
        if self._state is not ComposerState.IDLE:
            raise PipelineBusyError(state=self._state.value, requested=requested)
        self._state = target

    def _advance(self, expected: ComposerState, target: ComposerState) -> None:
        if self._state is not expected:
            raise PipelineBusyError(state=self._state.value, requested=target.value)
        self._state = target

    # ── Events ────────────────────────────────────────────────────────────

    def set_caption(self, text: str) -> bool:
        """Edit the caption; rejected while a sequence is in flight."""
        if self.busy:
            self.notify(Notice.from_error(
                PipelineBusyError(state=self._state.value, requested="edit the caption")
            ))
            return False
        self._caption = text
        return True

    async def acquire(self, mode: AcquisitionMode) -> bool:
        """
        Take or pick a photo and stage it.

        Returns:
            True if a new image was staged. False on cancellation (staged
            image and caption untouched) or on a reported failure.
        """
        try:
            self._begin(ComposerState.ACQUIRING, requested=f"open the {mode.value}")
        except PipelineBusyError as e:
            self.notify(Notice.from_error(e))
            return False

        try:
            status = await self.picker.request_permission(mode)
            if status is not PermissionStatus.GRANTED:
                raise PermissionDeniedError(mode.value)
            result = await self.picker.launch(mode)
        except JournalError as e:
            logger.warning("Acquisition (%s) failed: %s", mode.value, e.message)
            self.notify(Notice.from_error(e))
            return False
        finally:
            self._state = ComposerState.IDLE

        if result.cancelled:
            logger.info("Acquisition (%s) cancelled", mode.value)
            return False

        previous = self._staged
        self._staged = StagedImage(local_uri=result.local_uri, temporary=result.temporary)
        if previous is not None and previous.temporary and previous.local_uri != result.local_uri:
            await self.images.cleanup_file(previous.local_uri)
        return True

    async def save(self) -> Optional[uuid.UUID]:
        """
        Upload the staged photo and persist one journal entry.

        Returns:
            The new entry id, or None if nothing was saved (a notice was
            raised in that case).
        """
        with operation_scope():
            try:
                self._begin(ComposerState.UPLOADING, requested="save")
            except PipelineBusyError as e:
                self.notify(Notice.from_error(e))
                return None

            try:
                staged, identity = self._check_preconditions()
            except ValidationError as e:
                self._state = ComposerState.IDLE
                self.notify(Notice.error("No Photo", e.message))
                return None
            except IdentityUnavailableError as e:
                self._state = ComposerState.IDLE
                logger.error("Save attempted without an identity")
                self.notify(Notice.error("Error", e.message))
                return None

            logger.info("Starting save process for %s", identity.uid)
            try:
                upload = await self.uploader.upload(staged.local_uri)

                self._advance(ComposerState.UPLOADING, ComposerState.WRITING)
                entry_id = await self.store.insert(EntryCreate(
                    owner_id=identity.uid,
                    image_ref=upload.secure_url,
                    caption=self._caption.strip(),
                    created_at=format_timestamp(self.clock()),
                ))
            except JournalError as e:
                logger.error(
                    "Save failed during %s: %s | Context: %s",
                    self._state.value, e.message, e.context,
                )
                self.notify(Notice.from_error(e, prefix="Could not save entry: "))
                return None
            finally:
                self._state = ComposerState.IDLE

            logger.info("Entry saved! id=%s", entry_id)
            self.notify(Notice.info("Success!", "Your nature entry has been saved!"))
            await self._reset()
            return entry_id

    def _check_preconditions(self) -> tuple[StagedImage, Identity]:
        if self._staged is None:
            raise ValidationError(message="Please take or select a photo first.", field="image")
        identity = self.identity_provider()
        if identity is None:
            raise IdentityUnavailableError(message="User not authenticated.")
        return self._staged, identity

    async def _reset(self) -> None:
        """Back to the initial composing state after a successful save."""
        staged = self._staged
        self._staged = None
        self._caption = ""
        if staged is not None and staged.temporary:
            await self.images.cleanup_file(staged.local_uri)
