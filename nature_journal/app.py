"""
Nature Journal — Application Root
===================================

What:  Owns the session bootstrap and both screens, and manages startup and
       shutdown.
How:   `JournalApp` is an async context manager. `from_settings()` wires the
       concrete services from configuration; tests pass their own.
Who:   The host (a UI shell, a script, tests).

Lifecycle:
    Startup:
    1. Initialize logging
    2. Validate credentials (missing ones are logged, not fatal)
    3. Create the staging directory
    4. Enter the session bootstrap (subscribe + establish identity)

    Shutdown:
    1. Release the identity subscription
    2. Dispose the database engine, if this app created it

Gating:
    Screens exist only once the session is READY. `show()` refuses with a
    notice otherwise; `capture` / `calendar` raise IdentityUnavailableError.
"""

import logging
from typing import Literal, Optional

from nature_journal.config import Settings, settings as default_settings
from nature_journal.database import dispose_engine
from nature_journal.exceptions import IdentityUnavailableError
from nature_journal.handlers.calendar import CalendarHandler
from nature_journal.handlers.capture import CaptureHandler
from nature_journal.handlers.notices import NoticeBoard, always_confirm
from nature_journal.handlers.session import SessionBootstrap, SessionPhase, SessionStatus
from nature_journal.logging_config import setup_logging
from nature_journal.schemas.notice import Confirmer, Notice, Notifier
from nature_journal.services.entry_store import EntryStore, entry_store
from nature_journal.services.firebase_identity import FirebaseIdentityService
from nature_journal.services.identity_base import IdentityService
from nature_journal.services.media_picker import DeviceMediaPicker, GalleryChooser, MediaPicker
from nature_journal.services.upload_service import CloudinaryUploader

logger = logging.getLogger(__name__)

Screen = Literal["camera", "calendar"]


class JournalApp:
    """
    Root component of the journal.

    Args:
        identity_service:  Issues and tracks the anonymous identity
        picker:            Device camera/gallery
        uploader:          Media host client
        store:             Entry store
        notify:            Notice sink (defaults to a NoticeBoard)
        confirm:           Deletion confirmer (defaults to always_confirm)
        config:            Settings used for startup checks
        owns_engine:       Dispose the process-wide engine on shutdown
    """

    def __init__(
        self,
        identity_service: IdentityService,
        picker: MediaPicker,
        uploader: CloudinaryUploader,
        store: EntryStore,
        notify: Optional[Notifier] = None,
        confirm: Optional[Confirmer] = None,
        config: Optional[Settings] = None,
        owns_engine: bool = False,
    ):
        self.config = config or default_settings
        self.notify = notify or NoticeBoard()
        self.session = SessionBootstrap(identity_service)
        self.current_screen: Screen = "camera"
        self.owns_engine = owns_engine

        self._capture = CaptureHandler(
            picker=picker,
            uploader=uploader,
            store=store,
            identity_provider=lambda: self.session.identity,
            notify=self.notify,
        )
        self._calendar = CalendarHandler(
            store=store,
            identity_provider=lambda: self.session.identity,
            notify=self.notify,
            confirm=confirm or always_confirm,
        )

    @classmethod
    def from_settings(
        cls,
        config: Optional[Settings] = None,
        notify: Optional[Notifier] = None,
        confirm: Optional[Confirmer] = None,
        chooser: Optional[GalleryChooser] = None,
    ) -> "JournalApp":
        """Build the app with the Firebase, Cloudinary, SQL and device services."""
        cfg = config or default_settings
        return cls(
            identity_service=FirebaseIdentityService(config=cfg),
            picker=DeviceMediaPicker(config=cfg, chooser=chooser),
            uploader=CloudinaryUploader(config=cfg),
            store=entry_store,
            notify=notify,
            confirm=confirm,
            config=cfg,
            owns_engine=True,
        )

    # ── Lifecycle ─────────────────────────────────────────────────────────

    async def __aenter__(self) -> "JournalApp":
        await self.startup()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.shutdown()

    async def startup(self) -> SessionStatus:
        setup_logging(self.config.log_level)
        logger.info("=" * 60)
        logger.info("Nature Journal starting up...")

        try:
            self.config.validate_required_for_production()
        except ValueError as e:
            logger.error("Configuration error: %s", e)

        self.config.staging_path.mkdir(parents=True, exist_ok=True)
        logger.info("Staging directory: %s", self.config.staging_path.resolve())

        status = await self.session.start()
        if status.is_ready:
            logger.info("Session ready for user %s", status.identity.short_uid)
        else:
            logger.info("Session: %s", status.phase.value)
        logger.info("=" * 60)
        return status

    async def shutdown(self) -> None:
        logger.info("Nature Journal shutting down...")
        self.session.close()
        if self.owns_engine:
            await dispose_engine()
        logger.info("Shutdown complete.")

    # ── Gating & navigation ───────────────────────────────────────────────

    @property
    def status(self) -> SessionStatus:
        return self.session.status

    def _require_ready(self) -> None:
        status = self.session.status
        if status.is_ready:
            return
        if status.phase is SessionPhase.ERROR:
            raise IdentityUnavailableError(message=status.message or "Connection Error")
        if status.phase is SessionPhase.SIGNED_OUT:
            raise IdentityUnavailableError(
                message="Authentication failed. Please close and restart the app."
            )
        raise IdentityUnavailableError(message="Connecting...")

    @property
    def capture(self) -> CaptureHandler:
        self._require_ready()
        return self._capture

    @property
    def calendar(self) -> CalendarHandler:
        self._require_ready()
        return self._calendar

    async def show(self, screen: Screen) -> bool:
        """
        Switch screens. Showing the calendar triggers a full refresh.

        Returns False (with a notice) while no identity is available.
        """
        try:
            self._require_ready()
        except IdentityUnavailableError as e:
            self.notify(Notice.from_error(e))
            return False

        self.current_screen = screen
        if screen == "calendar":
            await self._calendar.refresh()
        return True
