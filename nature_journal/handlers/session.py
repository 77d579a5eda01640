"""
Nature Journal — Session Bootstrap
====================================

What:  Establishes the anonymous identity on startup and tracks its lifecycle.
How:   Used as an async context manager. Entering subscribes to identity
       changes and establishes the identity; leaving releases the
       subscription, so no callback reaches a torn-down session.
Who:   Owned by JournalApp; its `identity` gates every other handler.

State machine:
    LOADING ──establish fails──▶ ERROR(message)        (terminal, no retry)
    LOADING ──identity event───▶ READY(identity)
    READY   ──empty event──────▶ SIGNED_OUT            (blocked, not an error)
    ERROR   ──empty event──────▶ ERROR                 (error is kept)
    any     ──identity event───▶ READY                 (clears the error)

The identity-change subscription is the source of truth for READY.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

from nature_journal.exceptions import IdentityUnavailableError
from nature_journal.logging_config import operation_scope
from nature_journal.schemas.identity import Identity
from nature_journal.services.identity_base import IdentityService, Unsubscribe

logger = logging.getLogger(__name__)


class SessionPhase(str, Enum):
    LOADING = "loading"
    ERROR = "error"
    READY = "ready"
    SIGNED_OUT = "signed_out"


@dataclass(frozen=True)
class SessionStatus:
    phase: SessionPhase
    identity: Optional[Identity] = None
    message: Optional[str] = None

    @property
    def is_ready(self) -> bool:
        return self.phase is SessionPhase.READY and self.identity is not None


StatusListener = Callable[[SessionStatus], None]


class SessionBootstrap:
    """
    Scoped owner of the identity subscription.

    Example:
        async with SessionBootstrap(identity_service) as session:
            if session.status.is_ready:
                ...
    """

    def __init__(self, identity_service: IdentityService):
        self.identity_service = identity_service
        self._status = SessionStatus(SessionPhase.LOADING)
        self._unsubscribe: Optional[Unsubscribe] = None
        self._listeners: List[StatusListener] = []

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def identity(self) -> Optional[Identity]:
        """The identity while READY, otherwise None."""
        return self._status.identity if self._status.is_ready else None

    def on_change(self, listener: StatusListener) -> None:
        self._listeners.append(listener)

    async def __aenter__(self) -> "SessionBootstrap":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()

    async def start(self) -> SessionStatus:
        """
        Subscribe, then establish the identity.

        Failure to establish moves to ERROR and stops; the user has to
        restart the application.
        """
        if self._unsubscribe is None:
            self._unsubscribe = self.identity_service.subscribe(self._on_identity_changed)

        with operation_scope():
            logger.info("Starting session bootstrap...")
            try:
                identity = await self.identity_service.establish_anonymous_identity()
            except IdentityUnavailableError as e:
                logger.error("Sign in error: %s | Context: %s", e.message, e.context)
                self._set_status(SessionStatus(SessionPhase.ERROR, message=e.message))
                return self._status

            # An identity that was already current produces no change event
            if self._status.phase is SessionPhase.LOADING:
                self._set_status(SessionStatus(SessionPhase.READY, identity=identity))

        return self._status

    def close(self) -> None:
        """Release the identity subscription (idempotent)."""
        if self._unsubscribe is not None:
            logger.info("Cleaning up identity listener")
            self._unsubscribe()
            self._unsubscribe = None

    def _on_identity_changed(self, identity: Optional[Identity]) -> None:
        if identity is not None:
            self._set_status(SessionStatus(SessionPhase.READY, identity=identity))
        elif self._status.phase is SessionPhase.ERROR:
            logger.debug("Identity cleared while in error state; keeping error")
        else:
            self._set_status(SessionStatus(SessionPhase.SIGNED_OUT))

    def _set_status(self, status: SessionStatus) -> None:
        self._status = status
        logger.info("Session %s", status.phase.value)
        for listener in list(self._listeners):
            listener(status)
