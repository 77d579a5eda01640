"""
Nature Journal — Abstract Identity Service Interface
======================================================

What:  Contract for the service issuing and tracking the anonymous identity.
How:   Concrete implementations inherit from IdentityService, implement the
       establish/sign-out calls, and announce every change through
       `_notify()` to the subscribers registered with `subscribe()`.
Who:   Consumed by SessionBootstrap, which is the only component that decides
       whether the rest of the journal may run.
"""

import logging
from abc import ABC, abstractmethod
from typing import Callable, List, Optional

from nature_journal.schemas.identity import Identity

logger = logging.getLogger(__name__)

# Receives the new identity, or None when the identity is gone
IdentityListener = Callable[[Optional[Identity]], None]
Unsubscribe = Callable[[], None]


class IdentityService(ABC):
    """
    Abstract interface for anonymous identity providers.

    Contract:
        - establish_anonymous_identity() returns a usable identity or raises
          IdentityUnavailableError. It does not retry.
        - Listeners are notified on change only (not on subscribe).
        - The returned unsubscribe callable is idempotent.
    """

    def __init__(self) -> None:
        self._listeners: List[IdentityListener] = []
        self._current: Optional[Identity] = None

    @property
    def current_identity(self) -> Optional[Identity]:
        return self._current

    @abstractmethod
    async def establish_anonymous_identity(self) -> Identity:
        """
        Ensure an anonymous identity exists, creating one if absent.

        Returns:
            The established identity (also announced to listeners if it
            differs from the current one).

        Raises:
            IdentityUnavailableError: the service could not be reached or
                refused to issue an identity.
        """
        ...

    @abstractmethod
    async def sign_out(self) -> None:
        """Drop the current identity and announce `None` to listeners."""
        ...

    def subscribe(self, listener: IdentityListener) -> Unsubscribe:
        """Register a change listener; returns the callable that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set_current(self, identity: Optional[Identity]) -> None:
        """Store the new identity and notify listeners if it changed."""
        changed = (self._current.uid if self._current else None) != (identity.uid if identity else None)
        self._current = identity
        if changed:
            self._notify(identity)

    def _notify(self, identity: Optional[Identity]) -> None:
        logger.info(
            "Identity changed: %s",
            f"uid={identity.uid}" if identity else "no identity",
        )
        # Copy: a listener may unsubscribe itself while being notified
        for listener in list(self._listeners):
            listener(identity)
