"""
Authentication state stream.

An AuthStream reports the signed-in identity (or None) to subscribers on
every sign-in, sign-out and account switch, and replays the current identity
to each new subscriber.
"""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    """
    Authenticated end user issued by the authentication provider.

    Attributes:
        uid: Stable user id; keys the user's profile document.
        display_name: Display name known to the provider, if any.
        email: Email known to the provider, if any.
    """

    uid: str
    display_name: str | None = None
    email: str | None = None


AuthListener = Callable[[Identity | None], None]
Unsubscribe = Callable[[], None]


class AuthStream(ABC):
    """Source of authentication state changes."""

    @abstractmethod
    def subscribe(self, callback: AuthListener) -> Unsubscribe:
        """
        Register a listener for identity changes.

        The current identity is delivered immediately.

        Returns:
            Callable that removes the listener.
        """


class InMemoryAuthStream(AuthStream):
    """
    Local authentication stream.

    Stands in for the hosted auth provider during development and tests.
    """

    def __init__(self, identity: Identity | None = None) -> None:
        self._identity = identity
        self._listeners: dict[int, AuthListener] = {}
        self._next_id = 0
        self._lock = threading.Lock()

    @property
    def current_identity(self) -> Identity | None:
        return self._identity

    @property
    def listener_count(self) -> int:
        with self._lock:
            return len(self._listeners)

    def subscribe(self, callback: AuthListener) -> Unsubscribe:
        with self._lock:
            listener_id = self._next_id
            self._next_id += 1
            self._listeners[listener_id] = callback
            identity = self._identity

        callback(identity)

        def unsubscribe() -> None:
            with self._lock:
                self._listeners.pop(listener_id, None)

        return unsubscribe

    def sign_in(self, identity: Identity) -> None:
        """Sign in (or switch to) the given identity."""
        logger.info(f"Signed in: {identity.uid}")
        self._emit(identity)

    def sign_out(self) -> None:
        logger.info("Signed out")
        self._emit(None)

    def _emit(self, identity: Identity | None) -> None:
        with self._lock:
            self._identity = identity
            listeners = list(self._listeners.values())

        for listener in listeners:
            listener(identity)
