"""
Auth session broadcast.

One channel per client session, never shared between users. Subscribers
receive ``(event, session)`` and treat the session as read-only (it is a
frozen dataclass). Only ``AuthFlow`` publishes, relaying whatever the auth
provider answered.
"""
from __future__ import annotations

import enum
from threading import RLock
from typing import Callable, Optional

from integrations.supabase import AuthSession
from logging_config import get_logger

logger = get_logger("session")


class SessionEvent(str, enum.Enum):
    INITIAL_SESSION = "INITIAL_SESSION"
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    USER_UPDATED = "USER_UPDATED"
    PASSWORD_RECOVERY = "PASSWORD_RECOVERY"


Subscriber = Callable[[SessionEvent, Optional[AuthSession]], None]


class SessionChannel:
    def __init__(self):
        self._subscribers: list[Subscriber] = []
        self._current: Optional[AuthSession] = None
        self._lock = RLock()

    @property
    def current(self) -> Optional[AuthSession]:
        return self._current

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register ``callback``; it is called once right away with the current session."""
        with self._lock:
            self._subscribers.append(callback)
            current = self._current
        self._deliver(callback, SessionEvent.INITIAL_SESSION, current)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, event: SessionEvent, session: Optional[AuthSession]) -> None:
        with self._lock:
            self._current = None if event is SessionEvent.SIGNED_OUT else session
            subscribers = list(self._subscribers)
        logger.debug("Publishing %s to %d subscribers", event.value, len(subscribers))
        for callback in subscribers:
            self._deliver(callback, event, self._current)

    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    @staticmethod
    def _deliver(callback: Subscriber, event: SessionEvent, session: Optional[AuthSession]) -> None:
        try:
            callback(event, session)
        except Exception as e:
            # Keep delivering to the remaining subscribers
            logger.error(
                "Session subscriber %s failed on %s: %s",
                getattr(callback, "__name__", repr(callback)),
                event.value,
                e,
            )
