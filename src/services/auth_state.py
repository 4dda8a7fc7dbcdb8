"""Subscribable stream of the signed-in session."""
from __future__ import annotations

import threading
from typing import Callable, Dict, Optional

from src.domain.models.session import Session
from src.domain.repositories import AuthStateListener
from qi_utils.logger_utils import logger


class AuthStateStream:
    """
    Publishes the current session (or None when signed out) to listeners.

    The stream starts unresolved. The first publish resolves it; from then on
    a new subscriber immediately receives the current state, so nobody has to
    guess whether the initial check already happened.
    """

    def __init__(self) -> None:
        self._listeners: Dict[int, AuthStateListener] = {}
        self._next_token = 0
        self._lock = threading.Lock()
        self._resolved = False
        self._current: Optional[Session] = None

    @property
    def resolved(self) -> bool:
        return self._resolved

    @property
    def current(self) -> Optional[Session]:
        return self._current

    def subscribe(self, listener: AuthStateListener) -> Callable[[], None]:
        with self._lock:
            token = self._next_token
            self._next_token += 1
            self._listeners[token] = listener
            resolved, current = self._resolved, self._current

        if resolved:
            self._deliver(listener, current)

        def unsubscribe() -> None:
            with self._lock:
                self._listeners.pop(token, None)

        return unsubscribe

    def publish(self, session: Optional[Session]) -> None:
        with self._lock:
            self._resolved = True
            self._current = session
            listeners = list(self._listeners.values())

        for listener in listeners:
            self._deliver(listener, session)

    def listener_count(self) -> int:
        with self._lock:
            return len(self._listeners)

    @staticmethod
    def _deliver(listener: AuthStateListener, session: Optional[Session]) -> None:
        try:
            listener(session)
        except Exception:  # noqa: BLE001
            # One broken listener must not stop the others from being notified.
            logger.exception("Auth state listener failed")
