"""In-process fan-out of messages to connected clients.

Subscribers are callables receiving each message dict. The websocket
server registers one per connected socket; tests and embedding
applications can register plain functions.
"""

import logging
import threading
from typing import Callable, Dict

logger = logging.getLogger(__name__)

Subscriber = Callable[[dict], None]


class MessageHub:
    """Thread-safe registry of subscribers with best-effort broadcast."""

    def __init__(self):
        self._lock = threading.Lock()
        self._subscribers: Dict[int, Subscriber] = {}
        self._next_id = 0

    def subscribe(self, subscriber: Subscriber) -> int:
        """Register a subscriber; returns a token for :meth:`unsubscribe`."""
        with self._lock:
            self._next_id += 1
            token = self._next_id
            self._subscribers[token] = subscriber
        logger.debug(f"Subscriber {token} connected ({len(self)} total)")
        return token

    def unsubscribe(self, token: int) -> None:
        with self._lock:
            self._subscribers.pop(token, None)

    def __len__(self) -> int:
        return len(self._subscribers)

    def broadcast(self, message: dict) -> None:
        """Deliver ``message`` once to every subscriber connected right now.

        A subscriber that raises is dropped; the others still receive the
        message.
        """
        with self._lock:
            subscribers = list(self._subscribers.items())

        for token, subscriber in subscribers:
            try:
                subscriber(message)
            except Exception as e:
                logger.warning(f"Dropping subscriber {token} after delivery failure: {e}")
                self.unsubscribe(token)
