"""Coalescing notification scheduler.

Scripts may log many messages in a tight loop. Rather than pushing each
one to clients, messages are collected per key (the id of the note whose
script produced them) and flushed as a single batch once the debounce
interval has passed since the first pending message.

Per key the state machine is Idle -> Scheduled -> Idle:

- ``notify`` appends to the key's pending list and, when Idle, starts a
  timer and moves to Scheduled.
- When the timer fires the pending list is swapped for an empty one, the
  key goes back to Idle, and the swapped-out batch is broadcast.

Keys are independent. Append and swap run under a per-key lock so a
message is never lost or delivered twice when a timer thread races a
caller.
"""

import logging
import threading
from typing import Any, Callable, Dict, List, Optional, Protocol

from arbor.types import LogEvent

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.1


class Broadcaster(Protocol):
    """Delivers one message to every currently connected client."""

    def broadcast(self, message: dict) -> None: ...


TimerFactory = Callable[[float, Callable[[], None]], Any]


def _thread_timer(interval: float, callback: Callable[[], None]) -> threading.Timer:
    timer = threading.Timer(interval, callback)
    timer.daemon = True
    return timer


class SpacedUpdate:
    """Runs ``updater`` with the pending items at most once per interval.

    The first ``schedule`` after an idle period starts a timer; later
    calls before it fires only add items. Items scheduled while the
    updater runs are picked up by the next timer.
    """

    def __init__(
        self,
        updater: Callable[[List[Any]], None],
        interval: float = DEFAULT_DEBOUNCE_SECONDS,
        timer_factory: Optional[TimerFactory] = None,
    ):
        self.updater = updater
        self.interval = interval
        self._timer_factory = timer_factory or _thread_timer
        self._lock = threading.Lock()
        self._pending: List[Any] = []
        self._scheduled = False

    @property
    def scheduled(self) -> bool:
        return self._scheduled

    @property
    def pending(self) -> List[Any]:
        with self._lock:
            return list(self._pending)

    def schedule(self, item: Any) -> None:
        with self._lock:
            self._pending.append(item)
            if self._scheduled:
                return
            self._scheduled = True
            timer = self._timer_factory(self.interval, self._fire)
        timer.start()

    def _drain(self) -> List[Any]:
        with self._lock:
            items, self._pending = self._pending, []
            self._scheduled = False
        return items

    def _fire(self) -> None:
        self._run(self._drain())

    def update_now_if_necessary(self) -> bool:
        """Deliver pending items immediately. Returns True if anything was sent.

        A timer that is already running still fires later; it finds
        nothing pending and sends nothing.
        """
        return self._run(self._drain())

    def _run(self, items: List[Any]) -> bool:
        if not items:
            return False
        try:
            self.updater(items)
        except Exception as e:
            # delivery is best-effort; the transport owns its failures
            logger.error(f"Spaced update delivery failed: {e}", exc_info=True)
        return True


class NotificationScheduler:
    """Batches ``notify(key, message)`` calls into one broadcast per key and interval."""

    def __init__(
        self,
        broadcaster: Broadcaster,
        interval: float = DEFAULT_DEBOUNCE_SECONDS,
        timer_factory: Optional[TimerFactory] = None,
    ):
        self.broadcaster = broadcaster
        self.interval = interval
        self._timer_factory = timer_factory
        self._updates: Dict[str, SpacedUpdate] = {}
        self._lock = threading.Lock()

    def _get_update(self, key: str) -> SpacedUpdate:
        with self._lock:
            update = self._updates.get(key)
            if update is None:
                update = SpacedUpdate(
                    lambda messages: self._send(key, messages),
                    interval=self.interval,
                    timer_factory=self._timer_factory,
                )
                self._updates[key] = update
            return update

    def _send(self, key: str, messages: List[Any]) -> None:
        self.broadcaster.broadcast(LogEvent(note_id=key, messages=messages).to_message())

    def notify(self, key: str, message: Any) -> None:
        """Queue ``message`` under ``key``. Never raises for delivery problems."""
        self._get_update(key).schedule(message)

    def is_scheduled(self, key: str) -> bool:
        update = self._updates.get(key)
        return bool(update and update.scheduled)

    def pending(self, key: str) -> List[Any]:
        update = self._updates.get(key)
        return update.pending if update else []

    def flush_all(self) -> int:
        """Deliver every key's pending batch now. Returns the number of batches sent."""
        with self._lock:
            updates = list(self._updates.values())
        return sum(1 for update in updates if update.update_now_if_necessary())
