"""Outbound notification queue with per-tick flush semantics.

Subsystems publish into the queue as they run; the owner flushes once per tick
so subscribers observe signals in publish order. Signals published while a
flush is running are delivered on the next flush.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

NEED_CHANGED = "need_changed"
NEED_CRITICAL = "need_critical"
ACTION_CHANGED = "action_changed"
TASK_STARTED = "task_started"
TASK_FINISHED = "task_finished"
TASK_CANCELLED = "task_cancelled"
TASK_BLOCKED = "task_blocked"
JOB_STARTED = "job_started"
JOB_COMPLETED = "job_completed"
JOB_INTERRUPTED = "job_interrupted"
JOB_RESUMED = "job_resumed"
BREAK_STARTED = "break_started"
BREAK_ENDED = "break_ended"
THREAT_DETECTED = "threat_detected"
DEGRADED = "degraded"

_Handler = Callable[[str, dict[str, Any]], None]


@dataclass(frozen=True)
class Signal:
    name: str
    data: dict[str, Any]


class SignalBus:

    def __init__(self) -> None:
        self._subscribers: dict[str, list[_Handler]] = {}
        self._wildcard: list[_Handler] = []
        self._queue: list[Signal] = []

    def subscribe(self, signal_name: str, handler: _Handler) -> None:
        """Register a handler. ``"*"`` receives every signal."""
        if signal_name == "*":
            self._wildcard.append(handler)
            return
        self._subscribers.setdefault(signal_name, []).append(handler)

    def unsubscribe(self, signal_name: str, handler: _Handler) -> None:
        handlers = self._wildcard if signal_name == "*" else self._subscribers.get(signal_name)
        if handlers is None:
            return
        try:
            handlers.remove(handler)
        except ValueError:
            pass

    def publish(self, signal_name: str, **data: Any) -> None:
        self._queue.append(Signal(signal_name, data))

    @property
    def pending(self) -> list[Signal]:
        return list(self._queue)

    def drain(self) -> list[Signal]:
        """Take every queued signal without dispatching it."""
        snapshot = self._queue
        self._queue = []
        return snapshot

    def flush(self) -> None:
        for sig in self.drain():
            for handler in list(self._subscribers.get(sig.name, ())):
                handler(sig.name, sig.data)
            for handler in list(self._wildcard):
                handler(sig.name, sig.data)

    def clear(self) -> None:
        self._queue.clear()


def edge_triggered(handler: _Handler) -> _Handler:
    """Wrap a need handler so critical signals fire only on entry.

    The returned handler must be subscribed to both ``need_critical`` and
    ``need_changed``. A need re-arms once a ``need_changed`` signal reports it
    left the critical range (``critical`` is False in the payload).
    """
    armed: dict[tuple[Any, Any], bool] = {}

    def wrapper(signal_name: str, data: dict[str, Any]) -> None:
        key = (data.get("agent"), data.get("need"))
        if signal_name == NEED_CHANGED:
            if not data.get("critical", False):
                armed[key] = True
            return
        if signal_name != NEED_CRITICAL:
            handler(signal_name, data)
            return
        if armed.get(key, True):
            armed[key] = False
            handler(signal_name, data)

    return wrapper
