# progress.py
from __future__ import annotations

import asyncio
import inspect
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Union


@dataclass(frozen=True)
class Progress:
    acted: int
    total: int

    def to_message(self) -> Dict[str, Any]:
        return {"type": "progress", "acted": self.acted, "total": self.total}


@dataclass(frozen=True)
class Completed:
    total_acted: int

    def to_message(self) -> Dict[str, Any]:
        return {"type": "completed", "totalActed": self.total_acted}


@dataclass(frozen=True)
class LimitReached:
    total_acted: int

    def to_message(self) -> Dict[str, Any]:
        return {"type": "limitReached", "totalActed": self.total_acted}


Event = Union[Progress, Completed, LimitReached]
Listener = Callable[[Event], Any]


class ProgressChannel:
    """Best-effort, fire-and-forget delivery of run events.

    A listener that raises, or a coroutine listener that fails later, is
    reported and dropped on the floor; the caller never sees the error.
    """

    def __init__(self, listeners: Optional[List[Listener]] = None) -> None:
        self._listeners: List[Listener] = list(listeners or [])
        self._pending: set[asyncio.Future] = set()

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def emit(self, event: Event) -> None:
        for listener in list(self._listeners):
            try:
                result = listener(event)
                if inspect.isawaitable(result):
                    self._schedule(result, event)
            except Exception as exc:
                print(f"⚠️ Failed to deliver {type(event).__name__} event: {exc}")

    def _schedule(self, awaitable: Any, event: Event) -> None:
        future = asyncio.ensure_future(awaitable)
        self._pending.add(future)

        def _done(fut: asyncio.Future) -> None:
            self._pending.discard(fut)
            if fut.cancelled():
                return
            exc = fut.exception()
            if exc is not None:
                print(f"⚠️ Failed to deliver {type(event).__name__} event: {exc}")

        future.add_done_callback(_done)

    async def drain(self) -> None:
        """Wait for scheduled coroutine listeners; used at shutdown."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


def console_listener(event: Event) -> None:
    if isinstance(event, Progress):
        print(f"🔹 Clipping... {event.acted} / {event.total}")
    elif isinstance(event, Completed):
        print(f"✅ All coupons clipped! ({event.total_acted} total)")
    elif isinstance(event, LimitReached):
        print(f"🛑 Coupon limit reached. ({event.total_acted} clipped)")
