# loader.py
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional

from items import ItemEnvironment


class LoaderState(str, Enum):
    OBSERVE = "observe"
    REVEAL = "reveal"
    SETTLE = "settle"
    DONE = "done"
    STALLED = "stalled"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class LoadResult:
    loaded: int
    expected: int
    state: LoaderState
    ticks: int

    @property
    def reached(self) -> bool:
        return self.state is LoaderState.DONE


class CollectionLoader:
    """Scrolls the page until the expected number of coupons is rendered.

    The page gives no event when new cards arrive, so this polls: observe the
    count, reveal more, let the page settle, wait a tick, observe again. If
    the count does not grow for ``stagnation_limit`` observations in a row
    the loader gives up and reports what it has.
    """

    def __init__(
        self,
        environment: ItemEnvironment,
        *,
        tick_interval: float = 1.0,
        settle_delay: float = 0.5,
        stagnation_limit: int = 5,
        should_stop: Optional[Callable[[], bool]] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if stagnation_limit < 1:
            raise ValueError("stagnation_limit must be at least 1")
        self._environment = environment
        self._tick_interval = tick_interval
        self._settle_delay = settle_delay
        self._stagnation_limit = stagnation_limit
        self._should_stop = should_stop
        self._sleep = sleep

    async def load(self, expected_count: int) -> LoadResult:
        state = LoaderState.OBSERVE
        best = -1
        stagnant = 0
        ticks = 0
        current = 0

        while state not in (LoaderState.DONE, LoaderState.STALLED, LoaderState.CANCELLED):
            if state is LoaderState.OBSERVE:
                ticks += 1
                current = await self._environment.count()
                if current >= expected_count:
                    state = LoaderState.DONE
                    continue
                if self._should_stop is not None and self._should_stop():
                    state = LoaderState.CANCELLED
                    continue
                if current > best:
                    best = current
                    stagnant = 0
                else:
                    stagnant += 1
                    if stagnant >= self._stagnation_limit:
                        state = LoaderState.STALLED
                        continue
                state = LoaderState.REVEAL

            elif state is LoaderState.REVEAL:
                await self._environment.reveal_more()
                state = LoaderState.SETTLE

            elif state is LoaderState.SETTLE:
                await self._sleep(self._settle_delay)
                await self._sleep(self._tick_interval)
                state = LoaderState.OBSERVE

        if state is LoaderState.DONE:
            print(f"✅ Loaded {current} coupons (expected {expected_count}).")
        elif state is LoaderState.STALLED:
            print(
                f"⚠️ Coupon count stuck at {current} of {expected_count} after "
                f"{self._stagnation_limit} scrolls; continuing with what loaded."
            )
        else:
            print(f"🛑 Loading stopped at {current} of {expected_count} coupons.")

        return LoadResult(loaded=current, expected=expected_count, state=state, ticks=ticks)
