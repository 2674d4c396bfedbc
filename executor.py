# executor.py
from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Awaitable, Callable, List, Mapping, Optional, Set

from cancellation import CancellationToken
from classifier import Classifier
from items import ActionState, Item, ItemEnvironment
from progress import Completed, LimitReached, Progress, ProgressChannel

DEFAULT_QUOTA = 250


class RunStatus(str, Enum):
    RUNNING = "running"
    STOPPED = "stopped"
    LIMIT_REACHED = "limit_reached"
    COMPLETED = "completed"
    NO_EFFECT = "no_effect"
    FAILED = "failed"


TERMINAL_STATUSES = frozenset(
    {RunStatus.STOPPED, RunStatus.LIMIT_REACHED, RunStatus.COMPLETED, RunStatus.NO_EFFECT, RunStatus.FAILED}
)


@dataclass
class RunState:
    """Counters and status for exactly one clipping run.

    A new run gets a new RunState; nothing carries over from the last one.
    """

    quota_limit: int = DEFAULT_QUOTA
    total_acted: int = 0
    status: RunStatus = RunStatus.RUNNING
    acted_ids: List[str] = field(default_factory=list)
    skipped_ids: Set[str] = field(default_factory=set)
    run_id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    finished_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.quota_limit < 0:
            raise ValueError("quota_limit must not be negative")

    @property
    def is_finished(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def quota_exhausted(self) -> bool:
        return self.total_acted >= self.quota_limit

    def has_handled(self, item_id: str) -> bool:
        return item_id in self.skipped_ids or item_id in self.acted_ids

    def record_action(self, item_id: str) -> None:
        # marker first, then the counter; the two always move together
        self.acted_ids.append(item_id)
        self.total_acted += 1

    def finish(self, status: RunStatus) -> None:
        if status is RunStatus.RUNNING:
            raise ValueError("finish() needs a terminal status")
        if self.is_finished:
            raise ValueError(f"Run {self.run_id} already finished as {self.status.value}")
        self.status = status
        self.finished_at = datetime.now(UTC)


class ActionExecutor:
    """Clips coupons one at a time until none are left, the quota is used up,
    or a stop is requested.

    The page is re-read every iteration: clipping one coupon, or the site
    itself, can change which buttons are still clippable.
    """

    def __init__(
        self,
        environment: ItemEnvironment,
        classifier: Classifier,
        cancellation: CancellationToken,
        channel: ProgressChannel,
        *,
        settle_delay: float = 0.02,
        verify_actions: bool = False,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._environment = environment
        self._classifier = classifier
        self._cancellation = cancellation
        self._channel = channel
        self._settle_delay = settle_delay
        self._verify_actions = verify_actions
        self._sleep = sleep

    def eligible_items(
        self,
        items: List[Item],
        policy: Mapping[str, bool],
        state: Optional[RunState] = None,
    ) -> List[Item]:
        eligible: List[Item] = []
        for item in items:
            if item.action_state is not ActionState.PENDING:
                continue
            if state is not None and state.has_handled(item.id):
                continue
            if self._classifier.eligible(item, policy):
                eligible.append(item)
        return eligible

    async def count_eligible(self, policy: Mapping[str, bool], state: Optional[RunState] = None) -> int:
        items = await self._environment.list_items()
        return len(self.eligible_items(items, policy, state))

    def _finish(self, state: RunState, status: RunStatus) -> RunStatus:
        state.finish(status)
        if status is RunStatus.COMPLETED:
            self._channel.emit(Completed(total_acted=state.total_acted))
        elif status is RunStatus.LIMIT_REACHED:
            print(f"⚠️ {state.quota_limit} coupon limit reached; stopping.")
            self._channel.emit(LimitReached(total_acted=state.total_acted))
        return status

    async def run(
        self,
        policy: Mapping[str, bool],
        state: RunState,
        expected_total: int = 0,
    ) -> RunStatus:
        if state.is_finished:
            print(f"⚠️ Run {state.run_id} already finished ({state.status.value}); nothing to do.")
            return state.status

        print(f"\n🌐 Starting clipping run {state.run_id} (limit {state.quota_limit})")

        while True:
            if self._cancellation.is_cancelled():
                print("🛑 Clipping stopped by user.")
                return self._finish(state, RunStatus.STOPPED)

            try:
                items = await self._environment.list_items()
            except Exception as exc:
                # e.g. the page navigated away mid-run
                print(f"❌ Could not read coupons from the page: {exc}")
                return self._finish(state, RunStatus.FAILED)
            eligible = self.eligible_items(items, policy, state)

            if not eligible:
                print("✅ No more coupons to clip!")
                return self._finish(state, RunStatus.COMPLETED)

            if state.quota_exhausted:
                return self._finish(state, RunStatus.LIMIT_REACHED)

            item = eligible[0]
            print(f"🔹 Clipping coupon {state.total_acted + 1} ({len(eligible)} remaining): {item.id}")

            try:
                await self._environment.trigger(item)
            except Exception as exc:
                # the card went away or changed under us; never retry it this run
                print(f"⚠️ Could not clip {item.id}: {exc}")
                state.skipped_ids.add(item.id)
                continue

            try:
                await self._environment.mark_done(item)
            except Exception as exc:
                print(f"⚠️ Could not mark {item.id} on the page: {exc}")

            await self._sleep(self._settle_delay)

            state.record_action(item.id)
            self._channel.emit(Progress(acted=state.total_acted, total=expected_total))

            if self._verify_actions and await self._had_no_effect(item):
                print(f"❌ Clicking {item.id} did not clip it; stopping so the page can be checked.")
                return self._finish(state, RunStatus.NO_EFFECT)

            if state.quota_exhausted:
                return self._finish(state, RunStatus.LIMIT_REACHED)

    async def _had_no_effect(self, item: Item) -> bool:
        try:
            current = await self._environment.refresh(item)
        except Exception as exc:
            print(f"⚠️ Could not re-read {item.id}: {exc}")
            return False
        if current is None:
            return False
        return current.action_state is ActionState.PENDING
