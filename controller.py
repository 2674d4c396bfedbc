# controller.py
from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Mapping, Optional, Tuple

from cancellation import CancellationToken
from classifier import Classifier, default_policy, sort_categories
from config import ClipperSettings
from executor import ActionExecutor, RunState, RunStatus
from items import ItemEnvironment
from loader import CollectionLoader
from progress import ProgressChannel
from store import AVAILABLE_CATEGORIES, SAVED_FILTER_POLICY, JsonStateStore, StoreUnavailable


class ClipperController:
    """Owns the run lifecycle: one run at a time, fresh state per run."""

    def __init__(
        self,
        environment: ItemEnvironment,
        classifier: Classifier,
        store: JsonStateStore,
        channel: ProgressChannel,
        settings: Optional[ClipperSettings] = None,
    ) -> None:
        self.settings = settings or ClipperSettings()
        self.environment = environment
        self.store = store
        self.channel = channel
        self.cancellation = CancellationToken(store)
        self.loader = CollectionLoader(
            environment,
            tick_interval=self.settings.tick_interval,
            settle_delay=self.settings.scroll_settle,
            stagnation_limit=self.settings.stagnation_ticks,
            should_stop=self.cancellation.is_cancelled,
        )
        self.executor = ActionExecutor(
            environment,
            classifier,
            self.cancellation,
            channel,
            settle_delay=self.settings.action_settle,
            verify_actions=self.settings.verify_actions,
        )
        self.current_run: Optional[RunState] = None
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    async def discover_categories(self) -> List[str]:
        categories = sort_categories(await self.environment.available_categories())
        if not categories:
            print("⚠️ No categories found, page may not be loaded yet.")
            return []
        try:
            self.store.set(AVAILABLE_CATEGORIES, categories)
        except StoreUnavailable as exc:
            print(f"⚠️ Could not save categories: {exc}")
        return categories

    def resolve_policy(self, categories: Optional[List[str]] = None) -> Dict[str, bool]:
        """Saved policy if there is one, otherwise the defaults for ``categories``."""
        try:
            saved = self.store.get(SAVED_FILTER_POLICY)
            if categories is None:
                categories = self.store.get(AVAILABLE_CATEGORIES, [])
        except StoreUnavailable as exc:
            print(f"⚠️ Could not read saved filters, using defaults: {exc}")
            saved = None
            categories = categories or []

        if isinstance(saved, dict) and saved:
            return {str(key): value is True for key, value in saved.items()}
        return default_policy(categories or [])

    def save_policy(self, policy: Mapping[str, bool]) -> None:
        self.store.set(SAVED_FILTER_POLICY, dict(policy))

    def _accept(self, policy: Optional[Mapping[str, bool]]) -> Optional[Tuple[RunState, Dict[str, bool]]]:
        # runs synchronously when the start command arrives, so a stop sent
        # right after it already finds the run active
        if self._running:
            print("⚠️ A clipping run is already in progress; ignoring start.")
            return None

        if policy is None:
            policy = self.resolve_policy()
        snapshot = dict(policy)

        self._running = True
        self.cancellation.reset()
        state = RunState(quota_limit=self.settings.quota_limit)
        self.current_run = state
        return state, snapshot

    async def _run(self, state: RunState, snapshot: Dict[str, bool]) -> RunState:
        try:
            try:
                total_on_page = await self.environment.expected_total()
                await self.loader.load(total_on_page)
                eligible = await self.executor.count_eligible(snapshot, state)
            except Exception as exc:
                print(f"❌ Could not load coupons from the page: {exc}")
                state.finish(RunStatus.FAILED)
                return state
            print(f"🗂️ Found {eligible} eligible coupons out of {total_on_page} total")

            if self.cancellation.is_cancelled():
                state.finish(RunStatus.STOPPED)
                print("🛑 Clipping stopped before the first coupon.")
                return state

            try:
                await self.executor.run(snapshot, state, eligible)
            except Exception as exc:
                print(f"❌ Clipping run {state.run_id} failed: {exc}")
                if not state.is_finished:
                    state.finish(RunStatus.FAILED)
            return state
        finally:
            self._running = False

    async def start(self, policy: Optional[Mapping[str, bool]] = None) -> Optional[RunState]:
        accepted = self._accept(policy)
        if accepted is None:
            return None
        return await self._run(*accepted)

    def stop(self) -> None:
        if not self._running:
            return
        print("🛑 Stopping clipping...")
        self.cancellation.request_durable_stop()
        self.cancellation.request_stop()

    def dispatch(self, message: Mapping[str, Any]) -> Optional[asyncio.Task]:
        """Handle a ``start``/``stop`` command message; start returns the run task."""
        kind = message.get("type")
        if kind == "start":
            policy = message.get("policy")
            accepted = self._accept(policy if isinstance(policy, dict) else None)
            if accepted is None:
                return None
            return asyncio.ensure_future(self._run(*accepted))
        if kind == "stop":
            self.stop()
            return None
        print(f"⚠️ Ignoring unknown command {kind!r}")
        return None
