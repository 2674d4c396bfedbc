# cancellation.py
from __future__ import annotations

from typing import Optional

from store import STOP_REQUESTED, JsonStateStore, StoreUnavailable


class CancellationToken:
    """Stop signal merged from two sources.

    The in-process flag is set by a direct stop command. The durable flag
    lives in the shared state file, so a controller that goes away before
    its command is delivered can still halt the run. The token reads as
    cancelled when either one is set.
    """

    def __init__(self, store: Optional[JsonStateStore] = None) -> None:
        self._store = store
        self._local = False

    def request_stop(self) -> None:
        self._local = True

    def request_durable_stop(self) -> None:
        if self._store is None:
            return
        try:
            self._store.set(STOP_REQUESTED, True)
        except StoreUnavailable as exc:
            print(f"⚠️ Could not persist stop request: {exc}")

    def _durable_requested(self) -> bool:
        if self._store is None:
            return False
        try:
            return self._store.get(STOP_REQUESTED, False) is True
        except StoreUnavailable as exc:
            # fail-open: an unreadable store never counts as a stop
            print(f"⚠️ Stop flag unreadable, continuing: {exc}")
            return False

    def is_cancelled(self) -> bool:
        if self._local:
            return True
        if self._durable_requested():
            # latch so the token stays cancelled for the rest of the run
            self._local = True
            return True
        return False

    def reset(self) -> None:
        self._local = False
        if self._store is None:
            return
        try:
            self._store.set(STOP_REQUESTED, False)
        except StoreUnavailable as exc:
            print(f"⚠️ Could not clear stop flag: {exc}")
