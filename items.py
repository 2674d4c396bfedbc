# items.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, List, Optional, Protocol


class ActionState(str, Enum):
    PENDING = "pending"
    DISABLED = "disabled"
    DONE = "done"


@dataclass(frozen=True)
class Item:
    """A coupon card as seen on the page at one point in time."""

    id: str
    action_state: ActionState
    categories: FrozenSet[str] = field(default_factory=frozenset)
    text: str = ""

    def description(self) -> str:
        if self.text:
            return self.text
        return " ".join(sorted(self.categories))


class ItemEnvironment(Protocol):
    """Everything the clipper needs from the live page.

    Items are owned by the page; the clipper only reads them, triggers the
    action and leaves a marker on the ones it acted on.
    """

    async def count(self) -> int:
        ...

    async def list_items(self) -> List[Item]:
        ...

    async def trigger(self, item: Item) -> None:
        ...

    async def mark_done(self, item: Item) -> None:
        ...

    async def reveal_more(self) -> None:
        ...

    async def expected_total(self) -> int:
        ...

    async def refresh(self, item: Item) -> Optional[Item]:
        ...

    async def available_categories(self) -> List[str]:
        ...
