from typing import Callable, Dict, Iterable, List, Optional

from items import ActionState, Item


class FakeShelf:
    """In-memory coupons page.

    ``hidden`` cards appear ``reveal_batch`` at a time when the page is
    scrolled. ``on_list`` hooks run before every listing so tests can mutate
    the page between iterations.
    """

    def __init__(
        self,
        items: Iterable[Item] = (),
        *,
        hidden: Iterable[Item] = (),
        reveal_batch: int = 10,
        total: Optional[int] = None,
        categories: Iterable[str] = (),
        clicks_take_effect: bool = True,
    ) -> None:
        self.items: List[Item] = list(items)
        self.hidden: List[Item] = list(hidden)
        self.reveal_batch = reveal_batch
        self.total = total if total is not None else len(self.items) + len(self.hidden)
        self.categories = list(categories)
        self.clicks_take_effect = clicks_take_effect
        self.clicked: List[str] = []
        self.marked: List[str] = []
        self.reveals = 0
        self.list_calls = 0
        self.failing_ids: set = set()
        self.on_list: List[Callable[["FakeShelf"], None]] = []

    def _index(self, item_id: str) -> int:
        for idx, item in enumerate(self.items):
            if item.id == item_id:
                return idx
        raise LookupError(f"{item_id} is no longer on the page")

    def set_state(self, item_id: str, state: ActionState) -> None:
        idx = self._index(item_id)
        current = self.items[idx]
        self.items[idx] = Item(current.id, state, current.categories, current.text)

    def remove(self, item_id: str) -> None:
        del self.items[self._index(item_id)]

    async def count(self) -> int:
        return len(self.items)

    async def list_items(self) -> List[Item]:
        self.list_calls += 1
        for hook in list(self.on_list):
            hook(self)
        return list(self.items)

    async def trigger(self, item: Item) -> None:
        if item.id in self.failing_ids:
            raise RuntimeError("element is detached from the DOM")
        self._index(item.id)
        self.clicked.append(item.id)
        if self.clicks_take_effect:
            self.set_state(item.id, ActionState.DONE)

    async def mark_done(self, item: Item) -> None:
        self.marked.append(item.id)

    async def reveal_more(self) -> None:
        self.reveals += 1
        batch, self.hidden = self.hidden[: self.reveal_batch], self.hidden[self.reveal_batch :]
        self.items.extend(batch)

    async def expected_total(self) -> int:
        return self.total

    async def refresh(self, item: Item) -> Optional[Item]:
        try:
            return self.items[self._index(item.id)]
        except LookupError:
            return None

    async def available_categories(self) -> List[str]:
        return list(self.categories)


def coupon(item_id: str, *categories: str, state: ActionState = ActionState.PENDING, text: str = "") -> Item:
    return Item(id=item_id, action_state=state, categories=frozenset(categories), text=text)


async def no_sleep(_seconds: float) -> None:
    return None


class Recorder:
    def __init__(self) -> None:
        self.events: List = []

    def __call__(self, event) -> None:
        self.events.append(event)

    def messages(self) -> List[Dict]:
        return [event.to_message() for event in self.events]

    def of_type(self, kind: str) -> List[Dict]:
        return [msg for msg in self.messages() if msg["type"] == kind]


