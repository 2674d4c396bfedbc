# page_inspector.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from playwright.async_api import Page

from items import ActionState, Item

CLIP_LABEL = "Clip"
ID_ATTRIBUTE = "data-clipper-id"


@dataclass(frozen=True)
class CouponSelectors:
    button: str = "button.CouponCard-button"
    card: str = ".CouponCardNew[data-category]"
    total: str = ".CouponCount"
    filter_checkbox: str = 'input[data-testid^="Filter-by-"]'
    filter_label: str = "span.truncate"


# tags every coupon button with a stable id on first sight and reports
# the raw state of each one
_LIST_ITEMS_JS = """
({button, card, idAttr}) => {
    const counter = window.__clipperNextId || 1;
    let next = counter;
    const rows = [];
    for (const btn of document.querySelectorAll(button)) {
        if (!btn.getAttribute(idAttr)) {
            btn.setAttribute(idAttr, `coupon-${next++}`);
        }
        const cardEl = btn.closest(card);
        rows.push({
            id: btn.getAttribute(idAttr),
            label: (btn.textContent || '').trim(),
            disabled: !!btn.disabled,
            clipped: !!btn.dataset.clipped,
            categories: cardEl ? (cardEl.getAttribute('data-category') || '') : '',
            text: cardEl ? (cardEl.innerText || '') : '',
        });
    }
    window.__clipperNextId = next;
    return rows;
}
"""

_READ_ONE_JS = """
(btn) => ({
    label: (btn.textContent || '').trim(),
    disabled: !!btn.disabled,
})
"""

_CATEGORIES_JS = """
({checkbox, label}) => {
    const names = [];
    for (const box of document.querySelectorAll(checkbox)) {
        const wrapper = box.closest('label');
        const span = wrapper ? wrapper.querySelector(label) : null;
        if (span) {
            const name = (span.textContent || '').trim();
            if (name) names.push(name);
        }
    }
    return names;
}
"""


def split_categories(raw: Optional[str]) -> frozenset[str]:
    # the site stores multiple categories comma-separated
    if not raw:
        return frozenset()
    return frozenset(part.strip() for part in raw.split(",") if part.strip())


def action_state_from(label: str, disabled: bool, clipped: bool = False) -> ActionState:
    if clipped or label.strip() != CLIP_LABEL:
        return ActionState.DONE
    if disabled:
        return ActionState.DISABLED
    return ActionState.PENDING


def item_from_payload(payload: Dict[str, Any]) -> Item:
    return Item(
        id=str(payload.get("id") or ""),
        action_state=action_state_from(
            str(payload.get("label") or ""),
            bool(payload.get("disabled")),
            bool(payload.get("clipped")),
        ),
        categories=split_categories(payload.get("categories")),
        text=" ".join(str(payload.get("text") or "").split()),
    )


def parse_total(text: Optional[str]) -> int:
    if not text:
        return 0
    digits = ""
    for char in text.strip():
        if not char.isdigit():
            break
        digits += char
    return int(digits) if digits else 0


class CouponPage:
    """The live coupons page, seen through Playwright."""

    def __init__(
        self,
        page: Page,
        selectors: Optional[CouponSelectors] = None,
        *,
        scroll_step: int = 1000,
        click_timeout: int = 8000,
    ) -> None:
        self.page = page
        self.selectors = selectors or CouponSelectors()
        self.scroll_step = scroll_step
        self.click_timeout = click_timeout

    def _locator_for(self, item: Item):
        return self.page.locator(f'{self.selectors.button}[{ID_ATTRIBUTE}="{item.id}"]').first

    async def count(self) -> int:
        return await self.page.locator(self.selectors.button).count()

    async def list_items(self) -> List[Item]:
        rows = await self.page.evaluate(
            _LIST_ITEMS_JS,
            {"button": self.selectors.button, "card": self.selectors.card, "idAttr": ID_ATTRIBUTE},
        )
        return [item_from_payload(row) for row in rows or []]

    async def trigger(self, item: Item) -> None:
        await self._locator_for(item).click(timeout=self.click_timeout)

    async def mark_done(self, item: Item) -> None:
        await self._locator_for(item).evaluate("(btn) => { btn.dataset.clipped = 'true'; }")

    async def refresh(self, item: Item) -> Optional[Item]:
        locator = self._locator_for(item)
        if await locator.count() == 0:
            return None
        # ignores our own data-clipped marker so a dead click still shows up
        raw = await locator.evaluate(_READ_ONE_JS)
        return Item(
            id=item.id,
            action_state=action_state_from(str(raw.get("label") or ""), bool(raw.get("disabled"))),
            categories=item.categories,
            text=item.text,
        )

    async def reveal_more(self) -> None:
        await self.page.evaluate(
            "(step) => window.scrollBy({top: step, behavior: 'smooth'})",
            self.scroll_step,
        )

    async def expected_total(self) -> int:
        locator = self.page.locator(self.selectors.total)
        if await locator.count() == 0:
            return 0
        return parse_total(await locator.first.text_content())

    async def available_categories(self) -> List[str]:
        names = await self.page.evaluate(
            _CATEGORIES_JS,
            {"checkbox": self.selectors.filter_checkbox, "label": self.selectors.filter_label},
        )
        print(f"🗂️ Found categories: {names}")
        return list(names or [])
