import asyncio

import pytest

from items import ActionState
from page_inspector import CouponPage, action_state_from, item_from_payload, parse_total, split_categories


def test_split_categories_trims_and_drops_empty() -> None:
    assert split_categories(" Produce, Tobacco ,,") == frozenset({"Produce", "Tobacco"})
    assert split_categories(None) == frozenset()


def test_action_state_from_button() -> None:
    assert action_state_from("Clip", disabled=False) is ActionState.PENDING
    assert action_state_from(" Clip ", disabled=True) is ActionState.DISABLED
    assert action_state_from("Unclip", disabled=False) is ActionState.DONE
    assert action_state_from("Clip", disabled=False, clipped=True) is ActionState.DONE


def test_item_from_payload() -> None:
    item = item_from_payload(
        {
            "id": "coupon-7",
            "label": "Clip",
            "disabled": False,
            "clipped": False,
            "categories": "Produce,Dairy",
            "text": "Save $1.00\n on   Milk",
        }
    )
    assert item.id == "coupon-7"
    assert item.action_state is ActionState.PENDING
    assert item.categories == frozenset({"Produce", "Dairy"})
    assert item.text == "Save $1.00 on Milk"


def test_parse_total_reads_leading_number() -> None:
    assert parse_total("312 Coupons") == 312
    assert parse_total("  42") == 42
    assert parse_total("Coupons") == 0
    assert parse_total(None) == 0


COUPONS_HTML = """
<div class="CouponCount">3 Coupons</div>
<label><input type="checkbox" data-testid="Filter-by-produce"><span class="truncate">Produce</span></label>
<label><input type="checkbox" data-testid="Filter-by-tobacco"><span class="truncate"> Tobacco </span></label>
<div class="CouponCardNew" data-category="Produce, Dairy">
  <p>Save $1 on bananas</p>
  <button class="CouponCard-button" onclick="this.textContent = 'Unclip'">Clip</button>
</div>
<div class="CouponCardNew" data-category="Tobacco">
  <button class="CouponCard-button" disabled>Clip</button>
</div>
<div class="CouponCardNew" data-category="Dairy">
  <button class="CouponCard-button">Clip</button>
</div>
"""


def test_coupon_page_against_rendered_markup() -> None:
    async_api = pytest.importorskip("playwright.async_api")

    async def run_test() -> None:
        async with async_api.async_playwright() as playwright:
            try:
                browser = await playwright.chromium.launch(headless=True)
            except Exception as exc:
                pytest.skip(f"chromium is not available: {exc}")
            try:
                page = await browser.new_page()
                await page.set_content(COUPONS_HTML)
                coupons = CouponPage(page)

                assert await coupons.count() == 3
                assert await coupons.expected_total() == 3
                assert await coupons.available_categories() == ["Produce", "Tobacco"]

                first_listing = await coupons.list_items()
                assert [item.id for item in first_listing] == ["coupon-1", "coupon-2", "coupon-3"]
                assert [item.action_state for item in first_listing] == [
                    ActionState.PENDING,
                    ActionState.DISABLED,
                    ActionState.PENDING,
                ]
                assert first_listing[0].categories == frozenset({"Produce", "Dairy"})
                assert "bananas" in first_listing[0].text

                # ids stay put across listings
                assert [item.id for item in await coupons.list_items()] == ["coupon-1", "coupon-2", "coupon-3"]

                # a working click flips the label; our marker alone also reads as done
                await coupons.trigger(first_listing[0])
                await coupons.mark_done(first_listing[0])
                await coupons.mark_done(first_listing[2])
                states = [item.action_state for item in await coupons.list_items()]
                assert states == [ActionState.DONE, ActionState.DISABLED, ActionState.DONE]

                # refresh ignores the marker, so the unclicked third coupon is still pending
                assert (await coupons.refresh(first_listing[0])).action_state is ActionState.DONE
                assert (await coupons.refresh(first_listing[2])).action_state is ActionState.PENDING

                await page.evaluate("document.querySelector('[data-clipper-id=\"coupon-3\"]').remove()")
                assert await coupons.refresh(first_listing[2]) is None
            finally:
                await browser.close()

    asyncio.run(run_test())
