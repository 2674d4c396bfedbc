"""Launch Chromium with a persistent profile for the coupons site.

Clipping needs a signed-in session, so the browser keeps its cookies and
local storage in ``profile_dir`` between runs. The helpers return the
Playwright controller alongside the context so callers can shut both down.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Tuple

from playwright.async_api import BrowserContext, Page, Playwright, async_playwright


async def launch_persistent(
    start_url: Optional[str],
    profile_dir: str,
    *,
    headless: bool = False,
) -> Tuple[Playwright, BrowserContext, Page]:
    """Start Chromium on ``profile_dir`` and open ``start_url``.

    Parameters
    ----------
    start_url:
        Page to load after launch. ``None`` leaves the first tab as it is.
    profile_dir:
        Chromium user data directory; created when missing.
    headless:
        Keep the window visible by default so the user can sign in.
    """

    profile_path = Path(profile_dir)
    profile_path.mkdir(parents=True, exist_ok=True)

    playwright = await async_playwright().start()
    try:
        context = await playwright.chromium.launch_persistent_context(
            str(profile_path.resolve()),
            headless=headless,
        )
    except Exception:
        await playwright.stop()
        raise

    page = context.pages[0] if context.pages else await context.new_page()

    if start_url:
        try:
            await page.goto(start_url, wait_until="load")
        except Exception as exc:
            # the user can still navigate by hand, e.g. after a login prompt
            print(f"⚠️ Failed to open {start_url}: {exc}")

    return playwright, context, page


async def shutdown(playwright: Optional[Playwright], context: Optional[BrowserContext]) -> None:
    """Close what ``launch_persistent`` opened."""

    try:
        if context:
            await context.close()
    finally:
        if playwright:
            await playwright.stop()
