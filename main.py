# main.py
from __future__ import annotations

import argparse
import asyncio
import signal
import sys
from dataclasses import replace
from typing import Dict, List, Optional

from bots._profile_launch import launch_persistent, shutdown
from classifier import build_classifier, load_keywords
from config import ClipperSettings, load_settings
from controller import ClipperController
from executor import RunState, RunStatus
from page_inspector import CouponPage
from progress import ProgressChannel, console_listener
from store import STOP_REQUESTED, JsonStateStore, StoreUnavailable


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="coupon-clipper",
        description="Clip every eligible digital coupon on the coupons page.",
    )
    parser.add_argument("--mode", choices=["attribute", "keyword"], help="How coupons are matched to categories.")
    parser.add_argument("--quota", type=int, help="Maximum number of coupons to clip in this run.")
    parser.add_argument("--keywords", help="JSON file mapping category -> keywords (keyword mode).")
    parser.add_argument("--headless", action="store_true", default=None, help="Run Chromium without a window.")
    parser.add_argument("--url", help="Coupons page to open.")
    parser.add_argument("--enable", action="append", default=[], metavar="CATEGORY", help="Enable a category and save it.")
    parser.add_argument("--disable", action="append", default=[], metavar="CATEGORY", help="Disable a category and save it.")
    parser.add_argument("--list-categories", action="store_true", help="Print the page's categories and the active filters, then exit.")
    parser.add_argument("--stop", action="store_true", help="Ask a running clipper to stop, then exit.")
    return parser


def apply_overrides(settings: ClipperSettings, args: argparse.Namespace) -> ClipperSettings:
    overrides = {}
    if args.mode:
        overrides["mode"] = args.mode
    if args.quota is not None:
        if args.quota < 0:
            raise ValueError("--quota must not be negative")
        overrides["quota_limit"] = args.quota
    if args.keywords:
        overrides["keywords_file"] = args.keywords
    if args.headless is not None:
        overrides["headless"] = args.headless
    if args.url:
        overrides["start_url"] = args.url
    return replace(settings, **overrides) if overrides else settings


def edit_policy(policy: Dict[str, bool], enable: List[str], disable: List[str]) -> Dict[str, bool]:
    edited = dict(policy)
    for category in enable:
        edited[category] = True
    for category in disable:
        edited[category] = False
    return edited


async def start_with_interrupt(controller: ClipperController, policy: Dict[str, bool]) -> Optional[RunState]:
    """Run a clip with Ctrl-C mapped to a cooperative stop.

    Outside the run Ctrl-C keeps its normal meaning.
    """
    loop = asyncio.get_running_loop()
    installed = False
    try:
        loop.add_signal_handler(signal.SIGINT, controller.stop)
        installed = True
    except (NotImplementedError, RuntimeError):
        pass

    try:
        return await controller.start(policy)
    finally:
        if installed:
            loop.remove_signal_handler(signal.SIGINT)


async def clip(settings: ClipperSettings, args: argparse.Namespace) -> int:
    keywords = load_keywords(settings.keywords_file) if settings.keywords_file else None
    classifier = build_classifier(settings.mode, keywords)
    store = JsonStateStore(settings.store_path)

    try:
        playwright, context, page = await launch_persistent(
            settings.start_url,
            settings.profile_dir,
            headless=settings.headless,
        )
    except Exception as exc:
        print(f"❌ Could not launch the browser: {exc}")
        return 1

    channel = ProgressChannel([console_listener])
    controller = ClipperController(CouponPage(page), classifier, store, channel, settings)

    try:
        categories = await controller.discover_categories()
        policy = controller.resolve_policy(categories)
        if args.enable or args.disable:
            policy = edit_policy(policy, args.enable, args.disable)
            controller.save_policy(policy)

        if args.list_categories:
            for category in categories:
                marker = "✅" if policy.get(category, True) else "🚫"
                print(f"{marker} {category}")
            return 0

        state = await start_with_interrupt(controller, policy)
        await channel.drain()
        if state is None:
            return 1
        print(f"\n🏁 Run {state.run_id} finished: {state.status.value} ({state.total_acted} clipped)")
        return 1 if state.status is RunStatus.FAILED else 0
    finally:
        await shutdown(playwright, context)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = apply_overrides(load_settings(), args)
    except ValueError as exc:
        print(f"❌ {exc}")
        return 2

    if args.stop:
        try:
            JsonStateStore(settings.store_path).set(STOP_REQUESTED, True)
        except StoreUnavailable as exc:
            print(f"❌ Could not request stop: {exc}")
            return 1
        print("🛑 Stop requested.")
        return 0

    try:
        return asyncio.run(clip(settings, args))
    except KeyboardInterrupt:
        print("🛑 Interrupted.")
        return 130
    except (ValueError, OSError, StoreUnavailable) as exc:
        print(f"❌ {exc}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
