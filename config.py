# config.py
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

from classifier import ATTRIBUTE_MODE, KEYWORD_MODE
from executor import DEFAULT_QUOTA

DEFAULT_START_URL = "https://www.kroger.com/savings/cl/coupons/"
_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class ClipperSettings:
    start_url: str = DEFAULT_START_URL
    profile_dir: str = "profiles/chromium_user_data"
    store_path: str = "clipper_state.json"
    quota_limit: int = DEFAULT_QUOTA
    mode: str = ATTRIBUTE_MODE
    keywords_file: Optional[str] = None
    headless: bool = False
    tick_interval: float = 1.0
    scroll_settle: float = 0.5
    action_settle: float = 0.02
    stagnation_ticks: int = 5
    verify_actions: bool = False


def _flag(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in _TRUTHY


def _number(env: Mapping[str, str], name: str, default, cast):
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = cast(raw.strip())
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None
    if value < 0:
        raise ValueError(f"{name} must not be negative, got {raw!r}")
    return value


def load_settings(env: Optional[Mapping[str, str]] = None) -> ClipperSettings:
    """Build settings from CLIPPER_* variables (a .env file is read first)."""
    if env is None:
        load_dotenv()
        env = os.environ

    mode = (env.get("CLIPPER_MODE") or ATTRIBUTE_MODE).strip().lower()
    if mode not in (ATTRIBUTE_MODE, KEYWORD_MODE):
        raise ValueError(f"CLIPPER_MODE must be 'attribute' or 'keyword', got {mode!r}")

    defaults = ClipperSettings()
    return ClipperSettings(
        start_url=env.get("CLIPPER_START_URL") or defaults.start_url,
        profile_dir=env.get("CLIPPER_PROFILE_DIR") or defaults.profile_dir,
        store_path=env.get("CLIPPER_STORE_PATH") or defaults.store_path,
        quota_limit=_number(env, "CLIPPER_QUOTA", defaults.quota_limit, int),
        mode=mode,
        keywords_file=env.get("CLIPPER_KEYWORDS_FILE") or None,
        headless=_flag(env, "CLIPPER_HEADLESS", defaults.headless),
        tick_interval=_number(env, "CLIPPER_TICK_INTERVAL", defaults.tick_interval, float),
        scroll_settle=_number(env, "CLIPPER_SCROLL_SETTLE", defaults.scroll_settle, float),
        action_settle=_number(env, "CLIPPER_ACTION_SETTLE", defaults.action_settle, float),
        stagnation_ticks=max(1, _number(env, "CLIPPER_STAGNATION_TICKS", defaults.stagnation_ticks, int)),
        verify_actions=_flag(env, "CLIPPER_VERIFY_ACTIONS", defaults.verify_actions),
    )
