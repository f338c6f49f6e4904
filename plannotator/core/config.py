from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from plannotator.core.logging.logger import get_logger

DEFAULT_ORIGIN = "claude-code"
DEFAULT_SHARE_BASE_URL = "https://share.plannotator.ai"

_ssh_deprecation_warned = False


@dataclass(frozen=True)
class ReviewConfig:
    remote: bool = False
    port: int | None = None
    plan_dir: str | None = None
    plan_save_enabled: bool = True
    sharing_enabled: bool = True
    share_base_url: str = DEFAULT_SHARE_BASE_URL
    origin: str = DEFAULT_ORIGIN


def default_plan_dir() -> Path:
    return Path.home() / ".plannotator" / "plans"


def _parse_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return default


def _parse_port(value: str | None) -> int | None:
    if value is None or not value.strip():
        return None
    try:
        parsed = int(value)
    except ValueError:
        parsed = -1
    if 0 < parsed < 65536:
        return parsed
    get_logger().warning("Invalid PLANNOTATOR_PORT %r, using default", value)
    return None


def _env_remote() -> bool:
    global _ssh_deprecation_warned
    if _parse_bool(os.getenv("PLANNOTATOR_REMOTE"), False):
        return True
    # Legacy detection, kept for existing SSH setups.
    if os.getenv("SSH_TTY") or os.getenv("SSH_CONNECTION"):
        if not _ssh_deprecation_warned:
            get_logger().warning(
                "SSH_TTY/SSH_CONNECTION detection is deprecated; use PLANNOTATOR_REMOTE=1 instead"
            )
            _ssh_deprecation_warned = True
        return True
    return False


def get_review_config() -> ReviewConfig:
    plan_dir = os.getenv("PLANNOTATOR_PLAN_DIR", "").strip() or None
    share_base_url = os.getenv("PLANNOTATOR_SHARE_URL", "").strip() or DEFAULT_SHARE_BASE_URL
    origin = os.getenv("PLANNOTATOR_ORIGIN", "").strip() or DEFAULT_ORIGIN
    return ReviewConfig(
        remote=_env_remote(),
        port=_parse_port(os.getenv("PLANNOTATOR_PORT")),
        plan_dir=plan_dir,
        plan_save_enabled=_parse_bool(os.getenv("PLANNOTATOR_PLAN_SAVE"), True),
        sharing_enabled=_parse_bool(os.getenv("PLANNOTATOR_SHARE"), True),
        share_base_url=share_base_url,
        origin=origin,
    )
