from __future__ import annotations

import math
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from plannotator.core.codec.compress import compress, decompress
from plannotator.core.config import DEFAULT_SHARE_BASE_URL
from plannotator.core.errors import DecodeError
from plannotator.core.logging.logger import get_logger


class SharedPayload(BaseModel):
    p: str
    a: list[Any] = Field(default_factory=list)


def generate_remote_share_url(plan: str, base_url: str | None = None) -> str:
    """Build a share-portal URL whose fragment carries the whole plan.

    Annotations start empty; the reviewer adds them in the browser.
    """

    base = (base_url or DEFAULT_SHARE_BASE_URL).rstrip("/")
    return f"{base}/#{compress(SharedPayload(p=plan).model_dump())}"


def read_share_link(url_or_fragment: str) -> SharedPayload:
    fragment = url_or_fragment.split("#", 1)[1] if "#" in url_or_fragment else url_or_fragment
    value = decompress(fragment)
    try:
        return SharedPayload.model_validate(value)
    except ValidationError as exc:
        raise DecodeError("Invalid or corrupted link: unexpected payload shape.") from exc


def format_size(num_bytes: int) -> str:
    if num_bytes < 1024:
        return f"{num_bytes} B"
    kb = num_bytes / 1024
    if kb < 100:
        return f"{kb:.1f} KB"
    # Halves round up.
    return f"{math.floor(kb + 0.5)} KB"


def write_remote_share_link(plan: str, base_url: str | None = None) -> str | None:
    logger = get_logger()
    try:
        url = generate_remote_share_url(plan, base_url)
        size = format_size(len(url.encode("utf-8")))
    except Exception:
        logger.warning("Could not generate share link", exc_info=True)
        return None
    logger.info("Open this link on your local machine to review the plan (%s):\n%s", size, url)
    return url
