from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from plannotator.core.storage.plan_store import get_plan_dir


@dataclass(frozen=True)
class PlanVersion:
    version: int
    timestamp: str
    hash: str
    path: Path
    slug: str


@dataclass(frozen=True)
class SavedVersion:
    version: int
    path: Path
    skipped: bool


def content_hash(content: str) -> str:
    return hashlib.sha256(content.encode("utf-8")).hexdigest()[:16]


def _version_pattern(slug: str) -> re.Pattern[str]:
    # Anchored on the whole slug: a heading ending in "vN" must not read as a version.
    return re.compile(rf"^{re.escape(slug)}-v(\d+)\.md$")


def list_versions(slug: str, custom_path: str | Path | None = None) -> list[PlanVersion]:
    plan_dir = get_plan_dir(custom_path)
    pattern = _version_pattern(slug)
    versions: list[PlanVersion] = []
    for path in plan_dir.iterdir():
        match = pattern.match(path.name)
        if match is None or not path.is_file():
            continue
        content = path.read_text(encoding="utf-8")
        mtime = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
        versions.append(
            PlanVersion(
                version=int(match.group(1)),
                timestamp=mtime.isoformat(),
                hash=content_hash(content),
                path=path,
                slug=slug,
            )
        )
    return sorted(versions, key=lambda item: item.version)


def get_latest_version(slug: str, custom_path: str | Path | None = None) -> PlanVersion | None:
    versions = list_versions(slug, custom_path)
    return versions[-1] if versions else None


def save_version(slug: str, content: str, custom_path: str | Path | None = None) -> SavedVersion:
    latest = get_latest_version(slug, custom_path)
    if latest is not None and latest.hash == content_hash(content):
        return SavedVersion(version=latest.version, path=latest.path, skipped=True)
    next_version = latest.version + 1 if latest is not None else 1
    path = get_plan_dir(custom_path) / f"{slug}-v{next_version}.md"
    path.write_text(content, encoding="utf-8")
    return SavedVersion(version=next_version, path=path, skipped=False)


def load_version(slug: str, version: int, custom_path: str | Path | None = None) -> str | None:
    for item in list_versions(slug, custom_path):
        if item.version == version:
            return item.path.read_text(encoding="utf-8")
    return None
