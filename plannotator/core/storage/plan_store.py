from __future__ import annotations

import re
from datetime import date
from pathlib import Path

from plannotator.core.config import default_plan_dir
from plannotator.core.logging.audit import audit_event

NO_CHANGES_SENTINEL = "No changes detected."
SNAPSHOT_STATUSES = {"approved", "denied"}

_HEADING_RE = re.compile(r"^#\s+(.+)$", re.MULTILINE)


def get_plan_dir(custom_path: str | Path | None = None) -> Path:
    """Resolve the plan directory and make sure it exists."""

    if custom_path:
        raw = str(custom_path)
        if raw.startswith("~"):
            plan_dir = Path.home() / raw[1:].lstrip("/\\")
        else:
            plan_dir = Path(raw)
    else:
        plan_dir = default_plan_dir()
    plan_dir.mkdir(parents=True, exist_ok=True)
    return plan_dir


def extract_first_heading(markdown: str) -> str | None:
    match = _HEADING_RE.search(markdown)
    if not match:
        return None
    return match.group(1).strip()


def sanitize_tag(text: str) -> str:
    lowered = text.lower()
    stripped = re.sub(r"[^a-z0-9\-\s]", "", lowered)
    hyphenated = re.sub(r"\s+", "-", stripped.strip())
    return re.sub(r"-+", "-", hyphenated).strip("-")


def generate_slug(plan: str, today: date | None = None) -> str:
    day = (today or date.today()).isoformat()
    heading = extract_first_heading(plan)
    tag = sanitize_tag(heading) if heading else ""
    return f"{day}-{tag}" if tag else f"{day}-plan"


def _write(path: Path, content: str) -> Path:
    path.write_text(content, encoding="utf-8")
    audit_event("plan.saved", path=str(path), size=len(content))
    return path


def save_plan(slug: str, content: str, custom_path: str | Path | None = None) -> Path:
    return _write(get_plan_dir(custom_path) / f"{slug}.md", content)


def save_annotations(slug: str, content: str, custom_path: str | Path | None = None) -> Path:
    return _write(get_plan_dir(custom_path) / f"{slug}.annotations.md", content)


def save_final_snapshot(
    slug: str,
    status: str,
    plan: str,
    annotations: str,
    custom_path: str | Path | None = None,
) -> Path:
    """Write ``{slug}-{status}.md``: the plan, plus annotations when they say something."""

    if status not in SNAPSHOT_STATUSES:
        raise ValueError("status must be 'approved' or 'denied'")
    content = plan
    if annotations and annotations != NO_CHANGES_SENTINEL:
        content += "\n\n---\n\n" + annotations
    return _write(get_plan_dir(custom_path) / f"{slug}-{status}.md", content)
