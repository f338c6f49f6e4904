from __future__ import annotations

from typing import Iterable

from plannotator.core.models import Annotation
from plannotator.core.storage.plan_store import NO_CHANGES_SENTINEL


def format_line_range(start: int, end: int) -> str:
    low, high = min(start, end), max(start, end)
    return f"Line {low}" if low == high else f"Lines {low}-{high}"


def format_feedback(annotations: Iterable[Annotation], comment: str | None = None) -> str:
    """Render an annotation set and comment as markdown for the agent."""

    items = list(annotations)
    comment = (comment or "").strip()
    if not items and not comment:
        return NO_CHANGES_SENTINEL

    count = len(items) + (1 if comment else 0)
    noun = "piece" if count == 1 else "pieces"
    lines = [
        "# Plan Feedback",
        "",
        f"I've reviewed this plan and have {count} {noun} of feedback:",
        "",
    ]
    for index, item in enumerate(items, start=1):
        lines.append(f"## {index}. Feedback on {format_line_range(item.start, item.end)}")
        lines.append(item.text.strip())
        lines.append("")
    if comment:
        lines.append("## General feedback")
        lines.append(comment)
        lines.append("")
    lines.append("---")
    return "\n".join(lines)
