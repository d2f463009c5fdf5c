"""Natural-language recency phrases for timestamps."""

from __future__ import annotations

from datetime import datetime, timezone


def recency_phrase(then: datetime, now: datetime | None = None) -> str:
    """Describe how long ago *then* was, e.g. ``"earlier today"``."""
    now = now or datetime.now(timezone.utc)
    if then.tzinfo is None:
        then = then.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    delta = now - then
    hours = delta.total_seconds() / 3600
    days = hours / 24

    if hours < 1:
        return "just now"
    if then.date() == now.date():
        return "earlier today"
    if (now.date() - then.date()).days == 1:
        return "yesterday"
    if days < 7:
        return "a few days ago"
    if days < 14:
        return "last week"
    if days < 30:
        return "a couple weeks ago" if int(days // 7) == 2 else "a few weeks ago"
    if days < 60:
        return "last month"
    if days < 180:
        return "a couple months ago" if int(days // 30) == 2 else "a few months ago"
    return "some time ago"
