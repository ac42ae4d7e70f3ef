"""Display helpers for the go-live page."""

from datetime import datetime, timezone


def format_duration(seconds: int) -> str:
    """``MM:SS`` below an hour, ``H:MM:SS`` from there on."""
    hours, rest = divmod(max(0, int(seconds)), 3600)
    minutes, secs = divmod(rest, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


def time_ago(ts: datetime | None, now: datetime | None = None) -> str:
    if ts is None:
        return ""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)

    elapsed = max(0, int((now - ts).total_seconds()))
    if elapsed < 60:
        return f"{elapsed}s ago"
    if elapsed < 3600:
        return f"{elapsed // 60}m ago"
    return f"{elapsed // 3600}h ago"
