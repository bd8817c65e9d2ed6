"""
Analytics module for Shortlink Platform.

Responsibilities:
    - Project stored entries and click records into the public statistics shape
    - Render timestamps the way API clients expect (ISO-8601, UTC, millis, "Z")
    - Provide a summary across all entries (links, active/expired, clicks)

All functions are pure: they work on snapshots handed out by storage and
never touch shared state.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List

from ..storage.models import ClickRecord, ShortLinkEntry


def format_timestamp(moment: datetime) -> str:
    """
    Format an aware datetime as e.g. "2026-10-19T10:00:00.000Z".

    Naive datetimes are assumed to already be in UTC.
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    utc = moment.astimezone(timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def click_view(click: ClickRecord) -> Dict[str, str]:
    """Public projection of a click; `source` is the referrer."""
    return {
        "timestamp": format_timestamp(click.timestamp),
        "source": click.referrer,
        "location": click.location,
    }


def statistics_view(entry: ShortLinkEntry, short_link: str) -> Dict[str, Any]:
    """
    Build the statistics payload for one entry.

    Example:
        {
            "shortLink": "http://localhost:5000/abc123",
            "originalURL": "https://example.com/page",
            "createdAt": "2026-10-19T10:00:00.000Z",
            "expiresAt": "2026-10-19T10:30:00.000Z",
            "totalClicks": 1,
            "clicks": [{"timestamp": "...", "source": "https://google.com", "location": "Unknown"}]
        }
    """
    return {
        "shortLink": short_link,
        "originalURL": entry.original_url,
        "createdAt": format_timestamp(entry.created_at),
        "expiresAt": format_timestamp(entry.expires_at),
        "totalClicks": entry.total_clicks,
        "clicks": [click_view(click) for click in entry.clicks],
    }


def summary(entries: Iterable[ShortLinkEntry], now: datetime) -> Dict[str, int]:
    """
    Aggregate counts across entries, expired ones included.

    Returns:
        Dict[str, int]: totalLinks, activeLinks, expiredLinks, totalClicks.
    """
    items: List[ShortLinkEntry] = list(entries)
    expired = sum(1 for entry in items if entry.is_expired(now))
    return {
        "totalLinks": len(items),
        "activeLinks": len(items) - expired,
        "expiredLinks": expired,
        "totalClicks": sum(entry.total_clicks for entry in items),
    }
