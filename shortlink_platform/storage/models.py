"""
Domain records held by the storage layer.

`ShortLinkEntry` is mutable only inside `Storage` (under its lock); every
entry handed out of storage is a `snapshot()` copy, so readers never observe
a click list that is being appended to.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import List

DIRECT_REFERRER = "direct"
UNKNOWN_IP = "unknown"
UNKNOWN_LOCATION = "Unknown"


@dataclass(frozen=True)
class ClickRecord:
    timestamp: datetime
    referrer: str = DIRECT_REFERRER
    source_ip: str = UNKNOWN_IP
    location: str = UNKNOWN_LOCATION


@dataclass
class ShortLinkEntry:
    id: str
    original_url: str
    shortcode: str
    created_at: datetime
    expires_at: datetime
    clicks: List[ClickRecord] = field(default_factory=list)
    total_clicks: int = 0

    def is_expired(self, now: datetime) -> bool:
        """An entry stays resolvable up to and including `expires_at`."""
        return now > self.expires_at

    def snapshot(self) -> "ShortLinkEntry":
        return replace(self, clicks=list(self.clicks))
