"""
Storage module for Shortlink Platform (in-memory implementation).

Responsibilities:
    - Keep entries by id and the shortcode -> id index consistent
    - Enforce shortcode uniqueness with an atomic compare-and-insert
    - Append click records and keep `total_clicks` in step with them
    - Hand out snapshot copies only, never the live objects

Design:
    A single re-entrant lock guards both indexes and every click list. All
    operations are plain dict/list operations, so the critical sections are
    short and never block on I/O. Entries are never deleted: a shortcode
    stays reserved for the lifetime of the process, even after expiry.
"""

import threading
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from .base import BaseStorage
from .models import ClickRecord, ShortLinkEntry


class Storage(BaseStorage):
    def __init__(self):
        """
        Initialize empty indexes.

        Internal schema:
            self._by_id = { entry_id: ShortLinkEntry }
            self._by_shortcode = { shortcode: entry_id }
        """
        self._lock = threading.RLock()
        self._by_id: Dict[str, ShortLinkEntry] = {}
        self._by_shortcode: Dict[str, str] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._by_id)

    def insert(self, entry: ShortLinkEntry) -> bool:
        """
        Insert `entry` unless its shortcode or id is already present.

        Both indexes are updated inside the same critical section, so no
        reader can see one without the other.
        """
        with self._lock:
            if entry.shortcode in self._by_shortcode or entry.id in self._by_id:
                return False
            stored = entry.snapshot()
            self._by_id[stored.id] = stored
            self._by_shortcode[stored.shortcode] = stored.id
            return True

    def shortcode_exists(self, shortcode: str) -> bool:
        with self._lock:
            return shortcode in self._by_shortcode

    def get_by_id(self, entry_id: str) -> Optional[ShortLinkEntry]:
        with self._lock:
            entry = self._by_id.get(entry_id)
            return entry.snapshot() if entry else None

    def get_by_shortcode(self, shortcode: str) -> Optional[ShortLinkEntry]:
        with self._lock:
            entry_id = self._by_shortcode.get(shortcode)
            if entry_id is None:
                return None
            return self.get_by_id(entry_id)

    def resolve(self, shortcode: str) -> Optional[Tuple[str, datetime]]:
        with self._lock:
            entry_id = self._by_shortcode.get(shortcode)
            if entry_id is None:
                return None
            return entry_id, self._by_id[entry_id].expires_at

    def append_click(self, entry_id: str, click: ClickRecord) -> bool:
        with self._lock:
            entry = self._by_id.get(entry_id)
            if entry is None:
                return False
            entry.clicks.append(click)
            entry.total_clicks += 1
            return True

    def snapshot_all(self) -> List[ShortLinkEntry]:
        # dicts keep insertion order, which is creation order here
        with self._lock:
            return [entry.snapshot() for entry in self._by_id.values()]
