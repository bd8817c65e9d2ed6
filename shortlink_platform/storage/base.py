"""
Base storage interface for Shortlink Platform.

Purpose:
    Define a small, stable contract for the registry of short-link entries
    and their click logs, so the store's business rules never touch raw maps.

Testing & Coverage:
    These are abstract methods and are not executed directly in tests.
    We annotate them with `# pragma: no cover` so coverage tools don't
    penalize the project for un-runnable abstract declarations.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional, Tuple

from .models import ClickRecord, ShortLinkEntry


class BaseStorage(ABC):
    """Abstract base class for storage backends."""

    @abstractmethod  # pragma: no cover
    def insert(self, entry: ShortLinkEntry) -> bool:
        """
        Insert a new entry if its shortcode is free (atomic compare-and-insert).

        Returns:
            bool: True if inserted, False if the shortcode (or id) is already taken.
        """
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def shortcode_exists(self, shortcode: str) -> bool:
        """Return True if the shortcode is indexed, expired or not."""
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def get_by_id(self, entry_id: str) -> Optional[ShortLinkEntry]:
        """Return a snapshot of the entry with this id, or None."""
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def get_by_shortcode(self, shortcode: str) -> Optional[ShortLinkEntry]:
        """
        Return a snapshot of the entry for this shortcode, or None.

        Expiry is not applied here; visibility rules belong to the store.
        """
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def resolve(self, shortcode: str) -> Optional[Tuple[str, datetime]]:
        """
        Return (entry_id, expires_at) for a shortcode without copying clicks.

        Used on the redirect hot path, where a full snapshot is not needed.
        """
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def append_click(self, entry_id: str, click: ClickRecord) -> bool:
        """
        Append a click and bump the entry's counter in one step.

        Returns:
            bool: False if the entry does not exist.
        """
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def snapshot_all(self) -> List[ShortLinkEntry]:
        """Return snapshots of every entry in insertion order."""
        raise NotImplementedError
