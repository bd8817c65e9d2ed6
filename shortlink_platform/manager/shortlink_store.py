"""
ShortLinkStore module for Shortlink Platform.

Responsibilities:
    - Validate URLs, validity windows and custom shortcodes
    - Generate collision-free random shortcodes (bounded retries)
    - Create entries and enforce shortcode uniqueness
    - Resolve shortcodes while hiding expired entries
    - Record clicks best-effort and expose per-link statistics

Design notes:
    - Storage is injected; it owns the indexes and the lock. The store holds
      the rules (validation, expiry visibility, error kinds).
    - `create_short_url` returns `CreatedLink | StoreError` instead of raising,
      so the HTTP layer maps `StoreError.kind` to a status code.
    - Expired entries stay in storage. Redirects and single lookups hide them;
      `list_all` and `summary` do not filter.
    - The clock is injectable so expiry can be tested without sleeping.
"""

import logging
import math
import re
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlsplit

from ..analytics import analytics
from ..config import settings
from ..errors import CreatedLink, CreateResult, ErrorKind, GenerationExhausted, StoreError
from ..storage.base import BaseStorage
from ..storage.models import DIRECT_REFERRER, UNKNOWN_IP, ClickRecord, ShortLinkEntry
from ..storage.storage import Storage
from .strategies import BaseStrategy, RandomStrategy

log = logging.getLogger(__name__)

ShortcodePattern = re.compile(r"[A-Za-z0-9]{3,20}")
AllowedSchemes = frozenset({"http", "https"})
ControlChars = re.compile(r"[\x00-\x1f\x7f]")
ForbiddenHostChars = re.compile(r"[\s<>\"{}|\\^`]")

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ShortLinkStore:
    """
    In-memory registry of short links and their click logs.

    Safe to share between threads: every mutation goes through the storage
    lock, and readers only receive snapshots.
    """

    def __init__(
        self,
        storage: Optional[BaseStorage] = None,
        strategy: Optional[BaseStrategy] = None,
        clock: Clock = utcnow,
        base_url: Optional[str] = None,
        default_validity_minutes: Optional[int] = None,
        max_attempts: Optional[int] = None,
    ):
        """
        Args:
            storage (BaseStorage): Backend holding the entries (fresh in-memory by default).
            strategy (BaseStrategy): Code generator (RandomStrategy by default).
            clock (Clock): Returns the current aware UTC time.
            base_url (str): Prefix of generated short links.
            default_validity_minutes (int): Validity used when the caller sends none.
            max_attempts (int): Generator retry bound.
        """
        self.storage = storage if storage is not None else Storage()
        self.strategy = strategy if strategy is not None else RandomStrategy()
        self.clock = clock
        self.base_url = (base_url if base_url is not None else settings.BASE_URL).rstrip("/")
        self.default_validity_minutes = default_validity_minutes or settings.DEFAULT_VALIDITY_MINUTES
        self.max_attempts = max_attempts or settings.MAX_ATTEMPTS

    # ---------------------------------------------------------------------
    # Validation helpers
    # ---------------------------------------------------------------------
    def validate_url(self, candidate: Any) -> bool:
        """
        Accept only absolute http/https URLs with a host.

        Anything that is not a string, fails to parse, or uses another
        scheme (javascript:, ftp:, mailto:, ...) is rejected, as are control
        characters anywhere and whitespace in the host part.
        """
        if not isinstance(candidate, str) or not candidate:
            return False
        # urlsplit silently drops tabs and newlines, so check the raw string
        if ControlChars.search(candidate):
            return False
        try:
            parsed = urlsplit(candidate)
            parsed.port  # raises ValueError on a malformed port
        except ValueError:
            return False
        if ForbiddenHostChars.search(parsed.netloc):
            return False
        return parsed.scheme in AllowedSchemes and bool(parsed.hostname)

    def validate_shortcode(self, candidate: Any) -> bool:
        """ASCII letters and digits only, 3 to 20 characters."""
        return isinstance(candidate, str) and ShortcodePattern.fullmatch(candidate) is not None

    def _validity_delta(self, validity_minutes: Any) -> Optional[timedelta]:
        if validity_minutes is None:
            return timedelta(minutes=self.default_validity_minutes)
        # bool is an int subclass; true/false are not durations
        if isinstance(validity_minutes, bool) or not isinstance(validity_minutes, (int, float)):
            return None
        try:
            # isfinite raises OverflowError for ints beyond float range
            if not math.isfinite(validity_minutes) or validity_minutes <= 0:
                return None
            delta = timedelta(minutes=validity_minutes)
            self.clock() + delta
        except OverflowError:
            return None
        # sub-microsecond windows would make expires_at == created_at
        return delta if delta > timedelta(0) else None

    # ---------------------------------------------------------------------
    # Public API
    # ---------------------------------------------------------------------
    def short_link_for(self, shortcode: str) -> str:
        return f"{self.base_url}/{shortcode}"

    def generate_shortcode(self) -> str:
        """
        Draw random codes until one is not in the shortcode index.

        Raises:
            GenerationExhausted: If `max_attempts` candidates all collided.
        """
        for attempt in range(1, self.max_attempts + 1):
            candidate = self.strategy.generate()
            if not self.storage.shortcode_exists(candidate):
                return candidate
            log.debug("Generated shortcode %s collided (attempt %d)", candidate, attempt)
        raise GenerationExhausted(self.max_attempts)

    def create_short_url(
        self,
        original_url: Any,
        validity_minutes: Any = None,
        custom_shortcode: Any = None,
    ) -> CreateResult:
        """
        Create a short link for `original_url`.

        Rules (checked in order, nothing is stored unless all pass):
            - URL must be absolute http/https            -> INVALID_URL
            - validity (if given) must be > 0 minutes    -> INVALID_VALIDITY
            - custom shortcode must match the pattern    -> INVALID_SHORTCODE
            - custom shortcode must be unused            -> SHORTCODE_COLLISION
            - generator must find a free code            -> GENERATION_EXHAUSTED

        Returns:
            CreatedLink on success, StoreError otherwise.
        """
        if not self.validate_url(original_url):
            return self._reject(ErrorKind.INVALID_URL, "Invalid URL format", original_url)

        validity = self._validity_delta(validity_minutes)
        if validity is None:
            return self._reject(
                ErrorKind.INVALID_VALIDITY,
                "Validity must be a positive number of minutes",
                original_url,
            )

        # an empty string means "no custom shortcode", same as omitting it
        if custom_shortcode is not None and custom_shortcode != "":
            return self._create_custom(original_url, validity, custom_shortcode)
        return self._create_generated(original_url, validity)

    def get_entry_by_shortcode(self, shortcode: str) -> Optional[ShortLinkEntry]:
        """Return a snapshot of the live entry, or None if unknown or expired."""
        entry = self.storage.get_by_shortcode(shortcode)
        if entry is None or entry.is_expired(self.clock()):
            return None
        return entry

    def record_click(
        self,
        shortcode: str,
        referrer: Optional[str] = None,
        source_ip: Optional[str] = None,
    ) -> bool:
        """
        Append a click to a live entry.

        Best-effort: returns False for unknown or expired codes and for any
        internal failure, and never raises. Redirects must not depend on it.
        """
        try:
            resolved = self.storage.resolve(shortcode)
            if resolved is None:
                return False
            entry_id, expires_at = resolved
            now = self.clock()
            if now > expires_at:
                return False
            click = ClickRecord(
                timestamp=now,
                referrer=referrer or DIRECT_REFERRER,
                source_ip=source_ip or UNKNOWN_IP,
            )
            return self.storage.append_click(entry_id, click)
        except Exception:
            log.exception("Error recording click for shortcode %s", shortcode)
            return False

    def get_statistics(self, shortcode: str) -> Optional[Dict[str, Any]]:
        """Statistics for a live entry, or None if unknown or expired."""
        entry = self.get_entry_by_shortcode(shortcode)
        if entry is None:
            return None
        return analytics.statistics_view(entry, self.short_link_for(entry.shortcode))

    def list_all(self) -> List[Dict[str, Any]]:
        """
        Statistics for every entry in creation order.

        Expired entries are included on purpose; only redirects and single
        lookups hide them.
        """
        return [
            analytics.statistics_view(entry, self.short_link_for(entry.shortcode))
            for entry in self.storage.snapshot_all()
        ]

    def summary(self) -> Dict[str, int]:
        return analytics.summary(self.storage.snapshot_all(), self.clock())

    # ---------------------------------------------------------------------
    # Creation paths
    # ---------------------------------------------------------------------
    def _create_custom(self, url: str, validity: timedelta, shortcode: Any) -> CreateResult:
        if not self.validate_shortcode(shortcode):
            return self._reject(
                ErrorKind.INVALID_SHORTCODE,
                "Custom shortcode must be alphanumeric and 3-20 characters long",
                url,
            )
        collision = StoreError(ErrorKind.SHORTCODE_COLLISION, "Custom shortcode already exists")
        if self.storage.shortcode_exists(shortcode):
            log.warning("Rejected create for %s: shortcode %s already exists", url, shortcode)
            return collision

        entry = self._new_entry(url, shortcode, validity)
        if not self.storage.insert(entry):
            # another caller took the code between the check and the insert
            log.warning("Rejected create for %s: shortcode %s taken concurrently", url, shortcode)
            return collision
        return self._created(entry)

    def _create_generated(self, url: str, validity: timedelta) -> CreateResult:
        for _ in range(self.max_attempts):
            try:
                shortcode = self.generate_shortcode()
            except GenerationExhausted as exc:
                log.error("Shortcode generation exhausted for %s: %s", url, exc)
                return StoreError(ErrorKind.GENERATION_EXHAUSTED, str(exc))
            entry = self._new_entry(url, shortcode, validity)
            if self.storage.insert(entry):
                return self._created(entry)
            log.debug("Generated shortcode %s taken concurrently, retrying", shortcode)

        log.error("Shortcode generation exhausted for %s: every insert lost a race", url)
        return StoreError(ErrorKind.GENERATION_EXHAUSTED, "Unable to generate unique shortcode")

    def _new_entry(self, url: str, shortcode: str, validity: timedelta) -> ShortLinkEntry:
        created_at = self.clock()
        return ShortLinkEntry(
            id=uuid.uuid4().hex,
            original_url=url,
            shortcode=shortcode,
            created_at=created_at,
            expires_at=created_at + validity,
        )

    def _created(self, entry: ShortLinkEntry) -> CreatedLink:
        log.info(
            "Short URL created: shortcode=%s url=%s expires=%s",
            entry.shortcode,
            entry.original_url,
            analytics.format_timestamp(entry.expires_at),
        )
        return CreatedLink(
            short_link=self.short_link_for(entry.shortcode),
            shortcode=entry.shortcode,
            expires_at=entry.expires_at,
        )

    def _reject(self, kind: ErrorKind, message: str, url: Any) -> StoreError:
        log.warning("Rejected create for %r: %s", url, message)
        return StoreError(kind, message)
