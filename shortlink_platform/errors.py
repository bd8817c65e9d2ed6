"""
Error kinds and result types for Shortlink Platform.

`create_short_url` returns either a `CreatedLink` or a `StoreError`; callers
branch on `StoreError.kind` rather than on message text. Lookups signal
"not found" with `None`, and click recording reports failure with `False`.

`GenerationExhausted` is the one exception in the module: it is raised by
`ShortLinkStore.generate_shortcode` for direct callers and converted into a
`StoreError` by `create_short_url`.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Union

__all__ = [
    "ErrorKind",
    "StoreError",
    "CreatedLink",
    "CreateResult",
    "GenerationExhausted",
]


class ErrorKind(str, Enum):
    """Failure categories reported by the store."""

    INVALID_URL = "InvalidURL"
    INVALID_VALIDITY = "InvalidValidity"
    INVALID_SHORTCODE = "InvalidShortcode"
    SHORTCODE_COLLISION = "ShortcodeCollision"
    GENERATION_EXHAUSTED = "GenerationExhausted"
    NOT_FOUND = "NotFound"


@dataclass(frozen=True)
class StoreError:
    """Failure arm of a store result."""

    kind: ErrorKind
    message: str


@dataclass(frozen=True)
class CreatedLink:
    """Success arm of `create_short_url`."""

    short_link: str
    shortcode: str
    expires_at: datetime


CreateResult = Union[CreatedLink, StoreError]


class GenerationExhausted(Exception):
    """Raised when every generated candidate collided with a live shortcode."""

    kind = ErrorKind.GENERATION_EXHAUSTED

    def __init__(self, attempts: int):
        super().__init__(f"Unable to generate unique shortcode after {attempts} attempts")
        self.attempts = attempts
