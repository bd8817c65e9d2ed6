"""
Strategies for short-code generation in shortlink_platform.

Provided strategies:
- RandomStrategy: random code of length L drawn from an unambiguous
  alphanumeric alphabet (no 0/O/o, 1/l/I), using the OS random source.
- FixedSequenceStrategy: replays a fixed list of codes; used to drive
  collision and exhaustion paths deterministically.

Uniqueness is not a strategy concern: the store checks every candidate
against the live shortcode index and retries up to its attempt bound.

Configuration (via shortlink_platform.config.settings):
- CODE_LENGTH: default length for RandomStrategy (default 8; clamped 3..20)
"""

import itertools
import random
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Iterator, Optional, Sequence

from shortlink_platform.config import settings

UNAMBIGUOUS_ALPHABET = "23456789abcdefghijkmnpqrstuvwxyzABCDEFGHJKLMNPQRSTUVWXYZ"


def _safe_len(length: Optional[int]) -> int:
    """
    Resolve desired code length from arg or config, clamped to [3, 20]
    so every generated code is also a valid custom shortcode.
    """
    L = int(length) if length is not None else int(settings.CODE_LENGTH)
    return max(3, min(20, L))


class BaseStrategy(ABC):
    """Abstract base for code generation strategies."""

    @abstractmethod
    def generate(self, *, length: Optional[int] = None) -> str:
        raise NotImplementedError


@dataclass(frozen=True)
class RandomStrategy(BaseStrategy):
    """Random codes from `alphabet`; `length` falls back to CODE_LENGTH."""

    length: Optional[int] = None
    alphabet: str = UNAMBIGUOUS_ALPHABET

    def generate(self, *, length: Optional[int] = None) -> str:
        L = _safe_len(length if length is not None else self.length)
        rng = random.SystemRandom()
        return "".join(rng.choice(self.alphabet) for _ in range(L))


@dataclass
class FixedSequenceStrategy(BaseStrategy):
    """
    Yields `codes` in order and then keeps repeating the last one.

    A degenerate source: handy for forcing collisions in tests and demos.
    """

    codes: Sequence[str]
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    _iter: Iterator[str] = field(init=False, repr=False)

    def __post_init__(self):
        if not self.codes:
            raise ValueError("codes must not be empty")
        self._iter = itertools.chain(self.codes, itertools.repeat(self.codes[-1]))

    def generate(self, *, length: Optional[int] = None) -> str:
        with self._lock:
            return next(self._iter)
