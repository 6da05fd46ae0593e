from __future__ import annotations

from collections.abc import Callable
import hashlib
import random
from typing import Protocol, TypeVar

from invigilation.core.config import Settings

T = TypeVar("T")


def _item_id(item) -> str:
    return str(item.id)


class TieBreaker(Protocol):
    def jitter(self, faculty_id: str, context_key: str) -> float: ...

    def shuffle(self, items: list[T], context_key: str, *, key: Callable[[T], str] = _item_id) -> list[T]: ...


class RandomTieBreaker:
    """Uniform jitter in [0, max_jitter) and a Fisher-Yates shuffle; seedable for replays."""

    def __init__(self, seed: int | None = None, *, max_jitter: float = 5.0) -> None:
        self._rng = random.Random(seed)
        self._max_jitter = max_jitter

    def jitter(self, faculty_id: str, context_key: str) -> float:
        return self._rng.random() * self._max_jitter

    def shuffle(self, items: list[T], context_key: str, *, key: Callable[[T], str] = _item_id) -> list[T]:
        shuffled = list(items)
        self._rng.shuffle(shuffled)
        return shuffled


class HashTieBreaker:
    """Deterministic tie-breaking derived from faculty id and duty context."""

    def __init__(self, *, max_jitter: float = 5.0, salt: str = "") -> None:
        self._max_jitter = max_jitter
        self._salt = salt

    def _fraction(self, *parts: str) -> float:
        digest = hashlib.sha256("|".join((self._salt, *parts)).encode("utf-8")).digest()
        return int.from_bytes(digest[:8], "big") / 2**64

    def jitter(self, faculty_id: str, context_key: str) -> float:
        return self._fraction(faculty_id, context_key) * self._max_jitter

    def shuffle(self, items: list[T], context_key: str, *, key: Callable[[T], str] = _item_id) -> list[T]:
        return sorted(items, key=lambda item: self._fraction("order", key(item), context_key))


class NoTieBreaker:
    def jitter(self, faculty_id: str, context_key: str) -> float:
        return 0.0

    def shuffle(self, items: list[T], context_key: str, *, key: Callable[[T], str] = _item_id) -> list[T]:
        return list(items)


def build_tie_breaker(settings: Settings) -> TieBreaker:
    if settings.allocation_tie_break == "none" or settings.allocation_jitter_max == 0:
        return NoTieBreaker()
    if settings.allocation_tie_break == "hash":
        salt = "" if settings.allocation_tie_break_seed is None else str(settings.allocation_tie_break_seed)
        return HashTieBreaker(max_jitter=settings.allocation_jitter_max, salt=salt)
    return RandomTieBreaker(settings.allocation_tie_break_seed, max_jitter=settings.allocation_jitter_max)
