from collections.abc import Sequence
from difflib import get_close_matches
from typing import TypeVar

from zenith.core.errors import AmbiguousError
from zenith.core.models import Habit, Task

__all__ = ["find_in_pool", "find_in_pool_exact"]

FUZZY_MATCH_CUTOFF = 0.8

T = TypeVar("T", Task, Habit)


_HEX = set("0123456789abcdef-")


def _match_uuid_prefix(ref: str, pool: Sequence[T]) -> T | None:
    ref_lower = ref.lower()
    if len(ref_lower) < 4 or not set(ref_lower) <= _HEX:
        return None
    matches = [item for item in pool if item.id.startswith(ref_lower)]
    if len(matches) == 1:
        return matches[0]
    if len(matches) > 1:
        exact = next((item for item in matches if item.id == ref), None)
        if exact:
            return exact
        sample = [item.id[:8] for item in matches[:3]]
        raise AmbiguousError(ref, count=len(matches), sample=sample)
    return None


def _match_name(ref: str, pool: Sequence[T]) -> T | None:
    ref_lower = ref.lower()
    exact = [item for item in pool if item.name.lower() == ref_lower]
    if exact:
        return exact[0]
    matches = [item for item in pool if ref_lower in item.name.lower()]
    # instances of one series share a name
    if len({item.name.lower() for item in matches}) == 1:
        return matches[0]
    if len(matches) > 1:
        sample = [item.name for item in matches[:3]]
        raise AmbiguousError(ref, count=len(matches), sample=sample)
    return None


def _match_fuzzy(ref: str, pool: Sequence[T]) -> T | None:
    names = [item.name.lower() for item in pool]
    matches = get_close_matches(ref.lower(), names, n=1, cutoff=FUZZY_MATCH_CUTOFF)
    if matches:
        return pool[names.index(matches[0])]
    return None


def find_in_pool(ref: str, pool: Sequence[T]) -> T | None:
    if not pool or not ref:
        return None
    return _match_uuid_prefix(ref, pool) or _match_name(ref, pool) or _match_fuzzy(ref, pool)


def find_in_pool_exact(ref: str, pool: Sequence[T]) -> T | None:
    if not pool or not ref:
        return None
    return _match_uuid_prefix(ref, pool) or _match_name(ref, pool)
