"""Per-project key/value cache with validity checks evaluated on read.

Entries carry a :data:`Validity` describing when they go stale:

* :class:`Always` - valid until explicitly invalidated or overwritten.
* :class:`Never` - never served from the cache.
* :class:`ModTimeOf` - valid while a watched file keeps the modification
  time captured when the entry was stored.
* :class:`AllOf` - valid while every part is valid.

Validity values are plain data; :func:`is_valid` evaluates them against an
mtime lookup so the cache never holds closures over ambient state.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, Optional, Protocol, Tuple, TypeVar, Union
import os

from .project import Project

T = TypeVar("T")

MTimeLookup = Callable[[str], Optional[float]]


@dataclass(frozen=True, slots=True)
class Always:
    pass


@dataclass(frozen=True, slots=True)
class Never:
    pass


@dataclass(frozen=True, slots=True)
class ModTimeOf:
    path: str
    captured: float | None

    @classmethod
    def capture(cls, path: str, mtime_of: MTimeLookup) -> "ModTimeOf":
        return cls(path=path, captured=mtime_of(path))


@dataclass(frozen=True, slots=True)
class AllOf:
    parts: Tuple["Validity", ...]


Validity = Union[Always, Never, ModTimeOf, AllOf]

ALWAYS = Always()
NEVER = Never()


def is_valid(validity: Validity, mtime_of: MTimeLookup) -> bool:
    if isinstance(validity, Always):
        return True
    if isinstance(validity, Never):
        return False
    if isinstance(validity, ModTimeOf):
        return mtime_of(validity.path) == validity.captured
    if isinstance(validity, AllOf):
        return all(is_valid(part, mtime_of) for part in validity.parts)
    raise TypeError(f"Unsupported cache validity: {validity!r}")


def _local_mtime(path: str) -> float | None:
    try:
        return os.stat(path).st_mtime
    except FileNotFoundError:
        return None


@dataclass(frozen=True, slots=True)
class CacheEntry:
    value: Any
    validity: Validity


class CacheStore(Protocol):
    """Generic per-project key/value storage supplied by the host."""

    def get(self, project: Project, key: Hashable) -> CacheEntry | None:
        ...

    def put(self, project: Project, key: Hashable, entry: CacheEntry) -> None:
        ...

    def delete(self, project: Project, key: Hashable) -> None:
        ...


class MemoryCacheStore:
    """Process-local store; entries of different projects never mix."""

    def __init__(self) -> None:
        self._entries: Dict[Project, Dict[Hashable, CacheEntry]] = {}

    def get(self, project: Project, key: Hashable) -> CacheEntry | None:
        return self._entries.get(project, {}).get(key)

    def put(self, project: Project, key: Hashable, entry: CacheEntry) -> None:
        self._entries.setdefault(project, {})[key] = entry

    def delete(self, project: Project, key: Hashable) -> None:
        bucket = self._entries.get(project)
        if bucket is not None:
            bucket.pop(key, None)


class Cache:
    """Cache discovery results per project.

    Not safe for concurrent use: ``get_with_predicate`` reads and then writes
    without holding a lock.
    """

    def __init__(self, store: CacheStore | None = None, *, mtime_of: MTimeLookup | None = None) -> None:
        self._store = store if store is not None else MemoryCacheStore()
        self._mtime_of = mtime_of or _local_mtime

    def watch(self, path: str) -> ModTimeOf:
        """Capture the current modification time of ``path``."""

        return ModTimeOf.capture(path, self._mtime_of)

    def is_valid(self, validity: Validity) -> bool:
        return is_valid(validity, self._mtime_of)

    def lookup(self, project: Project, key: Hashable) -> CacheEntry | None:
        entry = self._store.get(project, key)
        if entry is None or not self.is_valid(entry.validity):
            return None
        return entry

    def get(self, project: Project, key: Hashable, default: Any = None) -> Any:
        entry = self.lookup(project, key)
        return default if entry is None else entry.value

    def put(self, project: Project, key: Hashable, value: Any, validity: Validity = ALWAYS) -> None:
        self._store.put(project, key, CacheEntry(value=value, validity=validity))

    def invalidate(self, project: Project, key: Hashable) -> None:
        self._store.delete(project, key)

    def get_with_predicate(
        self,
        project: Project,
        key: Hashable,
        predicate: bool | Validity,
        compute: Callable[[], T],
    ) -> T:
        """Return the cached value for ``key`` or compute, store and return it.

        ``predicate`` is ``True`` to cache indefinitely, ``False`` to always
        recompute, or a validity value checked on the next read. Exceptions
        raised by ``compute`` propagate and leave the cache untouched.
        """

        if predicate is True:
            validity: Validity = ALWAYS
        elif predicate is False:
            validity = NEVER
        elif isinstance(predicate, (Always, Never, ModTimeOf, AllOf)):
            validity = predicate
        else:
            raise TypeError(f"Cache predicate must be a bool or validity value, not {predicate!r}")

        if not isinstance(validity, Never):
            entry = self.lookup(project, key)
            if entry is not None:
                return entry.value

        value = compute()
        if isinstance(validity, Never):
            self._store.delete(project, key)
        else:
            self.put(project, key, value, validity)
        return value


__all__ = [
    "ALWAYS",
    "AllOf",
    "Always",
    "Cache",
    "CacheEntry",
    "CacheStore",
    "MemoryCacheStore",
    "ModTimeOf",
    "NEVER",
    "Never",
    "Validity",
    "is_valid",
]
