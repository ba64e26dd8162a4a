"""Time-boxed cache of terminal metadata, keyed by access key.

Expiry is enforced at read time against a monotonic clock; expired
entries and idle locks are also swept on writes and misses.  Each key has
its own ``asyncio.Lock`` so concurrent misses for the same credential
issue a single lookup while different credentials never wait on each
other.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta

from .models import TerminalMetadata

_MASK_VISIBLE = 4


@dataclass(frozen=True)
class CacheEntry:
    value: TerminalMetadata
    stored_at: float


@dataclass(frozen=True)
class CacheEntryInfo:
    """Inspection view of one entry; the credential is masked."""

    credential: str
    terminal_name: str
    age_seconds: float
    expires_in_seconds: float


def mask_credential(credential: str) -> str:
    if len(credential) <= _MASK_VISIBLE:
        return "*" * len(credential)
    return credential[:_MASK_VISIBLE] + "*" * (len(credential) - _MASK_VISIBLE)


class MetadataCache:
    def __init__(
        self,
        ttl: timedelta,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl.total_seconds()
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def get(self, credential: str) -> TerminalMetadata | None:
        """Return the cached value, dropping it if older than the TTL."""
        entry = self._entries.get(credential)
        if entry is None:
            return None
        if self._clock() - entry.stored_at >= self._ttl:
            self._entries.pop(credential, None)
            return None
        return entry.value

    def put(self, credential: str, value: TerminalMetadata) -> None:
        self._prune()
        self._entries[credential] = CacheEntry(value=value, stored_at=self._clock())

    def invalidate(self, credential: str | None = None) -> int:
        """Remove one entry (or all with ``None``); returns how many went."""
        if credential is None:
            removed = len(self._entries)
            self._entries.clear()
            self._locks.clear()
            return removed
        self._locks.pop(credential, None)
        return 1 if self._entries.pop(credential, None) is not None else 0

    def lock_for(self, credential: str) -> asyncio.Lock:
        lock = self._locks.get(credential)
        if lock is None:
            self._prune()
            lock = self._locks[credential] = asyncio.Lock()
        return lock

    def _prune(self) -> None:
        """Drop expired entries and idle locks of credentials not cached."""
        now = self._clock()
        for key in [k for k, e in self._entries.items() if now - e.stored_at >= self._ttl]:
            del self._entries[key]
        for key in [k for k, lock in self._locks.items() if not lock.locked()]:
            if key not in self._entries:
                del self._locks[key]

    def entries(self) -> list[CacheEntryInfo]:
        self._prune()
        now = self._clock()
        return [
            CacheEntryInfo(
                credential=mask_credential(key),
                terminal_name=entry.value.name,
                age_seconds=round(now - entry.stored_at, 3),
                expires_in_seconds=round(self._ttl - (now - entry.stored_at), 3),
            )
            for key, entry in self._entries.items()
            if now - entry.stored_at < self._ttl
        ]

    def __len__(self) -> int:
        return len(self._entries)
