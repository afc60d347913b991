"""
Time-bounded cache of provider results, persisted as a flat JSON file.

Entries are keyed by (provider kind, day key). Each provider kind is its own
namespace, so clearing calendar data never touches code-host data.
"""

import asyncio
import json
import logging
import os
import tempfile
import time
from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

from core.config import CACHE_FILE, CACHE_TTL_SECONDS
from core.dates import InputError
from models.activity import ProviderKind

log = logging.getLogger(__name__)

SCOPE_ALL = "all"
SCOPE_CALENDARS = "calendars"
SCOPE_EXPIRED = "expired"
CLEAR_SCOPES = [SCOPE_ALL, SCOPE_CALENDARS, SCOPE_EXPIRED] + [kind.value for kind in ProviderKind]
_NAMESPACES = {kind.value for kind in ProviderKind}


def _namespace(kind: ProviderKind | str) -> str:
    return ProviderKind(kind).value


@dataclass
class CacheStats:
    """Hit/miss counters per provider kind."""

    hits: dict[str, int] = field(default_factory=dict)
    misses: dict[str, int] = field(default_factory=dict)

    @property
    def total_hits(self) -> int:
        return sum(self.hits.values())

    @property
    def total_requests(self) -> int:
        return self.total_hits + sum(self.misses.values())

    @property
    def hit_rate(self) -> float:
        """Percentage of lookups served from cache."""
        if not self.total_requests:
            return 0.0
        return round(self.total_hits / self.total_requests * 100, 1)

    def to_dict(self) -> dict:
        return {
            "per_kind": {
                kind: {"hits": self.hits.get(kind, 0), "misses": self.misses.get(kind, 0)}
                for kind in sorted(set(self.hits) | set(self.misses))
            },
            "total_hits": self.total_hits,
            "total_requests": self.total_requests,
            "hit_rate": self.hit_rate,
        }


class ActivityCache:
    """
    Provider result cache with per-entry age expiry.

    Lookups are synchronous and lock free. Every mutation persists the whole
    store; persists are serialized with an asyncio.Lock so concurrent set()
    calls from the orchestrator never interleave writes to the file.

    Use as an async context manager around one logical run: the first of
    any overlapping scopes loads the file (later entrants wait for that load
    and never reload), the last one out flushes it.
    """

    def __init__(
        self,
        path: Path = CACHE_FILE,
        ttl_seconds: float = CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.path = Path(path)
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, dict[str, dict]] = {}
        self._hits: dict[str, int] = defaultdict(int)
        self._misses: dict[str, int] = defaultdict(int)
        self._lock = asyncio.Lock()
        self._load_lock = asyncio.Lock()
        self._loaded = False
        self._depth = 0

    async def __aenter__(self) -> "ActivityCache":
        # Count the scope before awaiting so overlapping entrants see it
        self._depth += 1
        try:
            async with self._load_lock:
                if not self._loaded:
                    await self.load()
                    self._loaded = True
        except BaseException:
            self._depth -= 1
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self._depth -= 1
        if self._depth == 0:
            await self.flush()
            # A scope may have opened while the flush was in flight
            if self._depth == 0:
                self._loaded = False

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    async def load(self) -> None:
        """Read the cache file. A missing or corrupt file yields an empty cache."""
        try:
            text = await asyncio.to_thread(self.path.read_text, encoding="utf-8")
            data = json.loads(text)
        except FileNotFoundError:
            self._entries = {}
            return
        except (OSError, ValueError) as e:
            log.warning(f"Cache file {self.path} unreadable, starting empty: {e}")
            self._entries = {}
            return

        if not isinstance(data, dict):
            log.warning(f"Cache file {self.path} has unexpected layout, starting empty")
            self._entries = {}
            return

        self._entries = {
            namespace: entries
            for namespace, entries in data.items()
            if namespace in _NAMESPACES and isinstance(entries, dict)
        }
        log.debug(f"Loaded cache from {self.path} ({self._entry_count()} entries)")

    async def save(self) -> None:
        """Persist the whole store. Raises OSError if the file cannot be written."""
        async with self._lock:
            text = json.dumps(self._entries, indent=2)
            await asyncio.to_thread(self._write, text)

    async def flush(self) -> None:
        """Persist the store, logging instead of raising on failure."""
        try:
            await self.save()
        except OSError as e:
            log.error(f"Failed to write cache file {self.path}: {e}")

    def _write(self, text: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        # Write to a sibling temp file and swap it in so readers never see a partial file
        tmp = tempfile.NamedTemporaryFile(
            "w", dir=self.path.parent, prefix=f".{self.path.name}.", delete=False, encoding="utf-8"
        )
        tmp_path = Path(tmp.name)
        try:
            tmp.write(text)
            tmp.flush()
            os.fsync(tmp.fileno())
            tmp.close()
            os.chmod(tmp_path, 0o600)
            os.replace(tmp_path, self.path)
        finally:
            tmp.close()
            tmp_path.unlink(missing_ok=True)

    # -------------------------------------------------------------------------
    # Entries
    # -------------------------------------------------------------------------

    def _is_expired(self, entry: dict) -> bool:
        return self._clock() - entry.get("timestamp", 0) > self.ttl_seconds

    def get(self, kind: ProviderKind | str, day_key: str) -> tuple[Any, bool]:
        """
        Look up a cached payload.

        Returns (data, True) on a fresh hit, (None, False) otherwise. A stale
        entry is evicted on the way out.
        """
        namespace = _namespace(kind)
        entries = self._entries.get(namespace, {})
        entry = entries.get(day_key)

        if entry is None:
            self._misses[namespace] += 1
            return None, False

        if self._is_expired(entry):
            del entries[day_key]
            self._misses[namespace] += 1
            return None, False

        self._hits[namespace] += 1
        return entry["data"], True

    async def set(self, kind: ProviderKind | str, day_key: str, data: Any) -> None:
        """Store a payload stamped with the current time and persist the store."""
        namespace = _namespace(kind)
        self._entries.setdefault(namespace, {})[day_key] = {
            "data": data,
            "timestamp": self._clock(),
            "source": namespace,
        }
        await self.flush()

    async def clear(self, scope: ProviderKind | str = SCOPE_ALL) -> None:
        """
        Remove entries by scope.

        Scopes: "all" (also resets stats), "calendars", "expired", or a single
        provider kind.
        """
        scope = getattr(scope, "value", scope)
        scope = str(scope).lower()

        if scope == SCOPE_ALL:
            self._entries = {}
            self.reset_stats()
        elif scope == SCOPE_CALENDARS:
            for kind in ProviderKind:
                if kind.is_calendar:
                    self._entries.pop(kind.value, None)
        elif scope == SCOPE_EXPIRED:
            removed = 0
            for entries in self._entries.values():
                for day_key in [k for k, entry in entries.items() if self._is_expired(entry)]:
                    del entries[day_key]
                    removed += 1
            log.info(f"Swept {removed} expired cache entries")
        else:
            try:
                namespace = _namespace(scope)
            except ValueError:
                raise InputError(
                    f"Unknown cache scope '{scope}'. Expected one of: {', '.join(CLEAR_SCOPES)}"
                )
            self._entries.pop(namespace, None)

        await self.save()

    # -------------------------------------------------------------------------
    # Observability
    # -------------------------------------------------------------------------

    def stats(self) -> CacheStats:
        return CacheStats(hits=dict(self._hits), misses=dict(self._misses))

    def reset_stats(self) -> None:
        self._hits.clear()
        self._misses.clear()

    def _entry_count(self) -> int:
        return sum(len(entries) for entries in self._entries.values())

    def info(self) -> dict:
        return {
            "entries": {kind.value: len(self._entries.get(kind.value, {})) for kind in ProviderKind},
            "ttl_seconds": self.ttl_seconds,
            "cache_file": str(self.path),
        }
