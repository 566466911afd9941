"""
In-process fallback for calendar day documents.

Used by AvailabilityStore while the database is unreachable:
- reads that succeed are mirrored here so they can be served during an outage
- writes that fail are held here as *pending* until the store can take them
Entries expire after a bounded TTL and the number of entries is capped.
Nothing here survives a restart or is shared between server instances.
"""

import copy
import logging
import time
from collections.abc import Callable
from threading import Lock
from typing import Optional

logger = logging.getLogger(__name__)


class MemoryFallback:
    """TTL-bounded map of date -> day document"""

    def __init__(
        self,
        ttl_seconds: int = 900,
        max_entries: int = 366,
        clock: Callable[[], float] = time.time,
    ):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        # Format: {date: {'doc': dict, 'expires_at': float, 'pending': bool}}
        self._entries: dict[str, dict] = {}
        self._lock = Lock()

    def __len__(self) -> int:
        with self._lock:
            self._purge_expired()
            return len(self._entries)

    def _purge_expired(self) -> None:
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if now >= entry["expires_at"]]
        for key in expired:
            if self._entries[key]["pending"]:
                logger.warning(f"⚠️ Dropping unsaved calendar changes for {key} after TTL expiry")
            del self._entries[key]

    def _evict_if_full(self) -> None:
        while len(self._entries) >= self.max_entries:
            # Mirrored copies go first, then the oldest pending write
            victim = min(
                self._entries,
                key=lambda k: (self._entries[k]["pending"], self._entries[k]["expires_at"]),
            )
            if self._entries[victim]["pending"]:
                logger.warning(f"⚠️ Fallback full, dropping unsaved calendar changes for {victim}")
            del self._entries[victim]

    def get(self, date: str) -> Optional[dict]:
        with self._lock:
            self._purge_expired()
            entry = self._entries.get(date)
            return copy.deepcopy(entry["doc"]) if entry else None

    def put(self, date: str, doc: dict, pending: bool = False) -> None:
        with self._lock:
            self._purge_expired()
            existing = self._entries.get(date)
            if existing and existing["pending"] and not pending:
                # Never let a mirrored read hide a write that is still owed to the store
                return
            if date not in self._entries:
                self._evict_if_full()
            self._entries[date] = {
                "doc": copy.deepcopy(doc),
                "expires_at": self._clock() + self.ttl_seconds,
                "pending": pending,
            }

    def discard(self, date: str) -> None:
        with self._lock:
            self._entries.pop(date, None)

    def discard_before(self, date: str) -> int:
        with self._lock:
            stale = [key for key in self._entries if key < date]
            for key in stale:
                del self._entries[key]
            return len(stale)

    def pending(self) -> list[tuple[str, dict]]:
        """Writes that still have to be promoted to the durable store"""
        with self._lock:
            self._purge_expired()
            return [
                (key, copy.deepcopy(entry["doc"]))
                for key, entry in sorted(self._entries.items())
                if entry["pending"]
            ]

    def mark_saved(self, date: str) -> None:
        with self._lock:
            entry = self._entries.get(date)
            if entry:
                entry["pending"] = False

    def documents(self, start: Optional[str] = None, end: Optional[str] = None) -> list[dict]:
        with self._lock:
            self._purge_expired()
            return [
                copy.deepcopy(entry["doc"])
                for key, entry in sorted(self._entries.items())
                if (start is None or key >= start) and (end is None or key <= end)
            ]
