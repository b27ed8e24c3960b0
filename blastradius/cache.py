"""Time-bounded result cache for impact analyses.

Entries are keyed by (target, change type, depth, graph version) and kept
for ``ttl_s`` seconds. At capacity the oldest *inserted* entry is evicted;
reading an entry does not move it, so this is insertion-order eviction and
not LRU. Stored results and returned results are deep copies.
"""

from __future__ import annotations

import copy
import hashlib
import json
import logging
import threading
import time
from collections import OrderedDict
from typing import Callable, Dict, Optional

from .models import CacheEntry, ChangeType, ImpactAnalysis

logger = logging.getLogger(__name__)

DEFAULT_TTL_S = 300.0
DEFAULT_MAX_ENTRIES = 100
DEFAULT_SWEEP_INTERVAL_S = 60.0


class ResultCache:
    """Thread-safe TTL cache with oldest-insertion eviction."""

    def __init__(
        self,
        ttl_s: float = DEFAULT_TTL_S,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        sweep_interval_s: Optional[float] = DEFAULT_SWEEP_INTERVAL_S,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_s = ttl_s
        self.max_entries = max(1, max_entries)
        self.clock = clock

        self._lock = threading.Lock()
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._expired = 0

        self._stop = threading.Event()
        self._sweeper: Optional[threading.Thread] = None
        if sweep_interval_s:
            self._sweeper = threading.Thread(
                target=self._sweep_loop,
                args=(sweep_interval_s,),
                name="blastradius-cache-sweeper",
                daemon=True,
            )
            self._sweeper.start()

    # ------------------------------------------------------------------
    # Keys
    # ------------------------------------------------------------------

    @staticmethod
    def make_key(
        target: str,
        change_type: ChangeType,
        depth: int,
        graph_version: int,
    ) -> str:
        payload = json.dumps(
            {
                "target": target,
                "changeType": ChangeType(change_type).value,
                "depth": depth,
                "graphVersion": graph_version,
            },
            sort_keys=True,
            separators=(",", ":"),
        )
        return hashlib.blake2b(payload.encode("utf-8"), digest_size=16).hexdigest()

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------

    def get(self, key: str) -> Optional[ImpactAnalysis]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None
            if self._is_expired(entry, self.clock()):
                del self._entries[key]
                self._expired += 1
                self._misses += 1
                logger.debug("Cache entry %s expired", key[:12])
                return None
            self._hits += 1
            return copy.deepcopy(entry.result)

    def put(self, key: str, result: ImpactAnalysis) -> None:
        entry = CacheEntry(key=key, result=copy.deepcopy(result), inserted_at=self.clock())
        with self._lock:
            self._entries.pop(key, None)
            while len(self._entries) >= self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                self._evictions += 1
                logger.debug("Evicted oldest cache entry %s", evicted[:12])
            self._entries[key] = entry

    def sweep(self) -> int:
        """Drop every expired entry; returns how many were removed."""
        now = self.clock()
        with self._lock:
            stale = [k for k, e in self._entries.items() if self._is_expired(e, now)]
            for key in stale:
                del self._entries[key]
            self._expired += len(stale)
        if stale:
            logger.debug("Swept %d expired cache entries", len(stale))
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {
                "size": len(self._entries),
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
                "expired": self._expired,
            }

    def close(self) -> None:
        """Stop the background sweeper, if one is running."""
        self._stop.set()
        if self._sweeper is not None and self._sweeper is not threading.current_thread():
            self._sweeper.join(timeout=1.0)
        self._sweeper = None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _is_expired(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.inserted_at > self.ttl_s

    def _sweep_loop(self, interval: float) -> None:
        while not self._stop.wait(interval):
            self.sweep()
