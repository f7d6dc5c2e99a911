# src/tiercache/tiers/memory.py
"""
Bounded Memory Tier - In-memory key/value store with LRU eviction.

This module provides a thread-safe in-memory store bounded by entry count
and/or aggregate cost. When an insertion pushes the store over either limit,
the least recently used entries are evicted and a single registered
observer is told about each of them.

Eviction policy:
- Recency is refreshed by ``set`` (insert or overwrite) and by a ``get`` hit.
- Victims are taken strictly from the least recently used end.
- The entry that was just inserted is never evicted by its own ``set``; a
  single entry whose cost alone exceeds the cost limit is therefore kept
  and everything else is evicted.

Removal modes:
Explicit removals go through the same code path as capacity evictions. The
caller states with each ``remove``/``clear`` call whether the removal should
be reported to the observer (``RemovalMode.AUTOMATIC_EVICTION``) or not
(``RemovalMode.EXPLICIT_REMOVAL``). The mode travels with the call, so two
concurrent removals never influence each other.

Usage:
    store = BoundedMemoryStore(count_limit=2)
    store.observer = lambda key, value: print(f"evicted {key}")

    store.set("a", "x")
    store.set("b", "y")
    store.set("c", "z")          # prints "evicted a"

    store.remove("b", mode=RemovalMode.EXPLICIT_REMOVAL)   # silent
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Generic, TypeVar
from collections.abc import Hashable, Iterator

from ..config import MemoryPolicy

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

DEFAULT_COST = 1

EvictionObserver = Callable[[Any, Any], None]


class RemovalMode(str, Enum):
    """How a removal should be reported to the eviction observer."""

    AUTOMATIC_EVICTION = "automatic_eviction"
    EXPLICIT_REMOVAL = "explicit_removal"


@dataclass
class CacheEntry(Generic[K, V]):
    """A single entry held by the memory tier.

    Attributes:
        key: Unique key of the entry.
        value: Stored value.
        cost: Weight counted against the total cost limit.
    """

    key: K
    value: V
    cost: int = DEFAULT_COST


# =============================================================================
# BOUNDED MEMORY STORE
# =============================================================================


class BoundedMemoryStore(Generic[K, V]):
    """Thread-safe in-memory store bounded by entry count and total cost.

    All state changes happen under one ``RLock``. The eviction observer is
    invoked after the lock is released, on the thread that caused the
    removal, once per removed entry and in removal order. An exception
    raised by the observer is logged and does not propagate.

    Attributes:
        name: Label used in logs and statistics.
        count_limit: Maximum number of entries (0 = unlimited).
        total_cost_limit: Maximum aggregate cost (0 = unlimited).
    """

    def __init__(
        self,
        name: str = "tiercache_memory",
        count_limit: int = 100,
        total_cost_limit: int = 0,
        policy: MemoryPolicy | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            name: Debug label.
            count_limit: Maximum number of entries. Set to 0 for unlimited.
            total_cost_limit: Maximum total cost. Set to 0 for unlimited.
            policy: Optional policy object (overrides other params).
        """
        if policy is not None:
            name = policy.name
            count_limit = policy.count_limit
            total_cost_limit = policy.total_cost_limit

        self.name = name
        self.count_limit = count_limit
        self.total_cost_limit = total_cost_limit

        # Ordered LRU -> MRU
        self._entries: OrderedDict[K, CacheEntry[K, V]] = OrderedDict()
        self._lock = threading.RLock()
        self._total_cost = 0
        self._observer: EvictionObserver | None = None

        self._stats = {
            "hits": 0,
            "misses": 0,
            "sets": 0,
            "evictions": 0,
            "removals": 0,
        }

        logger.debug(
            "BoundedMemoryStore '%s' initialized: count_limit=%d, total_cost_limit=%d",
            name,
            count_limit,
            total_cost_limit,
        )

    # -------------------------------------------------------------------------
    # Observer
    # -------------------------------------------------------------------------

    @property
    def observer(self) -> EvictionObserver | None:
        """The callable told about evicted entries as ``observer(key, value)``."""
        return self._observer

    @observer.setter
    def observer(self, callback: EvictionObserver | None) -> None:
        with self._lock:
            self._observer = callback

    # -------------------------------------------------------------------------
    # Private Methods
    # -------------------------------------------------------------------------

    def _over_limits(self) -> bool:
        if self.count_limit > 0 and len(self._entries) > self.count_limit:
            return True
        if self.total_cost_limit > 0 and self._total_cost > self.total_cost_limit:
            return True
        return False

    def _pop_entry(self, key: K) -> CacheEntry[K, V] | None:
        entry = self._entries.pop(key, None)
        if entry is not None:
            self._total_cost -= entry.cost
        return entry

    def _collect_victims(self, protected: K) -> list[CacheEntry[K, V]]:
        """Pop LRU entries until both limits hold, never touching ``protected``."""
        victims: list[CacheEntry[K, V]] = []
        while self._over_limits():
            victim_key = next((k for k in self._entries if k != protected), None)
            if victim_key is None:
                break
            entry = self._pop_entry(victim_key)
            if entry is not None:
                victims.append(entry)
        self._stats["evictions"] += len(victims)
        return victims

    def _notify(self, entries: list[CacheEntry[K, V]], observer: EvictionObserver | None) -> None:
        if observer is None:
            return
        for entry in entries:
            try:
                observer(entry.key, entry.value)
            except Exception as e:
                logger.error(
                    "Eviction observer of '%s' failed for key %r: %s",
                    self.name,
                    entry.key,
                    e,
                    exc_info=True,
                )

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def set(self, key: K, value: V, cost: int | None = None) -> None:
        """Insert or overwrite an entry.

        Overwriting replaces value and cost and marks the entry as most
        recently used. If a limit is exceeded afterwards, other entries are
        evicted (least recently used first) and reported to the observer
        before this method returns.

        Args:
            key: The key to store under.
            value: The value to store.
            cost: Weight of the entry (defaults to 1).
        """
        self._insert(key, value, cost, replace=True)

    def set_if_absent(self, key: K, value: V, cost: int | None = None) -> bool:
        """Insert ``key`` only if it is not present; evicts like :meth:`set`.

        Returns:
            True if the entry was inserted, False if the key already existed.
        """
        return self._insert(key, value, cost, replace=False)

    def _insert(self, key: K, value: V, cost: int | None, replace: bool) -> bool:
        cost = DEFAULT_COST if cost is None else max(0, cost)
        with self._lock:
            if key in self._entries:
                if not replace:
                    return False
                self._pop_entry(key)
            self._entries[key] = CacheEntry(key=key, value=value, cost=cost)
            self._total_cost += cost
            self._stats["sets"] += 1
            victims = self._collect_victims(protected=key)
            observer = self._observer

        if victims:
            logger.debug("'%s' evicted %d entries to stay within limits", self.name, len(victims))
        self._notify(victims, observer)
        return True

    def get(self, key: K) -> V | None:
        """Return the value for ``key`` or ``None``; a hit refreshes recency."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._stats["misses"] += 1
                return None
            self._entries.move_to_end(key)
            self._stats["hits"] += 1
            return entry.value

    def remove(self, key: K, mode: RemovalMode = RemovalMode.AUTOMATIC_EVICTION) -> None:
        """Remove ``key`` if present.

        Args:
            key: The key to remove. Absent keys are ignored.
            mode: ``AUTOMATIC_EVICTION`` reports the removal to the observer,
                ``EXPLICIT_REMOVAL`` keeps it silent.
        """
        with self._lock:
            entry = self._pop_entry(key)
            if entry is None:
                return
            self._stats["removals"] += 1
            observer = self._observer

        if mode is RemovalMode.AUTOMATIC_EVICTION:
            self._notify([entry], observer)

    def clear(self, mode: RemovalMode = RemovalMode.AUTOMATIC_EVICTION) -> int:
        """Remove every entry.

        With ``AUTOMATIC_EVICTION`` the observer is called once per removed
        entry, oldest first.

        Returns:
            Number of entries removed.
        """
        with self._lock:
            removed = list(self._entries.values())
            self._entries.clear()
            self._total_cost = 0
            self._stats["removals"] += len(removed)
            observer = self._observer

        logger.debug("Cleared %d entries from '%s' (%s)", len(removed), self.name, mode.value)
        if mode is RemovalMode.AUTOMATIC_EVICTION:
            self._notify(removed, observer)
        return len(removed)

    def keys(self) -> list[K]:
        """Snapshot of keys ordered from least to most recently used."""
        with self._lock:
            return list(self._entries)

    @property
    def total_cost(self) -> int:
        """Aggregate cost of all entries."""
        with self._lock:
            return self._total_cost

    def stats(self) -> dict[str, Any]:
        """Get store statistics.

        Returns:
            Dictionary containing item_count, total_cost, the configured
            limits, hit_rate and the hits/misses/sets/evictions/removals
            counters.
        """
        with self._lock:
            total = self._stats["hits"] + self._stats["misses"]
            return {
                "name": self.name,
                "item_count": len(self._entries),
                "total_cost": self._total_cost,
                "count_limit": self.count_limit,
                "total_cost_limit": self.total_cost_limit,
                "hit_rate": self._stats["hits"] / total if total > 0 else 0.0,
                **self._stats.copy(),
            }

    # -------------------------------------------------------------------------
    # Indexed access
    # -------------------------------------------------------------------------

    def __getitem__(self, key: K) -> V:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._stats["misses"] += 1
                raise KeyError(key)
            self._entries.move_to_end(key)
            self._stats["hits"] += 1
            return entry.value

    def __setitem__(self, key: K, value: V | None) -> None:
        """``store[key] = value`` sets; ``store[key] = None`` removes."""
        if value is None:
            self.remove(key)
        else:
            self.set(key, value)

    def __delitem__(self, key: K) -> None:
        self.remove(key)

    def __contains__(self, key: object) -> bool:
        """Check membership without touching recency."""
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __iter__(self) -> Iterator[K]:
        return iter(self.keys())


def create_memory_store(policy: MemoryPolicy | None = None, **kwargs: Any) -> BoundedMemoryStore:
    """Factory function to create a bounded memory store.

    Args:
        policy: Optional policy object.
        **kwargs: Additional arguments passed to BoundedMemoryStore.
    """
    if policy is not None:
        return BoundedMemoryStore(policy=policy)
    return BoundedMemoryStore(**kwargs)


__all__ = [
    "DEFAULT_COST",
    "BoundedMemoryStore",
    "CacheEntry",
    "EvictionObserver",
    "RemovalMode",
    "create_memory_store",
]
