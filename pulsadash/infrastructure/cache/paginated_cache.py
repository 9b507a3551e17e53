"""Client-side cache for paginated, filtered list resources.

One entry per filter signature, all entries serialized together as a single
JSON map under one storage key. Entries expire lazily on read after the TTL.

A fresh search replaces the entry for its signature; a "load more" merges
the new page into it by record key. Pagination state (total, has_more,
next_cursor) always comes from the latest server response.
"""

import json
import logging
import time
from typing import Callable, Dict, Generic, List, Optional, Sequence, Type

from pulsadash.domain.interfaces.storage import KeyValueStore
from pulsadash.domain.models.common import FilterSignature, StorageKey
from pulsadash.domain.models.listing import CacheEntry, ListFilters, R

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 5 * 60

Clock = Callable[[], float]


def merge_records(existing: Sequence[R], incoming: Sequence[R]) -> List[R]:
    """Merges a new page into an existing record list by record key.

    Existing records keep their position, re-supplied records are replaced
    in place and unseen records are appended in arrival order.
    """
    merged: Dict[str, R] = {record.record_key: record for record in existing}
    for record in incoming:
        merged[record.record_key] = record
    return list(merged.values())


class PaginatedCache(Generic[R]):
    """Signature-keyed cache of list pages with TTL and cursor-aware merging."""

    def __init__(
        self,
        store: KeyValueStore,
        record_type: Type[R],
        storage_key: str,
        ttl_s: float = DEFAULT_TTL_SECONDS,
        clock: Clock = time.time,
    ):
        """Initializes the cache.

        Args:
            store: Persistent storage holding the serialized signature map.
            record_type: Record class used to rebuild records on read.
            storage_key: Key of the signature map in ``store``.
            ttl_s: Maximum entry age in seconds.
            clock: Returns the current epoch time in seconds.
        """
        self.store = store
        self.record_type = record_type
        self.storage_key = StorageKey(storage_key)
        self.ttl_s = ttl_s
        self._clock = clock
        # Stale-write guard, per signature: last issued and last applied ticket.
        self._issued: Dict[FilterSignature, int] = {}
        self._applied: Dict[FilterSignature, int] = {}

    # --- Storage helpers ---

    def _load_map(self) -> Dict[str, dict]:
        raw = self.store.get(self.storage_key)
        if not raw:
            return {}
        try:
            data = json.loads(raw)
        except ValueError as e:
            logger.warning(f"Cache '{self.storage_key}' is corrupted, treating as empty: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Cache '{self.storage_key}' holds {type(data).__name__}, treating as empty")
            return {}
        return data

    def _save_map(self, data: Dict[str, dict]) -> None:
        self.store.set(self.storage_key, json.dumps(data, ensure_ascii=False))

    def _decode(self, signature: FilterSignature, raw_entry: object) -> Optional[CacheEntry[R]]:
        if not isinstance(raw_entry, dict):
            logger.warning(f"Ignoring malformed cache entry for {signature}")
            return None
        try:
            return CacheEntry.from_dict(raw_entry, self.record_type)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Ignoring malformed cache entry for {signature}: {e}")
            return None

    def _is_fresh(self, entry: CacheEntry[R], now: float) -> bool:
        return now - entry.captured_at < self.ttl_s

    # --- Public API ---

    def read(self, filters: ListFilters) -> Optional[CacheEntry[R]]:
        """Returns the entry for ``filters``, or None if absent, expired or unreadable."""
        signature = filters.signature
        data = self._load_map()
        if signature not in data:
            return None

        entry = self._decode(signature, data[signature])
        if entry is None:
            return None

        if not self._is_fresh(entry, self._clock()):
            logger.debug(f"Cache entry for {signature} expired")
            del data[signature]
            self._save_map(data)
            return None

        return entry

    def next_version(self, filters: ListFilters) -> int:
        """Issues a write ticket for a fetch that is about to start.

        Tickets increase monotonically per signature. A write carrying a
        ticket older than one already applied is rejected, so a slow
        request cannot overwrite the result of a newer one.
        """
        signature = filters.signature
        ticket = self._issued.get(signature, 0) + 1
        self._issued[signature] = ticket
        return ticket

    def write(
        self,
        filters: ListFilters,
        records: Sequence[R],
        total: int,
        has_more: bool,
        next_cursor: Optional[str] = None,
        is_append: bool = False,
        version: Optional[int] = None,
    ) -> bool:
        """Stores a fetched page.

        Args:
            filters: Filter combination the page was fetched for.
            records: Records of the fetched page.
            total: Server-reported total count.
            has_more: Server-reported continuation flag.
            next_cursor: Server-reported continuation token.
            is_append: True for a "load more" continuation, False for a
                fresh search (full replace).
            version: Optional ticket from next_version().

        Returns:
            False if the write was rejected as stale, True otherwise.
        """
        signature = filters.signature
        if version is not None:
            if version < self._applied.get(signature, 0):
                logger.info(
                    f"Rejecting stale write for {signature} (ticket {version} < {self._applied[signature]})"
                )
                return False
            self._applied[signature] = version

        now = self._clock()
        data = self._load_map()
        base: List[R] = []

        if is_append and signature in data:
            existing = self._decode(signature, data[signature])
            if existing is not None and self._is_fresh(existing, now):
                base = existing.records
            else:
                logger.debug(f"No live entry to append to for {signature}, storing page as new entry")

        page = merge_records(base, records)

        entry = CacheEntry(
            records=page,
            total=total,
            has_more=has_more,
            next_cursor=next_cursor,
            captured_at=now,
        )
        data[signature] = entry.to_dict()
        self._save_map(data)
        logger.debug(f"Cached {len(page)} records for {signature} (append={is_append}, total={total})")
        return True

    def clear(self) -> None:
        """Removes every cached entry (logout or explicit invalidation)."""
        self.store.delete(self.storage_key)
        # Fetches started before the clear hold tickets below the new floor.
        for signature, issued in self._issued.items():
            self._issued[signature] = issued + 1
            self._applied[signature] = issued + 1
        logger.info(f"Cleared cache '{self.storage_key}'.")
