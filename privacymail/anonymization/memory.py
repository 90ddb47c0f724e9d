"""Scope-keyed, expiring memory of previously masked person names.

Records are kept per scope in insertion order. Expired records and records
that no longer carry PERSON are dropped lazily whenever a scope is primed or
applied. A record's age resets whenever it is remembered again or masks
something in `apply`. A scope that grows past ``max_entries`` loses its
oldest-inserted records first. Each scope has its own re-entrant lock so
that one call can hold it across prime -> apply -> remember while other
scopes proceed.
"""

import threading
import time
from collections import OrderedDict
from collections.abc import Callable, Iterator
from contextlib import ExitStack

from privacymail.anonymization.models import (
    DEFAULT_SCOPE,
    Entry,
    MemoryRecord,
    MemorySnapshot,
)
from privacymail.anonymization.placeholders import (
    build_replacement_regex,
    max_placeholder_id,
)
from privacymail.anonymization.registry import PlaceholderRegistry
from privacymail.logging.logger import Log

PERSON = "PERSON"


class MemoryStore:
    """In-process store of remembered person placeholders."""

    def __init__(
        self,
        ttl_seconds: float = 600,
        max_entries: int = 400,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._ttl_seconds = ttl_seconds if ttl_seconds > 0 else 600
        self._max_entries = max_entries if max_entries > 0 else 400
        self._clock = clock
        self._scopes: dict[str, OrderedDict[str, MemoryRecord]] = {}
        self._locks: dict[str, threading.RLock] = {}
        self._guard = threading.Lock()

    def lock(self, scope: str | None) -> threading.RLock:
        """Return the lock serializing work on *scope*."""
        key = scope or DEFAULT_SCOPE
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            return lock

    def prime(
        self,
        scope: str | None,
        registry: PlaceholderRegistry,
        now: float | None = None,
    ) -> int:
        """Seed *registry* with every live record and return the max ID in use."""
        now = self._clock() if now is None else now
        max_id = 0
        with self.lock(scope):
            for value_key, record in self._live_records(scope, now):
                entry = Entry(
                    combined=record.placeholder,
                    parts=list(record.parts) or [record.placeholder],
                    types=set(record.types),
                    value=record.value,
                )
                registry.seed(value_key, entry)
                max_id = max(max_id, max_placeholder_id([entry.combined, *entry.parts]))
        return max_id

    def apply(self, scope: str | None, text: str, now: float | None = None) -> str:
        """Replace remembered values in *text* with their placeholders."""
        now = self._clock() if now is None else now
        with self.lock(scope):
            live = [record for _key, record in self._live_records(scope, now)]
            # Longest first so "Jane Doe" wins over a separately remembered "Jane".
            for record in sorted(live, key=lambda r: len(r.value), reverse=True):
                pattern = build_replacement_regex(record.value)
                if pattern is None:
                    continue
                text, count = pattern.subn(record.placeholder, text)
                if count:
                    record.updated_at = now
        return text

    def remember(
        self,
        scope: str | None,
        value_key: str,
        snapshot: MemorySnapshot,
        now: float | None = None,
    ) -> None:
        """Persist a PERSON snapshot, refreshing its age and insertion order."""
        if not snapshot.value or not snapshot.placeholder:
            return
        types = {entity_type.upper() for entity_type in snapshot.types if entity_type}
        if PERSON not in types:
            return
        key = value_key or snapshot.value.lower()
        now = self._clock() if now is None else now
        with self.lock(scope):
            records = self._records(scope)
            records.pop(key, None)
            records[key] = MemoryRecord(
                value=snapshot.value,
                placeholder=snapshot.placeholder,
                parts=list(snapshot.parts) or [snapshot.placeholder],
                types=types,
                updated_at=now,
            )
            self._evict_overflow(records)

    def remember_entry(
        self,
        scope: str | None,
        value_key: str,
        entry: Entry,
        now: float | None = None,
    ) -> None:
        """Snapshot an in-flight Entry and remember it."""
        self.remember(
            scope,
            value_key,
            MemorySnapshot(
                value=entry.value,
                placeholder=entry.combined,
                parts=tuple(entry.parts),
                types=frozenset(entry.types),
            ),
            now=now,
        )

    def clear(self, scope: str | None = None) -> None:
        """Forget one scope, or every scope when *scope* is None.

        Waits for calls in progress on the affected scopes to finish.
        """
        if scope is None:
            with self._guard:
                keys = sorted(set(self._locks) | set(self._scopes))
            with ExitStack() as stack:
                for key in keys:
                    stack.enter_context(self.lock(key))
                with self._guard:
                    self._scopes.clear()
            Log.info("Cleared memory for all scopes")
            return
        with self.lock(scope):
            with self._guard:
                self._scopes.pop(scope or DEFAULT_SCOPE, None)
        Log.info(f"Cleared memory for scope '{scope}'")

    def records(self, scope: str | None) -> dict[str, MemoryRecord]:
        """Copy of the raw records for *scope*, oldest first, without pruning."""
        with self.lock(scope):
            return dict(self._records(scope))

    def _records(self, scope: str | None) -> OrderedDict[str, MemoryRecord]:
        key = scope or DEFAULT_SCOPE
        with self._guard:
            records = self._scopes.get(key)
            if records is None:
                records = OrderedDict()
                self._scopes[key] = records
            return records

    def _live_records(
        self, scope: str | None, now: float
    ) -> Iterator[tuple[str, MemoryRecord]]:
        records = self._records(scope)
        for value_key, record in list(records.items()):
            if now - record.updated_at > self._ttl_seconds:
                del records[value_key]
                Log.debug("Dropped expired memory record")
                continue
            if PERSON not in record.types:
                del records[value_key]
                continue
            yield value_key, record

    def _evict_overflow(self, records: OrderedDict[str, MemoryRecord]) -> None:
        while len(records) > self._max_entries:
            records.popitem(last=False)
