"""
In-Memory Metadata Store

Process-local implementation of MetadataStore for single-process
deployments and tests.

Counter updates serialize through one lock per entry ID; a short-lived guard
lock only protects the lock table and the record map, so requests against
different entries never wait on each other's increments.
"""

import threading
from datetime import datetime
from typing import Dict, Iterator, List

from dropbin.domain.content.entities import Entry
from dropbin.domain.content.repositories import MetadataStore
from dropbin.domain.errors import (
    AlreadyExistsError,
    EntryNotFoundError,
    EntryNotLiveError,
)


class InMemoryMetadataStore(MetadataStore):
    """
    Dictionary-backed metadata store.

    Entries are stored as immutable snapshots: every mutation replaces the
    stored Entry object, so a reader holding a previous snapshot never sees
    it change underneath.
    """

    def __init__(self):
        self._entries: Dict[str, Entry] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def _lock_for(self, entry_id: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(entry_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[entry_id] = lock
            return lock

    def create(self, entry: Entry) -> None:
        with self._guard:
            if entry.entry_id in self._entries:
                raise AlreadyExistsError(f"Entry already exists: {entry.entry_id}")
            self._entries[entry.entry_id] = entry
            self._locks.setdefault(entry.entry_id, threading.Lock())

    def get(self, entry_id: str) -> Entry:
        entry = self._entries.get(entry_id)
        if entry is None:
            raise EntryNotFoundError(f"Entry not found: {entry_id}")
        return entry

    def increment_access_and_get(self, entry_id: str, now: datetime) -> Entry:
        with self._lock_for(entry_id):
            entry = self._entries.get(entry_id)
            if entry is None:
                raise EntryNotFoundError(f"Entry not found: {entry_id}")
            if not entry.is_live(now):
                raise EntryNotLiveError(f"Entry is no longer live: {entry_id}")

            updated = entry.with_access_recorded()
            with self._guard:
                # A concurrent delete wins; do not resurrect the record
                if entry_id not in self._entries:
                    raise EntryNotFoundError(f"Entry not found: {entry_id}")
                self._entries[entry_id] = updated
            return updated

    def list_expired(self, now: datetime) -> Iterator[str]:
        with self._guard:
            snapshot: List[Entry] = list(self._entries.values())
        for entry in snapshot:
            if not entry.is_live(now):
                yield entry.entry_id

    def delete(self, entry_id: str) -> None:
        with self._guard:
            self._entries.pop(entry_id, None)
            self._locks.pop(entry_id, None)

    def iter_storage_keys(self) -> Iterator[str]:
        with self._guard:
            snapshot = list(self._entries.values())
        for entry in snapshot:
            if entry.storage_key:
                yield entry.storage_key

    def health_check(self) -> bool:
        return True

    def __len__(self) -> int:
        return len(self._entries)
