"""
Unit tests for InMemoryMetadataStore, including concurrent access counting.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

import pytest

from dropbin.domain.content import Entry
from dropbin.domain.errors import AlreadyExistsError, EntryNotFoundError, EntryNotLiveError
from dropbin.infrastructure.memory_metadata_store import InMemoryMetadataStore

NOW = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def paste(entry_id: str, max_views: int = 0, ttl=timedelta(hours=1)) -> Entry:
    return Entry.new_paste(entry_id, "body", "text", "", ttl, max_views=max_views, now=NOW)


def file_entry(entry_id: str, storage_key: str) -> Entry:
    return Entry.new_file(
        entry_id, "a.bin", "application/octet-stream", 3, storage_key, timedelta(hours=1), now=NOW
    )


@pytest.fixture
def store():
    return InMemoryMetadataStore()


def test_create_and_get(store):
    entry = paste("a" * 22)
    store.create(entry)

    assert store.get("a" * 22) == entry
    assert len(store) == 1


def test_create_never_overwrites(store):
    store.create(paste("a" * 22))

    with pytest.raises(AlreadyExistsError):
        store.create(paste("a" * 22, max_views=9))

    assert store.get("a" * 22).max_access == 0


def test_get_unknown(store):
    with pytest.raises(EntryNotFoundError):
        store.get("missing")


def test_increment_returns_updated_entry(store):
    store.create(paste("a" * 22))

    first = store.increment_access_and_get("a" * 22, NOW)
    second = store.increment_access_and_get("a" * 22, NOW)

    assert (first.access_count, second.access_count) == (1, 2)
    assert store.get("a" * 22).access_count == 2


def test_increment_refuses_exhausted_without_counting(store):
    store.create(paste("a" * 22, max_views=1))
    store.increment_access_and_get("a" * 22, NOW)

    with pytest.raises(EntryNotLiveError):
        store.increment_access_and_get("a" * 22, NOW)

    assert store.get("a" * 22).access_count == 1


def test_increment_refuses_expired(store):
    store.create(paste("a" * 22))

    with pytest.raises(EntryNotLiveError):
        store.increment_access_and_get("a" * 22, NOW + timedelta(hours=1))

    assert store.get("a" * 22).access_count == 0


def test_increment_unknown(store):
    with pytest.raises(EntryNotFoundError):
        store.increment_access_and_get("missing", NOW)


def test_concurrent_increments_are_distinct(store):
    limit = 25
    store.create(paste("a" * 22, max_views=limit))
    barrier = threading.Barrier(limit + 5)

    def attempt(_):
        barrier.wait()
        try:
            return store.increment_access_and_get("a" * 22, NOW).access_count
        except EntryNotLiveError:
            return None

    with ThreadPoolExecutor(max_workers=limit + 5) as pool:
        results = list(pool.map(attempt, range(limit + 5)))

    counts = [r for r in results if r is not None]
    assert sorted(counts) == list(range(1, limit + 1))
    assert results.count(None) == 5
    assert store.get("a" * 22).access_count == limit


def test_list_expired_covers_time_and_count(store):
    store.create(paste("live" + "x" * 18))
    store.create(paste("old" + "x" * 19, ttl=timedelta(minutes=5)))
    store.create(paste("used" + "x" * 18, max_views=1))
    store.increment_access_and_get("used" + "x" * 18, NOW)

    expired = set(store.list_expired(NOW + timedelta(minutes=10)))

    assert expired == {"old" + "x" * 19, "used" + "x" * 18}


def test_list_expired_tolerates_deletes_while_iterating(store):
    for i in range(5):
        store.create(paste(f"{i}" * 22, ttl=timedelta(minutes=1)))

    for entry_id in store.list_expired(NOW + timedelta(hours=1)):
        store.delete(entry_id)

    assert len(store) == 0


def test_delete_is_idempotent(store):
    store.create(paste("a" * 22))

    store.delete("a" * 22)
    store.delete("a" * 22)

    with pytest.raises(EntryNotFoundError):
        store.get("a" * 22)


def test_iter_storage_keys_only_lists_files(store):
    store.create(file_entry("f" * 22, "ab" * 16))
    store.create(paste("p" * 22))

    assert list(store.iter_storage_keys()) == ["ab" * 16]
