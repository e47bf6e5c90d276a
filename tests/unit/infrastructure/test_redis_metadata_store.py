"""
Unit tests for RedisMetadataStore with a mocked RedisRepository.

Verifies how entries are flattened into script arguments and how script
replies are turned back into entries or errors. The Lua scripts themselves
run against a real server in tests/integration.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import pytest

from dropbin.domain.content import Entry
from dropbin.domain.errors import (
    AlreadyExistsError,
    EntryNotFoundError,
    EntryNotLiveError,
    StorageFailureError,
)
from dropbin.infrastructure.redis_metadata_store import RedisMetadataStore

NOW = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
NOW_MS = int(NOW.timestamp() * 1000)
ENTRY_ID = "k" * 22


def sample_entry(**overrides) -> Entry:
    kwargs = dict(
        entry_id=ENTRY_ID,
        original_name="a.txt",
        content_type="text/plain",
        size=5,
        storage_key="ab" * 16,
        ttl=timedelta(hours=1),
        max_downloads=2,
        now=NOW,
    )
    kwargs.update(overrides)
    return Entry.new_file(**kwargs)


def flat_reply(entry: Entry) -> list:
    flat = []
    for key, value in entry.to_dict().items():
        flat.extend([key.encode(), str(value).encode()])
    return flat


@pytest.fixture
def redis_repo():
    return Mock()


@pytest.fixture
def store(redis_repo):
    return RedisMetadataStore(redis_repo)


class TestCreate:
    def test_passes_keys_and_expiry_score(self, store, redis_repo):
        redis_repo.run_script.return_value = 1

        store.create(sample_entry())

        _, kwargs = redis_repo.run_script.call_args
        assert kwargs["keys"] == [f"entry:{ENTRY_ID}", "expiry"]
        args = kwargs["args"]
        assert args[0] == ENTRY_ID
        assert args[1] == NOW_MS + 3600 * 1000
        fields = dict(zip(args[2::2], args[3::2]))
        assert fields["storage_key"] == "ab" * 16
        assert fields["max_access"] == 2
        assert fields["expires_at_ms"] == NOW_MS + 3600 * 1000

    def test_existing_id_raises(self, store, redis_repo):
        redis_repo.run_script.return_value = 0

        with pytest.raises(AlreadyExistsError):
            store.create(sample_entry())


class TestGet:
    def test_missing_hash(self, store, redis_repo):
        redis_repo.hgetall.return_value = {}

        with pytest.raises(EntryNotFoundError):
            store.get(ENTRY_ID)

    def test_decodes_hash(self, store, redis_repo):
        entry = sample_entry()
        redis_repo.hgetall.return_value = {k: str(v) for k, v in entry.to_dict().items()}

        assert store.get(ENTRY_ID) == entry
        redis_repo.hgetall.assert_called_once_with(f"entry:{ENTRY_ID}")

    def test_corrupt_record_is_a_storage_failure(self, store, redis_repo):
        redis_repo.hgetall.return_value = {"kind": "file"}

        with pytest.raises(StorageFailureError):
            store.get(ENTRY_ID)


class TestIncrement:
    def test_missing(self, store, redis_repo):
        redis_repo.run_script.return_value = [0]

        with pytest.raises(EntryNotFoundError):
            store.increment_access_and_get(ENTRY_ID, NOW)

    def test_not_live(self, store, redis_repo):
        redis_repo.run_script.return_value = [-1]

        with pytest.raises(EntryNotLiveError):
            store.increment_access_and_get(ENTRY_ID, NOW)

    def test_success_returns_updated_entry(self, store, redis_repo):
        updated = sample_entry().with_access_recorded()
        redis_repo.run_script.return_value = [1, flat_reply(updated)]

        result = store.increment_access_and_get(ENTRY_ID, NOW)

        assert result.access_count == 1
        _, kwargs = redis_repo.run_script.call_args
        assert kwargs["keys"] == [f"entry:{ENTRY_ID}", "exhausted"]
        assert kwargs["args"] == [NOW_MS, ENTRY_ID]


class TestReaperSupport:
    def test_list_expired_merges_index_and_exhausted_set(self, store, redis_repo):
        redis_repo.zscan_members.return_value = iter(
            [("old", float(NOW_MS - 1)), ("due", float(NOW_MS)), ("future", float(NOW_MS + 1))]
        )
        redis_repo.sscan_members.return_value = iter(["used", "old"])

        assert list(store.list_expired(NOW)) == ["old", "due", "used"]

    def test_delete_unlinks_indexes(self, store, redis_repo):
        store.delete(ENTRY_ID)

        redis_repo.delete_and_unlink.assert_called_once_with(
            f"entry:{ENTRY_ID}",
            zset_members=[("expiry", ENTRY_ID)],
            set_members=[("exhausted", ENTRY_ID)],
        )

    def test_iter_storage_keys_skips_pastes(self, store, redis_repo):
        redis_repo.scan_keys.return_value = iter(["entry:a", "entry:b"])
        redis_repo.hget_many.side_effect = lambda keys, field: ["ab" * 16, None]

        assert list(store.iter_storage_keys()) == ["ab" * 16]
        redis_repo.scan_keys.assert_called_once_with("entry:*")
        redis_repo.hget_many.assert_any_call(["entry:a", "entry:b"], "storage_key")

    def test_iter_storage_keys_batches_lookups(self, store, redis_repo):
        keys = [f"entry:{i}" for i in range(store.STORAGE_KEY_BATCH + 1)]
        redis_repo.scan_keys.return_value = iter(keys)
        redis_repo.hget_many.side_effect = lambda batch, field: [f"key-{k}" for k in batch]

        found = list(store.iter_storage_keys())

        assert len(found) == len(keys)
        batch_sizes = [len(c.args[0]) for c in redis_repo.hget_many.call_args_list]
        assert batch_sizes == [store.STORAGE_KEY_BATCH, 1]

    def test_health_check_pings(self, store, redis_repo):
        redis_repo.ping.return_value = True

        assert store.health_check() is True
