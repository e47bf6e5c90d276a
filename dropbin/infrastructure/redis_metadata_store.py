"""
Redis Metadata Store Implementation

Concrete Redis-based implementation of the MetadataStore interface.

Layout (all keys under the repository prefix):
    entry:<id>   hash holding the flattened Entry plus expires_at_ms
    expiry       sorted set, member = id, score = expires_at_ms
    exhausted    set of ids whose access_count reached max_access

Keys carry no Redis TTL. Records stay until the reaper or an explicit delete
removes them, so the blob reference is never lost before the blob is reclaimed.
"""

import logging
from datetime import datetime
from typing import Iterator, List

from dropbin.domain.content.entities import Entry
from dropbin.domain.content.repositories import MetadataStore
from dropbin.domain.errors import (
    AlreadyExistsError,
    EntryNotFoundError,
    EntryNotLiveError,
    StorageFailureError,
)

from .redis_repository import RedisRepository, pairs_to_dict

logger = logging.getLogger(__name__)


# KEYS[1] entry hash, KEYS[2] expiry index
# ARGV[1] id, ARGV[2] expires_at_ms, ARGV[3..] field/value pairs
_CREATE_SCRIPT = """
if redis.call('EXISTS', KEYS[1]) == 1 then
    return 0
end
redis.call('HSET', KEYS[1], unpack(ARGV, 3))
redis.call('ZADD', KEYS[2], ARGV[2], ARGV[1])
return 1
"""

# KEYS[1] entry hash, KEYS[2] exhausted set
# ARGV[1] now_ms, ARGV[2] id
# Returns {0} when missing, {-1} when not live, {1, HGETALL} after incrementing
_INCREMENT_SCRIPT = """
if redis.call('EXISTS', KEYS[1]) == 0 then
    return {0}
end
local expires_at = tonumber(redis.call('HGET', KEYS[1], 'expires_at_ms'))
local count = tonumber(redis.call('HGET', KEYS[1], 'access_count'))
local max = tonumber(redis.call('HGET', KEYS[1], 'max_access'))
if tonumber(ARGV[1]) >= expires_at or (max > 0 and count >= max) then
    return {-1}
end
count = redis.call('HINCRBY', KEYS[1], 'access_count', 1)
if max > 0 and count >= max then
    redis.call('SADD', KEYS[2], ARGV[2])
end
return {1, redis.call('HGETALL', KEYS[1])}
"""


def _to_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


class RedisMetadataStore(MetadataStore):
    """
    Redis-based implementation of MetadataStore.

    Creation and the check-and-increment run as Lua scripts, so each one is a
    single atomic step on the server regardless of how many application
    processes share the database.
    """

    ENTRY_PREFIX = "entry"
    EXPIRY_INDEX = "expiry"
    EXHAUSTED_SET = "exhausted"
    STORAGE_KEY_BATCH = 500

    def __init__(self, redis_repository: RedisRepository):
        """
        Initialize with Redis repository.

        Args:
            redis_repository: RedisRepository instance from infrastructure layer
        """
        self.redis_repo = redis_repository

    def _entry_key(self, entry_id: str) -> str:
        return f"{self.ENTRY_PREFIX}:{entry_id}"

    def _to_entry(self, entry_id: str, data: dict) -> Entry:
        try:
            return Entry.from_dict(data)
        except (KeyError, ValueError, TypeError) as e:
            logger.error(f"Corrupt metadata record for {entry_id[:8]}: {e}")
            raise StorageFailureError(f"Corrupt metadata record: {entry_id}", e) from e

    def create(self, entry: Entry) -> None:
        fields = []
        for name, value in entry.to_dict().items():
            fields.extend([name, value])
        expires_at_ms = _to_ms(entry.expires_at)
        fields.extend(["expires_at_ms", expires_at_ms])

        created = self.redis_repo.run_script(
            _CREATE_SCRIPT,
            keys=[self._entry_key(entry.entry_id), self.EXPIRY_INDEX],
            args=[entry.entry_id, expires_at_ms, *fields],
        )
        if not created:
            raise AlreadyExistsError(f"Entry already exists: {entry.entry_id}")

    def get(self, entry_id: str) -> Entry:
        data = self.redis_repo.hgetall(self._entry_key(entry_id))
        if not data:
            raise EntryNotFoundError(f"Entry not found: {entry_id}")
        return self._to_entry(entry_id, data)

    def increment_access_and_get(self, entry_id: str, now: datetime) -> Entry:
        reply = self.redis_repo.run_script(
            _INCREMENT_SCRIPT,
            keys=[self._entry_key(entry_id), self.EXHAUSTED_SET],
            args=[_to_ms(now), entry_id],
        )
        status = int(reply[0])
        if status == 0:
            raise EntryNotFoundError(f"Entry not found: {entry_id}")
        if status < 0:
            raise EntryNotLiveError(f"Entry is no longer live: {entry_id}")
        return self._to_entry(entry_id, pairs_to_dict(reply[1]))

    def list_expired(self, now: datetime) -> Iterator[str]:
        now_ms = _to_ms(now)
        seen = set()
        for entry_id, score in self.redis_repo.zscan_members(self.EXPIRY_INDEX):
            if score <= now_ms:
                seen.add(entry_id)
                yield entry_id
        for entry_id in self.redis_repo.sscan_members(self.EXHAUSTED_SET):
            if entry_id not in seen:
                seen.add(entry_id)
                yield entry_id

    def delete(self, entry_id: str) -> None:
        self.redis_repo.delete_and_unlink(
            self._entry_key(entry_id),
            zset_members=[(self.EXPIRY_INDEX, entry_id)],
            set_members=[(self.EXHAUSTED_SET, entry_id)],
        )

    def iter_storage_keys(self) -> Iterator[str]:
        batch: List[str] = []
        for key in self.redis_repo.scan_keys(f"{self.ENTRY_PREFIX}:*"):
            batch.append(key)
            if len(batch) >= self.STORAGE_KEY_BATCH:
                yield from self._storage_keys_for(batch)
                batch = []
        if batch:
            yield from self._storage_keys_for(batch)

    def _storage_keys_for(self, keys: List[str]) -> Iterator[str]:
        for storage_key in self.redis_repo.hget_many(keys, "storage_key"):
            if storage_key:
                yield storage_key

    def health_check(self) -> bool:
        return self.redis_repo.ping()
