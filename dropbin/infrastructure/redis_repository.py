"""
Redis Repository Base Class

Thin wrapper around a redis-py client that prefixes keys, caches Lua
scripts, and translates Redis errors into StorageFailureError.
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

import redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError

from dropbin.domain.errors import StorageFailureError

logger = logging.getLogger(__name__)


def _decode(value) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return value


@contextmanager
def translate_redis_errors(operation: str):
    """Re-raise any redis-py error as StorageFailureError."""
    try:
        yield
    except RedisError as e:
        logger.error(f"Redis error during {operation}: {e}")
        raise StorageFailureError(f"Redis error during {operation}: {e}", e) from e


class RedisRepository:
    """Base Redis repository with key prefixing and atomic script execution."""

    def __init__(self, redis_client: redis.Redis, key_prefix: str = ""):
        self.redis = redis_client
        self.key_prefix = key_prefix
        self._scripts: Dict[str, Any] = {}

    def _make_key(self, key: str) -> str:
        """Create a prefixed key for Redis storage."""
        return f"{self.key_prefix}:{key}" if self.key_prefix else key

    def _strip_prefix(self, key: str) -> str:
        if self.key_prefix and key.startswith(self.key_prefix + ":"):
            return key[len(self.key_prefix) + 1:]
        return key

    def run_script(self, lua_script: str, keys: Sequence[str], args: Sequence) -> object:
        """
        Execute a Lua script atomically on the server.

        Scripts are registered once and then invoked by SHA, falling back to
        EVAL transparently if the server script cache was flushed.

        Args:
            lua_script: Lua source
            keys: Unprefixed key names passed as KEYS
            args: Values passed as ARGV

        Returns:
            Raw script reply
        """
        script = self._scripts.get(lua_script)
        if script is None:
            script = self.redis.register_script(lua_script)
            self._scripts[lua_script] = script
        with translate_redis_errors("script execution"):
            return script(keys=[self._make_key(k) for k in keys], args=list(args))

    def hgetall(self, key: str) -> Dict[str, str]:
        """Get all fields of a hash as decoded strings (empty dict if missing)."""
        with translate_redis_errors("HGETALL"):
            data = self.redis.hgetall(self._make_key(key))
        return {_decode(k): _decode(v) for k, v in data.items()}

    def hget_many(self, keys: Sequence[str], field: str) -> List[Optional[str]]:
        """Read one field from many hashes in a single round trip (None where missing)."""
        if not keys:
            return []
        with translate_redis_errors("HGET"):
            pipe = self.redis.pipeline(transaction=False)
            for key in keys:
                pipe.hget(self._make_key(key), field)
            values = pipe.execute()
        return [_decode(v) if v is not None else None for v in values]

    def delete_and_unlink(
        self,
        key: str,
        zset_members: Sequence[Tuple[str, str]] = (),
        set_members: Sequence[Tuple[str, str]] = (),
    ) -> None:
        """
        Delete a key and drop its references from index sets in one transaction.

        Args:
            key: Unprefixed key to delete
            zset_members: (sorted_set_key, member) pairs to ZREM
            set_members: (set_key, member) pairs to SREM
        """
        with translate_redis_errors("DELETE"):
            pipe = self.redis.pipeline(transaction=True)
            pipe.delete(self._make_key(key))
            for zset_key, member in zset_members:
                pipe.zrem(self._make_key(zset_key), member)
            for set_key, member in set_members:
                pipe.srem(self._make_key(set_key), member)
            pipe.execute()

    def scan_keys(self, pattern: str, count: int = 500) -> Iterator[str]:
        """Lazily iterate keys matching a pattern (returned without prefix)."""
        with translate_redis_errors("SCAN"):
            for key in self.redis.scan_iter(match=self._make_key(pattern), count=count):
                yield self._strip_prefix(_decode(key))

    def zscan_members(self, key: str, count: int = 500) -> Iterator[Tuple[str, float]]:
        """Lazily iterate (member, score) pairs of a sorted set."""
        with translate_redis_errors("ZSCAN"):
            for member, score in self.redis.zscan_iter(self._make_key(key), count=count):
                yield _decode(member), score

    def sscan_members(self, key: str, count: int = 500) -> Iterator[str]:
        """Lazily iterate members of a set."""
        with translate_redis_errors("SSCAN"):
            for member in self.redis.sscan_iter(self._make_key(key), count=count):
                yield _decode(member)

    def ping(self) -> bool:
        try:
            return bool(self.redis.ping())
        except RedisConnectionError:
            return False


def pairs_to_dict(flat: List) -> Dict[str, str]:
    """Convert a flat [k1, v1, k2, v2, ...] script reply into a dict."""
    it = iter(flat)
    return {_decode(k): _decode(v) for k, v in zip(it, it)}


class RedisConnectionManager:
    """Manages Redis connection with connection pooling."""

    def __init__(self, host: str = 'localhost', port: int = 6379, db: int = 0,
                 max_connections: int = 20, decode_responses: bool = False,
                 password: Optional[str] = None):
        self.connection_pool = redis.ConnectionPool(
            host=host,
            port=port,
            db=db,
            password=password,
            max_connections=max_connections,
            decode_responses=decode_responses,
            retry_on_timeout=True,
            socket_keepalive=True,
        )
        self._client = None

    @property
    def client(self) -> redis.Redis:
        """Get Redis client instance with connection pooling."""
        if self._client is None:
            self._client = redis.Redis(connection_pool=self.connection_pool)
        return self._client

    def health_check(self) -> bool:
        """Check if Redis connection is healthy."""
        try:
            return self.client.ping()
        except RedisConnectionError:
            return False

