"""Infrastructure layer for Redis, the local filesystem and other adapters."""

from .local_blob_store import LocalBlobStore, LocalBlobStream
from .memory_metadata_store import InMemoryMetadataStore
from .redis_metadata_store import RedisMetadataStore
from .redis_repository import RedisConnectionManager, RedisRepository
from .storage_factory import StorageFactory

__all__ = [
    "InMemoryMetadataStore",
    "LocalBlobStore",
    "LocalBlobStream",
    "RedisConnectionManager",
    "RedisMetadataStore",
    "RedisRepository",
    "StorageFactory",
]
