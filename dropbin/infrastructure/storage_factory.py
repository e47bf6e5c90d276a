"""
Storage Factory

Factory for creating the blob store and metadata store implementations.

The application layer only sees the IBlobStore and MetadataStore interfaces;
which concrete adapters back them is decided here from StoreConfig.
"""

import logging
from typing import Optional

from dropbin.domain.content.repositories import MetadataStore
from dropbin.domain.content.storage_repository import IBlobStore

from .local_blob_store import LocalBlobStore
from .memory_metadata_store import InMemoryMetadataStore
from .redis_metadata_store import RedisMetadataStore
from .redis_repository import RedisRepository

logger = logging.getLogger(__name__)

METADATA_BACKENDS = ("redis", "memory")


class StorageFactory:
    """Factory that returns storage adapters for the configured backends."""

    @staticmethod
    def create_blob_store(base_path: str) -> IBlobStore:
        """
        Create local filesystem blob store.

        Args:
            base_path: Root directory for blobs

        Returns:
            LocalBlobStore instance

        Raises:
            RuntimeError: If local storage initialization fails
        """
        try:
            store = LocalBlobStore(base_path)
        except OSError as e:
            raise RuntimeError(f"Failed to initialize local blob storage: {e}") from e
        logger.info(f"Storage factory: using local blob storage at {base_path}")
        return store

    @staticmethod
    def create_metadata_store(
        backend: str, redis_repository: Optional[RedisRepository] = None
    ) -> MetadataStore:
        """
        Create the metadata store for the given backend name.

        Args:
            backend: "redis" or "memory"
            redis_repository: Required for the redis backend

        Returns:
            MetadataStore implementation

        Raises:
            ValueError: If the backend is unknown or redis is selected without a repository
        """
        if backend == "memory":
            logger.info("Storage factory: using in-memory metadata store")
            return InMemoryMetadataStore()

        if backend == "redis":
            if redis_repository is None:
                raise ValueError("Redis metadata backend requires a RedisRepository")
            logger.info("Storage factory: using Redis metadata store")
            return RedisMetadataStore(redis_repository)

        raise ValueError(
            f"Unknown metadata backend {backend!r}, expected one of {', '.join(METADATA_BACKENDS)}"
        )
