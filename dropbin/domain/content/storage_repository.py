"""
Blob Store Interface

Abstract interface for byte payload storage.
This abstraction keeps the content service independent of where file bytes
actually live (local filesystem today, object storage later).
"""

from abc import ABC, abstractmethod
from datetime import timedelta
from typing import BinaryIO, Iterator, Optional

from .entities import StoredBlob


class BlobStream(ABC):
    """
    Lazy, single-pass, forward-only byte sequence over one stored blob.

    Iterating yields bytes chunks. The stream owns one open read handle that
    is released by close(), by leaving a `with` block, or when iteration is
    exhausted. close() is idempotent.
    """

    @abstractmethod
    def __iter__(self) -> Iterator[bytes]:
        pass  # pragma: no cover

    @abstractmethod
    def close(self) -> None:
        pass  # pragma: no cover

    @property
    @abstractmethod
    def closed(self) -> bool:
        pass  # pragma: no cover

    def read_all(self) -> bytes:
        """Drain the stream into memory. Meant for small blobs and tests."""
        with self:
            return b"".join(self)

    def __enter__(self) -> "BlobStream":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class IBlobStore(ABC):
    """
    Unified interface for blob storage operations.

    Contract Guarantees:
    - put() consumes its input in bounded chunks; memory use does not grow
      with payload size
    - put() is all-or-nothing: a failed write leaves nothing retrievable and
      no partial data behind
    - get() raises BlobNotFoundError for unknown or reclaimed keys
    - delete() is idempotent
    - Storage keys are opaque and generated by the store
    """

    @abstractmethod
    def put(self, content: BinaryIO, max_bytes: Optional[int] = None) -> StoredBlob:
        """
        Persist a byte stream under a new storage key.

        Args:
            content: Readable binary file-like object, read until EOF
            max_bytes: Optional size ceiling

        Returns:
            StoredBlob with the new key and the number of bytes written

        Raises:
            PayloadTooLargeError: If more than max_bytes were supplied
            StorageFailureError: If the write fails
        """
        pass  # pragma: no cover

    @abstractmethod
    def get(self, storage_key: str) -> BlobStream:
        """
        Open a blob for streaming.

        Raises:
            BlobNotFoundError: If the key is absent or already reclaimed
        """
        pass  # pragma: no cover

    @abstractmethod
    def delete(self, storage_key: str) -> None:
        """
        Delete a blob. Deleting a missing key is not an error.

        Raises:
            StorageFailureError: If an existing blob cannot be removed
        """
        pass  # pragma: no cover

    @abstractmethod
    def iter_keys(self, older_than: Optional[timedelta] = None) -> Iterator[str]:
        """Yield stored keys, optionally only those last written before now - older_than."""
        pass  # pragma: no cover

    @abstractmethod
    def health_check(self) -> bool:
        pass  # pragma: no cover

    def cleanup_incoming(self, older_than: timedelta) -> int:
        """
        Remove abandoned in-progress writes older than older_than.

        Stores without a staging area have nothing to clean and return 0.
        """
        return 0
