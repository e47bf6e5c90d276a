"""
Local Blob Store Implementation

Concrete implementation of IBlobStore for the local filesystem.
Blobs are written to a temporary `.partial` file in chunks and renamed into
place once complete, so a reader either sees the whole blob or nothing.
"""

import logging
import os
import re
import secrets
import time
from datetime import timedelta
from pathlib import Path
from typing import BinaryIO, Iterator, Optional

from dropbin.domain.content.entities import StoredBlob
from dropbin.domain.content.storage_repository import BlobStream, IBlobStore
from dropbin.domain.errors import (
    BlobNotFoundError,
    PayloadTooLargeError,
    StorageFailureError,
)

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024

_KEY_PATTERN = re.compile(r"^[0-9a-f]{32}$")


class LocalBlobStream(BlobStream):
    """
    Chunked reader over one open blob file.

    The file handle is opened by LocalBlobStore.get() and released on close(),
    on exhaustion, or when the WSGI server closes the response iterable after
    a client disconnect.
    """

    def __init__(self, handle: BinaryIO, chunk_size: int = CHUNK_SIZE):
        self._handle = handle
        self._chunk_size = chunk_size
        self._started = False

    def __iter__(self) -> Iterator[bytes]:
        if self._started:
            raise RuntimeError("BlobStream is single-pass and was already consumed")
        self._started = True
        return self._chunks()

    def _chunks(self) -> Iterator[bytes]:
        try:
            while not self._handle.closed:
                chunk = self._handle.read(self._chunk_size)
                if not chunk:
                    break
                yield chunk
        finally:
            self.close()

    def close(self) -> None:
        if not self._handle.closed:
            self._handle.close()

    @property
    def closed(self) -> bool:
        return self._handle.closed


class LocalBlobStore(IBlobStore):
    """
    Local filesystem implementation of IBlobStore.

    Layout:
        <base_path>/<key[:2]>/<key>      complete blobs
        <base_path>/.incoming/<key>.partial   writes in progress

    Thread Safety:
        Every put() writes to its own uniquely named temporary file and
        publishes it with an atomic os.replace(). Readers hold their own file
        handle, so deleting a blob does not disturb a download in progress on
        POSIX filesystems.

    Attributes:
        base_path: Root directory for blob storage
    """

    def __init__(self, base_path: str = "/tmp/dropbin/blobs", chunk_size: int = CHUNK_SIZE):
        """
        Initialize the local blob store.

        Args:
            base_path: Root directory (created if missing)
            chunk_size: Read/write chunk size in bytes
        """
        self.base_path = Path(base_path)
        self.incoming_path = self.base_path / ".incoming"
        self.chunk_size = chunk_size
        self._ensure_base_directory()

    def _ensure_base_directory(self) -> None:
        """
        Ensure the storage directories exist.

        Raises:
            PermissionError: If insufficient permissions to create directory
            OSError: If directory creation fails for other reasons
        """
        try:
            self.base_path.mkdir(parents=True, exist_ok=True)
            self.incoming_path.mkdir(parents=True, exist_ok=True)
        except PermissionError as e:
            raise PermissionError(
                f"Insufficient permissions to create storage directory: {self.base_path}"
            ) from e
        except OSError as e:
            raise OSError(f"Failed to create storage directory: {self.base_path}") from e

    def _path_for(self, storage_key: str) -> Optional[Path]:
        if not storage_key or not _KEY_PATTERN.match(storage_key):
            return None
        return self.base_path / storage_key[:2] / storage_key

    @staticmethod
    def _new_key() -> str:
        return secrets.token_hex(16)

    # IBlobStore interface methods

    def put(self, content: BinaryIO, max_bytes: Optional[int] = None) -> StoredBlob:
        """
        Stream content into a new blob.

        Reads and writes in chunk_size pieces. On any failure the partial
        file is removed before the error propagates.
        """
        storage_key = self._new_key()
        partial_path = self.incoming_path / f"{storage_key}.partial"
        final_path = self._path_for(storage_key)
        written = 0

        try:
            with open(partial_path, "wb") as f:
                while True:
                    chunk = content.read(self.chunk_size)
                    if not chunk:
                        break
                    written += len(chunk)
                    if max_bytes is not None and written > max_bytes:
                        raise PayloadTooLargeError(
                            f"Blob exceeds limit of {max_bytes} bytes"
                        )
                    f.write(chunk)
                f.flush()
                os.fsync(f.fileno())

            final_path.parent.mkdir(parents=True, exist_ok=True)
            os.replace(partial_path, final_path)

        except PayloadTooLargeError:
            self._discard(partial_path)
            raise
        except (IOError, OSError, ValueError) as e:
            self._discard(partial_path)
            raise StorageFailureError(f"Failed to write blob: {e}", e) from e
        except Exception:
            # Source stream errors (e.g. client disconnect) propagate unchanged
            self._discard(partial_path)
            raise

        logger.debug(f"Stored blob {storage_key[:8]} ({written} bytes)")
        return StoredBlob(storage_key=storage_key, size=written)

    def get(self, storage_key: str) -> LocalBlobStream:
        path = self._path_for(storage_key)
        if path is None:
            raise BlobNotFoundError(f"Invalid storage key: {storage_key!r}")

        try:
            handle = open(path, "rb")
        except FileNotFoundError as e:
            raise BlobNotFoundError(f"Blob not found: {storage_key[:8]}", e) from e
        except (IOError, OSError) as e:
            raise StorageFailureError(f"Failed to open blob {storage_key[:8]}: {e}", e) from e

        return LocalBlobStream(handle, self.chunk_size)

    def delete(self, storage_key: str) -> None:
        path = self._path_for(storage_key)
        if path is None:
            return

        try:
            path.unlink()
            logger.debug(f"Deleted blob {storage_key[:8]}")
        except FileNotFoundError:
            pass
        except (IOError, OSError) as e:
            raise StorageFailureError(f"Failed to delete blob {storage_key[:8]}: {e}", e) from e

    def iter_keys(self, older_than: Optional[timedelta] = None) -> Iterator[str]:
        cutoff = None
        if older_than is not None:
            cutoff = time.time() - older_than.total_seconds()

        for shard in self.base_path.iterdir():
            if shard == self.incoming_path or not shard.is_dir():
                continue
            for item in shard.iterdir():
                if not _KEY_PATTERN.match(item.name):
                    continue
                if cutoff is not None:
                    try:
                        if item.stat().st_mtime >= cutoff:
                            continue
                    except FileNotFoundError:
                        continue
                yield item.name

    def cleanup_incoming(self, older_than: timedelta) -> int:
        """
        Remove stale `.partial` files left by interrupted processes.

        Returns:
            Number of files removed
        """
        cutoff = time.time() - older_than.total_seconds()
        count = 0
        for item in self.incoming_path.iterdir():
            try:
                if item.stat().st_mtime < cutoff:
                    item.unlink()
                    count += 1
                    logger.info(f"Removed stale partial upload: {item.name}")
            except FileNotFoundError:
                continue
            except OSError as e:
                logger.warning(f"Failed to remove stale partial upload {item}: {e}")
        return count

    def health_check(self) -> bool:
        return self.base_path.is_dir() and os.access(self.base_path, os.W_OK)

    @staticmethod
    def _discard(path: Path) -> None:
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error(f"Failed to remove partial blob {path}: {e}")
