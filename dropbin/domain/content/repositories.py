"""
Metadata Store Interface

Abstract repository for entry metadata. The metadata store is the single
source of truth for liveness and the only place access counters change.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterator

from .entities import Entry


class MetadataStore(ABC):
    """
    Abstract repository interface for entry metadata persistence.

    Contract Guarantees:
    - create() never overwrites an existing record
    - increment_access_and_get() is atomic per entry: concurrent callers on
      the same ID each observe a distinct count and no update is lost
    - delete() is idempotent
    - Mutations on one entry do not block reads of other entries
    """

    @abstractmethod
    def create(self, entry: Entry) -> None:
        """
        Insert a new entry under entry.entry_id.

        Raises:
            AlreadyExistsError: If the ID is already taken
            StorageFailureError: If the backend cannot be reached
        """
        pass  # pragma: no cover

    @abstractmethod
    def get(self, entry_id: str) -> Entry:
        """
        Load an entry regardless of liveness.

        Raises:
            EntryNotFoundError: If no record exists
            StorageFailureError: If the backend cannot be reached
        """
        pass  # pragma: no cover

    @abstractmethod
    def increment_access_and_get(self, entry_id: str, now: datetime) -> Entry:
        """
        Atomically record one access and return the updated entry.

        The liveness check and the increment happen in one indivisible step:
        an entry that is expired or exhausted as of `now` is left untouched.

        Args:
            entry_id: Entry identifier
            now: Reference time for the expiry check

        Returns:
            Entry with access_count already incremented

        Raises:
            EntryNotFoundError: If no record exists
            EntryNotLiveError: If the entry is expired or exhausted
            StorageFailureError: If the backend cannot be reached
        """
        pass  # pragma: no cover

    @abstractmethod
    def list_expired(self, now: datetime) -> Iterator[str]:
        """
        Lazily yield IDs of entries that are not live as of `now`.

        Used only by the expiration reaper. The sequence is finite and safe to
        consume while the caller deletes the yielded entries.
        """
        pass  # pragma: no cover

    @abstractmethod
    def delete(self, entry_id: str) -> None:
        """Remove an entry. Deleting a missing entry is not an error."""
        pass  # pragma: no cover

    @abstractmethod
    def iter_storage_keys(self) -> Iterator[str]:
        """Yield the storage keys referenced by all file entries."""
        pass  # pragma: no cover

    @abstractmethod
    def health_check(self) -> bool:
        """Return True if the backend is reachable."""
        pass  # pragma: no cover
