"""
Content Entities

Domain entities for stored files and pastes.

An Entry is a common envelope (identity, lifetime, access counters) tagged
with an EntryKind and carrying exactly one payload: FilePayload for uploaded
files, PastePayload for text snippets.
"""

from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

from .value_objects import EntryKind


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class FilePayload:
    """Payload of an uploaded file. storage_key never leaves the service."""

    original_name: str
    content_type: str
    size: int
    storage_key: str


@dataclass(frozen=True)
class PastePayload:
    """Payload of a text paste. Content is stored inline with the metadata."""

    content: str
    language: str = "text"
    title: str = ""


Payload = Union[FilePayload, PastePayload]

_PAYLOAD_TYPES = {
    EntryKind.FILE: FilePayload,
    EntryKind.PASTE: PastePayload,
}


@dataclass
class Entry:
    """
    Entity representing a stored file or paste with lifetime tracking.

    An entry is live while now < expires_at and, when max_access is set,
    access_count < max_access. A max_access of 0 means unlimited.
    """

    entry_id: str
    kind: EntryKind
    payload: Payload
    created_at: datetime
    expires_at: datetime
    access_count: int = 0
    max_access: int = 0

    def __post_init__(self):
        expected = _PAYLOAD_TYPES[self.kind]
        if not isinstance(self.payload, expected):
            raise ValueError(
                f"{self.kind.value} entry requires {expected.__name__}, "
                f"got {type(self.payload).__name__}"
            )
        if self.expires_at <= self.created_at:
            raise ValueError("expires_at must be later than created_at")
        if self.access_count < 0:
            raise ValueError("access_count cannot be negative")
        if self.max_access < 0:
            raise ValueError("max_access cannot be negative")

    @classmethod
    def new_file(
        cls,
        entry_id: str,
        original_name: str,
        content_type: str,
        size: int,
        storage_key: str,
        ttl: timedelta,
        max_downloads: int = 0,
        now: Optional[datetime] = None,
    ) -> "Entry":
        """
        Factory method for a freshly uploaded file.

        Args:
            entry_id: Public identifier
            original_name: Sanitized client file name
            content_type: MIME type reported by the client
            size: Bytes actually written to the blob store
            storage_key: Blob store locator
            ttl: Lifetime from now
            max_downloads: Download cap, 0 for unlimited
            now: Creation time (defaults to current UTC time)

        Returns:
            New Entry of kind FILE
        """
        created_at = now or utcnow()
        return cls(
            entry_id=entry_id,
            kind=EntryKind.FILE,
            payload=FilePayload(
                original_name=original_name,
                content_type=content_type,
                size=size,
                storage_key=storage_key,
            ),
            created_at=created_at,
            expires_at=created_at + ttl,
            max_access=max_downloads,
        )

    @classmethod
    def new_paste(
        cls,
        entry_id: str,
        content: str,
        language: str,
        title: str,
        ttl: timedelta,
        max_views: int = 0,
        now: Optional[datetime] = None,
    ) -> "Entry":
        """Factory method for a freshly submitted paste."""
        created_at = now or utcnow()
        return cls(
            entry_id=entry_id,
            kind=EntryKind.PASTE,
            payload=PastePayload(content=content, language=language, title=title),
            created_at=created_at,
            expires_at=created_at + ttl,
            max_access=max_views,
        )

    # Lifetime

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or utcnow()) >= self.expires_at

    def is_exhausted(self) -> bool:
        return self.max_access > 0 and self.access_count >= self.max_access

    def is_live(self, now: Optional[datetime] = None) -> bool:
        """Check whether the entry may currently be served."""
        return not self.is_expired(now) and not self.is_exhausted()

    def with_access_recorded(self) -> "Entry":
        """Return a copy with access_count incremented by one."""
        return replace(self, access_count=self.access_count + 1)

    @property
    def storage_key(self) -> Optional[str]:
        if isinstance(self.payload, FilePayload):
            return self.payload.storage_key
        return None

    # Serialization

    def to_dict(self) -> dict:
        """Convert to a flat dictionary for persistence."""
        data = {
            "id": self.entry_id,
            "kind": self.kind.value,
            "created_at": self.created_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
            "access_count": self.access_count,
            "max_access": self.max_access,
        }
        if isinstance(self.payload, FilePayload):
            data.update(
                original_name=self.payload.original_name,
                content_type=self.payload.content_type,
                size=self.payload.size,
                storage_key=self.payload.storage_key,
            )
        else:
            data.update(
                content=self.payload.content,
                language=self.payload.language,
                title=self.payload.title,
            )
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Entry":
        """Create an Entry from a dictionary produced by to_dict()."""
        kind = EntryKind(data["kind"])
        if kind is EntryKind.FILE:
            payload = FilePayload(
                original_name=data["original_name"],
                content_type=data["content_type"],
                size=int(data["size"]),
                storage_key=data["storage_key"],
            )
        else:
            payload = PastePayload(
                content=data["content"],
                language=data.get("language") or "text",
                title=data.get("title") or "",
            )
        return cls(
            entry_id=data["id"],
            kind=kind,
            payload=payload,
            created_at=_parse_timestamp(data["created_at"]),
            expires_at=_parse_timestamp(data["expires_at"]),
            access_count=int(data.get("access_count", 0)),
            max_access=int(data.get("max_access", 0)),
        )


def _parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class StoredBlob:
    """Result of a completed blob write."""

    storage_key: str
    size: int
