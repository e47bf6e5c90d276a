"""
Content Domain

Entries (files and pastes), their lifetimes, and the storage contracts the
content service depends on.
"""

from .entities import Entry, FilePayload, PastePayload, StoredBlob, utcnow
from .repositories import MetadataStore
from .storage_repository import BlobStream, IBlobStore
from .value_objects import (
    ACCEPTED_TTLS,
    DEFAULT_TTL_TOKEN,
    EntryIdGenerator,
    EntryKind,
    TimeToLive,
    parse_access_limit,
)

__all__ = [
    "ACCEPTED_TTLS",
    "BlobStream",
    "DEFAULT_TTL_TOKEN",
    "Entry",
    "EntryIdGenerator",
    "EntryKind",
    "FilePayload",
    "IBlobStore",
    "MetadataStore",
    "PastePayload",
    "StoredBlob",
    "TimeToLive",
    "parse_access_limit",
    "utcnow",
]
