"""
Content Application Service

Coordinates the file and paste use cases: create, inspect, fetch and delete.
"""

import logging
import os
import unicodedata
from datetime import datetime
from typing import BinaryIO, Callable, Optional, Tuple

from pygments.lexers import guess_lexer
from pygments.util import ClassNotFound

from dropbin.domain.content import (
    BlobStream,
    Entry,
    EntryIdGenerator,
    EntryKind,
    IBlobStore,
    MetadataStore,
    TimeToLive,
    parse_access_limit,
    utcnow,
)
from dropbin.domain.errors import (
    AlreadyExistsError,
    BlobNotFoundError,
    EntryNotFoundError,
    EntryNotLiveError,
    InvalidInputError,
    NotFoundOrExpiredError,
    PayloadTooLargeError,
    StorageFailureError,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_FILE_BYTES = 100 * 1024 * 1024
DEFAULT_MAX_PASTE_BYTES = 1024 * 1024
DEFAULT_CONTENT_TYPE = "application/octet-stream"
DEFAULT_FILE_NAME = "upload"
MAX_NAME_LENGTH = 255
DEFAULT_LANGUAGE = "text"
LANGUAGE_SAMPLE_CHARS = 16 * 1024


def sanitize_filename(name_hint: Optional[str]) -> str:
    """
    Reduce a client supplied file name to a safe display name.

    Drops any directory part and control characters. Falls back to
    DEFAULT_FILE_NAME when nothing usable is left.
    """
    if not name_hint:
        return DEFAULT_FILE_NAME
    name = os.path.basename(name_hint.replace("\\", "/"))
    name = "".join(ch for ch in name if unicodedata.category(ch)[0] != "C")
    name = name.strip().strip(".")
    if not name:
        return DEFAULT_FILE_NAME
    return name[:MAX_NAME_LENGTH]


def detect_language(content: str) -> str:
    """
    Guess a highlighting language for paste content.

    Returns the primary Pygments alias of the best matching lexer, or
    DEFAULT_LANGUAGE when nothing matches.
    """
    try:
        lexer = guess_lexer(content[:LANGUAGE_SAMPLE_CHARS])
    except ClassNotFound:
        return DEFAULT_LANGUAGE
    return lexer.aliases[0] if lexer.aliases else DEFAULT_LANGUAGE


class ContentService:
    """
    Application service for stored files and pastes.

    Validation always happens before any storage mutation. Every read goes
    through the metadata store, which is the only source of truth for
    liveness; unknown, expired, exhausted and wrong-kind IDs are all reported
    as NotFoundOrExpiredError.
    """

    def __init__(
        self,
        metadata_store: MetadataStore,
        blob_store: IBlobStore,
        id_generator: Optional[EntryIdGenerator] = None,
        max_file_bytes: int = DEFAULT_MAX_FILE_BYTES,
        max_paste_bytes: int = DEFAULT_MAX_PASTE_BYTES,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize ContentService.

        Args:
            metadata_store: Entry metadata persistence
            blob_store: File byte storage
            id_generator: Entry ID source
            max_file_bytes: Upload size ceiling
            max_paste_bytes: Paste size ceiling (UTF-8 bytes)
            clock: Returns the current UTC time
        """
        self.metadata_store = metadata_store
        self.blob_store = blob_store
        self.id_generator = id_generator or EntryIdGenerator()
        self.max_file_bytes = max_file_bytes
        self.max_paste_bytes = max_paste_bytes
        self.clock = clock

    # Creation

    def create_file(
        self,
        name_hint: Optional[str],
        content_type: Optional[str],
        stream: BinaryIO,
        ttl: Optional[str] = None,
        max_downloads=None,
    ) -> Entry:
        """
        Store an uploaded file.

        Args:
            name_hint: File name reported by the client
            content_type: MIME type reported by the client
            stream: Readable binary stream with the file bytes
            ttl: ttl token, defaults to 24h
            max_downloads: Optional download cap

        Returns:
            The created Entry

        Raises:
            InvalidTTLError: If ttl is not accepted
            InvalidInputError: If max_downloads is invalid
            PayloadTooLargeError: If the upload exceeds max_file_bytes
            StorageFailureError: If the blob or metadata write fails
        """
        lifetime = TimeToLive.parse(ttl)
        limit = parse_access_limit(max_downloads, "max_downloads")
        original_name = sanitize_filename(name_hint)
        content_type = content_type or DEFAULT_CONTENT_TYPE
        entry_id = self.id_generator.new_id()

        blob = self.blob_store.put(stream, max_bytes=self.max_file_bytes)

        try:
            entry = Entry.new_file(
                entry_id=entry_id,
                original_name=original_name,
                content_type=content_type,
                size=blob.size,
                storage_key=blob.storage_key,
                ttl=lifetime.duration,
                max_downloads=limit,
                now=self.clock(),
            )
            self.metadata_store.create(entry)
        except AlreadyExistsError as e:
            self._discard_blob(blob.storage_key)
            logger.error(f"Entry ID collision on {entry_id[:8]}")
            raise StorageFailureError(f"Entry ID collision: {entry_id}", e) from e
        except Exception:
            self._discard_blob(blob.storage_key)
            raise

        logger.info(
            f"Created file {entry_id[:8]} ({blob.size} bytes, ttl={lifetime}, "
            f"max_downloads={limit or 'unlimited'})"
        )
        return entry

    def create_paste(
        self,
        content: Optional[str],
        language: Optional[str] = None,
        title: Optional[str] = None,
        ttl: Optional[str] = None,
        max_views=None,
    ) -> Entry:
        """
        Store a text paste.

        Raises:
            InvalidInputError: If content is missing or empty, or max_views is invalid
            InvalidTTLError: If ttl is not accepted
            PayloadTooLargeError: If content exceeds max_paste_bytes
            StorageFailureError: If the metadata write fails
        """
        if content is None or not isinstance(content, str):
            raise InvalidInputError("Paste content must be a string")
        if content == "":
            raise InvalidInputError("Paste content cannot be empty")
        if language is not None and not isinstance(language, str):
            raise InvalidInputError("language must be a string")
        if title is not None and not isinstance(title, str):
            raise InvalidInputError("title must be a string")

        lifetime = TimeToLive.parse(ttl)
        limit = parse_access_limit(max_views, "max_views")

        size = len(content.encode("utf-8"))
        if size > self.max_paste_bytes:
            raise PayloadTooLargeError(
                f"Paste is {size} bytes, limit is {self.max_paste_bytes}"
            )

        entry = Entry.new_paste(
            entry_id=self.id_generator.new_id(),
            content=content,
            language=language or detect_language(content),
            title=title or "",
            ttl=lifetime.duration,
            max_views=limit,
            now=self.clock(),
        )

        try:
            self.metadata_store.create(entry)
        except AlreadyExistsError as e:
            logger.error(f"Entry ID collision on {entry.entry_id[:8]}")
            raise StorageFailureError(f"Entry ID collision: {entry.entry_id}", e) from e

        logger.info(
            f"Created paste {entry.entry_id[:8]} ({size} bytes, language={entry.payload.language}, "
            f"ttl={lifetime})"
        )
        return entry

    # Reads

    def get_file_info(self, entry_id: str) -> Entry:
        """Return a live file entry without counting a download."""
        return self._get_live(entry_id, EntryKind.FILE)

    def open_file_download(self, entry_id: str) -> Tuple[BlobStream, Entry]:
        """
        Count one download and open the file for streaming.

        The slot is consumed here, before any byte is sent: with
        MaxDownloads = K exactly K calls succeed.

        The blob is opened before the count is taken. Once the count reaches
        MaxDownloads the entry is eligible for reaping, and the open handle
        keeps the bytes readable after the reaper unlinks the blob.

        Returns:
            (open BlobStream, entry with the updated download count).
            The caller owns the stream and must close it.

        Raises:
            NotFoundOrExpiredError: If the file cannot be served
        """
        current = self._get_live(entry_id, EntryKind.FILE)
        try:
            stream = self.blob_store.get(current.storage_key)
        except BlobNotFoundError as e:
            logger.warning(f"Blob missing for file {entry_id[:8]}")
            raise NotFoundOrExpiredError(f"Blob missing for {entry_id}", e) from e

        try:
            entry = self._increment_access(entry_id)
        except Exception:
            stream.close()
            raise

        logger.info(
            f"Download {entry.access_count}/{entry.max_access or 'unlimited'} "
            f"of file {entry_id[:8]}"
        )
        return stream, entry

    def get_paste(self, entry_id: str) -> Entry:
        """Return a live paste entry without counting a view."""
        return self._get_live(entry_id, EntryKind.PASTE)

    def get_paste_raw(self, entry_id: str) -> str:
        """
        Count one view and return the paste content.

        Raises:
            NotFoundOrExpiredError: If the paste cannot be served
        """
        entry = self._record_access(entry_id, EntryKind.PASTE)
        logger.info(
            f"View {entry.access_count}/{entry.max_access or 'unlimited'} "
            f"of paste {entry_id[:8]}"
        )
        return entry.payload.content

    # Deletion

    def delete_file(self, entry_id: str) -> None:
        """
        Reclaim a file immediately, blob first.

        Raises:
            NotFoundOrExpiredError: If no live file exists under entry_id
        """
        entry = self._get_live(entry_id, EntryKind.FILE)
        self.blob_store.delete(entry.storage_key)
        self.metadata_store.delete(entry_id)
        logger.info(f"Deleted file {entry_id[:8]}")

    def delete_paste(self, entry_id: str) -> None:
        """
        Reclaim a paste immediately.

        Raises:
            NotFoundOrExpiredError: If no live paste exists under entry_id
        """
        self._get_live(entry_id, EntryKind.PASTE)
        self.metadata_store.delete(entry_id)
        logger.info(f"Deleted paste {entry_id[:8]}")

    # Helpers

    def _load(self, entry_id: str, kind: EntryKind) -> Entry:
        if not EntryIdGenerator.is_well_formed(entry_id):
            raise NotFoundOrExpiredError(f"Malformed entry ID: {entry_id!r}")
        try:
            entry = self.metadata_store.get(entry_id)
        except EntryNotFoundError as e:
            raise NotFoundOrExpiredError(f"Unknown entry: {entry_id}", e) from e
        if entry.kind is not kind:
            raise NotFoundOrExpiredError(f"Entry {entry_id} is not a {kind.value}")
        return entry

    def _get_live(self, entry_id: str, kind: EntryKind) -> Entry:
        entry = self._load(entry_id, kind)
        if not entry.is_live(self.clock()):
            raise NotFoundOrExpiredError(f"Entry {entry_id} is no longer live")
        return entry

    def _record_access(self, entry_id: str, kind: EntryKind) -> Entry:
        # Kind never changes, so checking it before the atomic step is safe
        self._load(entry_id, kind)
        return self._increment_access(entry_id)

    def _increment_access(self, entry_id: str) -> Entry:
        try:
            return self.metadata_store.increment_access_and_get(entry_id, self.clock())
        except (EntryNotFoundError, EntryNotLiveError) as e:
            raise NotFoundOrExpiredError(f"Entry {entry_id} cannot be served", e) from e

    def _discard_blob(self, storage_key: str) -> None:
        try:
            self.blob_store.delete(storage_key)
        except StorageFailureError as e:
            # Left for the orphan sweep
            logger.error(f"Failed to discard blob {storage_key[:8]}: {e}")
