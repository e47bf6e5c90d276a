"""
Store Configuration

Environment-based configuration for the content store.
Provides centralized configuration management with sensible defaults.
"""

import os
from dataclasses import dataclass
from typing import Optional

REAPER_MODES = ("thread", "celery", "off")


@dataclass
class StoreConfig:
    """
    Content store configuration from environment variables.

    Covers backend selection, size ceilings, public link generation and the
    expiration reaper schedule.
    """

    # Backends
    metadata_backend: str = "redis"
    blob_storage_dir: str = "/tmp/dropbin/blobs"
    redis_key_prefix: str = "dropbin"

    # Size ceilings (bytes)
    max_file_bytes: int = 100 * 1024 * 1024
    max_paste_bytes: int = 1024 * 1024

    # Links
    public_base_url: Optional[str] = None

    # Reaper
    reaper_mode: str = "thread"
    reaper_interval_seconds: int = 60
    orphan_grace_seconds: int = 3600

    def __post_init__(self):
        if self.reaper_mode not in REAPER_MODES:
            raise ValueError(
                f"REAPER_MODE must be one of {', '.join(REAPER_MODES)}, got {self.reaper_mode!r}"
            )
        if self.reaper_interval_seconds <= 0:
            raise ValueError("REAPER_INTERVAL_SECONDS must be positive")
        if self.max_file_bytes <= 0 or self.max_paste_bytes <= 0:
            raise ValueError("Size ceilings must be positive")
        if self.public_base_url:
            self.public_base_url = self.public_base_url.rstrip("/")

    @classmethod
    def from_env(cls) -> "StoreConfig":
        """
        Load configuration from environment variables.

        Returns:
            StoreConfig instance with loaded configuration
        """
        return cls(
            metadata_backend=os.getenv("METADATA_BACKEND", "redis").lower(),
            blob_storage_dir=os.getenv("BLOB_STORAGE_DIR", "/tmp/dropbin/blobs"),
            redis_key_prefix=os.getenv("REDIS_KEY_PREFIX", "dropbin"),
            max_file_bytes=int(os.getenv("MAX_FILE_BYTES", str(100 * 1024 * 1024))),
            max_paste_bytes=int(os.getenv("MAX_PASTE_BYTES", str(1024 * 1024))),
            public_base_url=os.getenv("PUBLIC_BASE_URL") or None,
            reaper_mode=os.getenv("REAPER_MODE", "thread").lower(),
            reaper_interval_seconds=int(os.getenv("REAPER_INTERVAL_SECONDS", "60")),
            orphan_grace_seconds=int(os.getenv("ORPHAN_GRACE_SECONDS", "3600")),
        )
