"""Configuration for Redis, Celery, logging and the content store."""

from .logging_config import configure_logging
from .store_config import REAPER_MODES, StoreConfig

__all__ = ["REAPER_MODES", "StoreConfig", "configure_logging"]
