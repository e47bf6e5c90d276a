"""Application services orchestrating the content domain."""

from .content_service import ContentService
from .dependency_container import DependencyContainer, DependencyNotFoundError
from .expiration_reaper import ExpirationReaper, ReapReport

__all__ = [
    "ContentService",
    "DependencyContainer",
    "DependencyNotFoundError",
    "ExpirationReaper",
    "ReapReport",
]
