"""
Content Value Objects

Immutable value objects for entry kinds, identifiers and lifetimes.
"""

import re
import secrets
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Dict, Optional

from dropbin.domain.errors import InvalidInputError, InvalidTTLError


class EntryKind(Enum):
    """Closed set of entry kinds."""

    FILE = "file"
    PASTE = "paste"


# ttl token -> lifetime
ACCEPTED_TTLS: Dict[str, timedelta] = {
    "1h": timedelta(hours=1),
    "24h": timedelta(hours=24),
    "72h": timedelta(hours=72),
    "168h": timedelta(hours=168),
}

DEFAULT_TTL_TOKEN = "24h"


@dataclass(frozen=True)
class TimeToLive:
    """
    Value object representing a validated ttl token.

    Only the tokens in ACCEPTED_TTLS are valid; anything else raises
    InvalidTTLError.
    """

    token: str

    def __post_init__(self):
        if self.token not in ACCEPTED_TTLS:
            raise InvalidTTLError(
                f"Unsupported ttl {self.token!r}, expected one of {', '.join(ACCEPTED_TTLS)}"
            )

    @property
    def duration(self) -> timedelta:
        return ACCEPTED_TTLS[self.token]

    @classmethod
    def parse(cls, value: Optional[str]) -> "TimeToLive":
        """
        Parse a ttl token from request input.

        A missing or blank value falls back to DEFAULT_TTL_TOKEN.

        Raises:
            InvalidTTLError: If a value is given but not accepted
        """
        if value is None or (isinstance(value, str) and not value.strip()):
            return cls(DEFAULT_TTL_TOKEN)
        if not isinstance(value, str):
            raise InvalidTTLError(f"ttl must be a string, got {type(value).__name__}")
        return cls(value.strip())

    def __str__(self) -> str:
        return self.token


class EntryIdGenerator:
    """
    Generates opaque entry identifiers.

    IDs come from secrets.token_urlsafe so they are unguessable and can be
    used directly in URLs.
    """

    ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{16,64}$")

    def __init__(self, nbytes: int = 16):
        self.nbytes = nbytes

    def new_id(self) -> str:
        return secrets.token_urlsafe(self.nbytes)

    @classmethod
    def is_well_formed(cls, value: str) -> bool:
        return bool(value) and bool(cls.ID_PATTERN.match(value))

    @staticmethod
    def ensure_entropy_available() -> None:
        """
        Check that the OS entropy source works.

        Called once at startup; an unavailable source is fatal there instead of
        failing individual requests.

        Raises:
            RuntimeError: If no entropy source is available
        """
        try:
            secrets.token_bytes(1)
        except (NotImplementedError, OSError) as e:
            raise RuntimeError("No entropy source available for ID generation") from e


def parse_access_limit(value, field_name: str) -> int:
    """
    Parse an optional access cap (max_downloads / max_views).

    None, empty strings and 0 mean unlimited.

    Raises:
        InvalidInputError: If the value is not a non-negative integer
    """
    if value is None or value == "":
        return 0
    if isinstance(value, bool):
        raise InvalidInputError(f"{field_name} must be a non-negative integer")
    try:
        limit = int(value)
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"{field_name} must be a non-negative integer") from e
    if isinstance(value, float) and value != limit:
        raise InvalidInputError(f"{field_name} must be a non-negative integer")
    if limit < 0:
        raise InvalidInputError(f"{field_name} must be a non-negative integer")
    return limit
