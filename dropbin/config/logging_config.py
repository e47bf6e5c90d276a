"""
Logging Configuration

Single place that sets the root logging level and format from LOG_LEVEL.
"""

import logging
import os
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """
    Configure root logging.

    Args:
        level: Level name, defaults to the LOG_LEVEL environment variable or INFO
    """
    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    numeric_level = getattr(logging, level_name, None)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    logging.basicConfig(level=numeric_level, format=LOG_FORMAT)
    logging.getLogger().setLevel(numeric_level)

    # werkzeug logs every request itself; ours already does
    logging.getLogger("werkzeug").setLevel(max(numeric_level, logging.WARNING))
