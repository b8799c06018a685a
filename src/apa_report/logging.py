from __future__ import annotations

import logging
import os

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
LOG_LEVEL_ENV = "APA_REPORT_LOG_LEVEL"
DEFAULT_LOG_LEVEL = "WARNING"


def configure_logging(level: str | None = None) -> None:
    """Configure root logging; ``level`` falls back to ``$APA_REPORT_LOG_LEVEL``."""
    resolved = level or os.environ.get(LOG_LEVEL_ENV) or DEFAULT_LOG_LEVEL
    logging.basicConfig(level=resolved.upper(), format=LOG_FORMAT)
