"""Runtime configuration read from environment variables.

ALIGNMENT_LOG_LEVEL     -- level of the ``alignment`` logger tree (default INFO)
ALIGNMENT_CORS_ORIGINS  -- comma-separated origins allowed by CORS
                          (default: the Vite dev server on port 5173)

Unrecognised values fall back to the default with a warning so that a
misconfigured deployment never silently breaks.
"""

from __future__ import annotations

import logging
import os

_VALID_LEVELS: tuple[str, ...] = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

DEFAULT_CORS_ORIGINS: tuple[str, ...] = (
    "http://localhost:5173",
    "http://127.0.0.1:5173",
)


def get_log_level() -> str:
    """Return the validated ALIGNMENT_LOG_LEVEL, defaulting to ``'INFO'``."""
    raw = os.environ.get("ALIGNMENT_LOG_LEVEL", "INFO").strip().upper()
    if raw not in _VALID_LEVELS:
        logging.getLogger("alignment").warning(
            "Unknown ALIGNMENT_LOG_LEVEL=%r -- falling back to 'INFO'. "
            "Valid values are: %s",
            raw,
            ", ".join(_VALID_LEVELS),
        )
        return "INFO"
    return raw


def get_cors_origins() -> list[str]:
    """Return the CORS allow-list from ALIGNMENT_CORS_ORIGINS.

    Blank entries are dropped; an empty or missing variable yields the
    development defaults.
    """
    raw = os.environ.get("ALIGNMENT_CORS_ORIGINS", "")
    origins = [part.strip() for part in raw.split(",") if part.strip()]
    return origins or list(DEFAULT_CORS_ORIGINS)


def configure_logging() -> None:
    """Apply ALIGNMENT_LOG_LEVEL to the ``alignment`` logger tree."""
    logging.getLogger("alignment").setLevel(get_log_level())
