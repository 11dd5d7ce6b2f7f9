"""Logging for ``ledger_categorizer``.

Modules log through ``get_logger("ledger_categorizer.<module>")`` and never add
handlers of their own. Only the CLI calls :func:`configure_logging`; embedding
applications configure the ``"ledger_categorizer"`` logger however they like.
"""

from __future__ import annotations

import logging
import os

_PKG_LOGGER_NAME = "ledger_categorizer"
_LEVEL_ENV = "LEDGER_CATEGORIZER_LOG_LEVEL"
_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"
_CONFIGURED = False


def resolve_level(level: str | None = None) -> int:
    """Map a level name (or ``$LEDGER_CATEGORIZER_LOG_LEVEL``) to a number.

    Unknown names resolve to ``INFO``.
    """

    name = (level or os.getenv(_LEVEL_ENV) or "INFO").strip().upper()
    numeric = logging.getLevelName(name)
    return numeric if isinstance(numeric, int) else logging.INFO


def configure_logging(level: str | None = None) -> None:
    """Send package logs to stderr; later calls are no-ops."""

    global _CONFIGURED
    if _CONFIGURED:
        return

    logger = logging.getLogger(_PKG_LOGGER_NAME)
    for h in [h for h in logger.handlers if isinstance(h, logging.NullHandler)]:
        logger.removeHandler(h)

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(resolve_level(level))
    logger.propagate = False
    _CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    if not _CONFIGURED and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger", "resolve_level"]
