"""File logging setup; the terminal itself belongs to Textual."""

from __future__ import annotations

import logging
from pathlib import Path

from qr_checkout.config import DEBUG_LOG_PATH

LOGGER_NAME = "qr_checkout"
_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(path: str | None = None, level: int = logging.DEBUG) -> logging.Logger:
    """Attach a single file handler to the package logger. Safe to call repeatedly."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False
    if any(getattr(handler, "_qr_checkout", False) for handler in logger.handlers):
        return logger

    log_path = Path(path or DEBUG_LOG_PATH)
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(log_path, encoding="utf-8")
    except OSError:
        # Logging must never interfere with app flow.
        handler = logging.NullHandler()
    handler.setFormatter(logging.Formatter(_FORMAT))
    handler._qr_checkout = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    return logger
