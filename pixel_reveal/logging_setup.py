"""Logging setup for the ``pixel-reveal`` command line."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, TextIO

from pixel_reveal.config import LoggingSettings

PACKAGE_LOGGER = "pixel_reveal"
LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def _open_log_file(path: Path) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    return logging.FileHandler(path, encoding="utf-8")


def configure_logging(
    settings: Optional[LoggingSettings] = None,
    *,
    verbose: bool = False,
    stream: Optional[TextIO] = None,
) -> logging.Logger:
    """Route the ``pixel_reveal`` loggers to a stream and the configured file.

    ``verbose`` forces DEBUG over the configured level. Handlers from an
    earlier call are replaced, so calling this twice does not duplicate
    output. A log file that cannot be opened is reported as a warning on
    the stream and the run carries on without it.
    """
    settings = settings or LoggingSettings()
    formatter = logging.Formatter(LOG_FORMAT)

    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(stream)
    console.setFormatter(formatter)
    logger.addHandler(console)

    file_error: Optional[OSError] = None
    if settings.log_file is not None:
        try:
            file_handler = _open_log_file(Path(settings.log_file))
        except OSError as exc:
            file_error = exc
        else:
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    logger.setLevel(logging.DEBUG if verbose else settings.level)
    if file_error is not None:
        logger.warning("Cannot write log file %s (%s); logging to the console only", settings.log_file, file_error)
    return logger


__all__ = ["LOG_FORMAT", "PACKAGE_LOGGER", "configure_logging"]
