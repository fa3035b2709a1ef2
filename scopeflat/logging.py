"""Logging utilities for scopeflat commands."""

from __future__ import annotations

import logging
from pathlib import Path

_LOGGER_NAME = "scopeflat"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a module-scoped logger under the scopeflat hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def resolve_level(*, verbose: bool = False, quiet: bool = False, silent: bool = False) -> int:
    """Map CLI verbosity flags onto a logging level."""
    if silent:
        return logging.ERROR
    if quiet:
        return logging.WARNING
    if verbose:
        return logging.DEBUG
    return logging.INFO


def configure_logging(
    *,
    verbose: bool = False,
    quiet: bool = False,
    silent: bool = False,
    log_file: Path | None = None,
) -> logging.Logger:
    """Configure the scopeflat logger with console output and optional file sink."""
    level = resolve_level(verbose=verbose, quiet=quiet, silent=silent)
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    # Reset handlers to avoid duplicate output when the CLI runs several stages.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)
    stream_handler.setFormatter(logging.Formatter("[scopeflat] %(levelname)s %(message)s"))
    logger.addHandler(stream_handler)

    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        logger.addHandler(file_handler)

    return logger


__all__ = ["configure_logging", "get_logger", "resolve_level"]
