"""Logging helpers for pia-wg-connect."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

ROOT_LOGGER = "wgconnect"


def _build_formatter() -> logging.Formatter:
    return logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")


def setup_logging(
    log_dir: str | Path | None = None,
    log_name: str = "wgconnect",
    level: int = logging.INFO,
) -> logging.Logger:
    """Initialize console and (optionally) file logging.

    Parameters
    ----------
    log_dir:
        Directory where the log file will be stored. ``None`` keeps logging
        on the console only.
    log_name:
        Base name of the log file without extension.
    level:
        Level applied to the ``wgconnect`` logger.

    Returns
    -------
    logging.Logger
        Configured package logger instance.
    """

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)

    # Avoid attaching duplicate handlers in case of repeated initialization.
    existing_handlers = {type(handler) for handler in logger.handlers}

    formatter = _build_formatter()

    if logging.StreamHandler not in existing_handlers:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if log_dir is not None and logging.FileHandler not in existing_handlers:
        log_directory = Path(log_dir)
        log_directory.mkdir(parents=True, exist_ok=True)
        log_file = log_directory / f"{log_name}.log"
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
        logger.debug("Logging initialized", extra={"log_file": str(log_file)})

    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a namespaced logger under the ``wgconnect`` hierarchy."""

    base = logging.getLogger(ROOT_LOGGER)
    if not name:
        return base
    if name == ROOT_LOGGER or name.startswith(ROOT_LOGGER + "."):
        return logging.getLogger(name)
    return base.getChild(name)
