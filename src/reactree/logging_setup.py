"""Logging configuration for the reactree CLI."""

from __future__ import annotations

import logging
import os

LOGGER_NAME = "reactree"


def setup_logging(
    verbose: bool = False,
    log_file: str | None = None,
) -> logging.Logger:
    """
    Configure dual-handler logging (console + file) for the package logger.

    Args:
        verbose: Enable DEBUG level on console (default WARNING)
        log_file: Path to log file (None for no file logging)

    Returns:
        The configured ``reactree`` logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.DEBUG if verbose else logging.WARNING)
    console_handler.setFormatter(
        logging.Formatter("%(levelname)-8s | %(name)s | %(message)s")
    )
    logger.addHandler(console_handler)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="a")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(file_handler)

    return logger
