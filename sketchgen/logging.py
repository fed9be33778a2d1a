"""Logging setup shared by the sketchgen CLI and HTTP service."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

_ROOT = "sketchgen"
_CONSOLE_FORMAT = "[sketchgen] %(levelname)s %(message)s"
_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Third-party loggers held at WARNING unless verbose.
_NOISY_LOGGERS = ("uvicorn.access", "httpx", "web3", "urllib3")


def get_logger(name: str | None = None) -> logging.Logger:
    """Return ``sketchgen.<name>`` (or the package root logger)."""
    return logging.getLogger(f"{_ROOT}.{name}" if name else _ROOT)


def configure_logging(
    *,
    verbose: bool = False,
    log_file: Path | None = None,
    quiet: Iterable[str] = _NOISY_LOGGERS,
) -> logging.Logger:
    """Install console and optional file handlers on the sketchgen root logger.

    ``verbose`` lowers the threshold to DEBUG, which surfaces each metadata
    fallback attempt and the analyzer's per-run summary.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logger = get_logger()
    logger.setLevel(level)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    handlers: list[logging.Handler] = [_handler(logging.StreamHandler(), level, _CONSOLE_FORMAT)]
    if log_file is not None:
        handlers.append(_handler(logging.FileHandler(log_file, encoding="utf-8"), level, _FILE_FORMAT))
    for handler in handlers:
        logger.addHandler(handler)

    if not verbose:
        for name in quiet:
            logging.getLogger(name).setLevel(logging.WARNING)
    return logger


def _handler(handler: logging.Handler, level: int, fmt: str) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt))
    return handler


__all__ = ["configure_logging", "get_logger"]
