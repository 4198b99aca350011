"""Loguru sink setup for command line runs."""

from __future__ import annotations

import sys
from contextlib import suppress
from pathlib import Path

from loguru import logger

_installed_sinks: list[int] = []


def configure_logging(level: str = "INFO", log_file: Path | None = None) -> None:
    """Route notesys logs to stderr at ``level`` and optionally to a rotating file.

    Calling it again replaces the sinks installed by the previous call.
    """

    while _installed_sinks:
        with suppress(ValueError):
            logger.remove(_installed_sinks.pop())

    # Loguru's default stderr handler always has id 0.
    with suppress(ValueError):
        logger.remove(0)

    # Resolve sys.stderr per message so redirected streams keep working.
    _installed_sinks.append(logger.add(lambda message: sys.stderr.write(message), level=level.upper()))

    if log_file is not None:
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            _installed_sinks.append(
                logger.add(
                    log_file,
                    rotation="5 MB",
                    retention=5,
                    level=level.upper(),
                )
            )
        except OSError as exc:  # pragma: no cover - filesystem issues are environment-specific
            logger.warning("Failed to initialise log file sink {}: {}", log_file, exc)


__all__ = ["configure_logging"]
