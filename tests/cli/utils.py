"""Shared helpers for CLI tests."""

from __future__ import annotations

import sys
from contextlib import contextmanager
from pathlib import Path

from loguru import logger

from ..utils import TEST_KDF_ITERATIONS


@contextmanager
def logger_to_stderr(level: str = "INFO"):
    """Temporarily route Loguru output to stderr for assertion."""

    handler_id = logger.add(sys.stderr, level=level)
    try:
        yield
    finally:
        logger.remove(handler_id)


def write_config(
    base_dir: Path,
    *,
    password: str | None = None,
    default_directory: Path | None = None,
) -> Path:
    """Write a config file keeping every store file under ``base_dir``."""

    data_dir = base_dir / "data"
    lines = [
        'logging_level = "INFO"',
        f'state_path = "{(data_dir / "state.json").as_posix()}"',
        "",
        "[storage]",
        f'kv_path = "{(data_dir / "notes.sqlite3").as_posix()}"',
    ]
    if default_directory is not None:
        lines.append(f'default_directory = "{default_directory.as_posix()}"')
    lines += ["", "[encryption]", f"kdf_iterations = {TEST_KDF_ITERATIONS}"]
    if password is not None:
        lines.append(f'password = "{password}"')

    config_path = base_dir / "config.toml"
    config_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return config_path
