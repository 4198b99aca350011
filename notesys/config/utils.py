"""Helper utilities for configuration handling."""

from __future__ import annotations

import os

_ENV_PREFIX = "env:"


def resolve_env_reference(value: str | None, *, required: bool = True) -> str | None:
    """Resolve secrets such as ``encryption.password`` given as ``"env:VAR_NAME"``.

    Plain strings are returned unchanged and ``None`` passes through. When the
    variable is missing or empty an :class:`EnvironmentError` is raised, or
    ``None`` is returned if ``required`` is ``False``.
    """

    if value is None or not value.startswith(_ENV_PREFIX):
        return value

    var_name = value[len(_ENV_PREFIX):]
    resolved = os.getenv(var_name)
    if resolved:
        return resolved
    if required:
        raise EnvironmentError(f"Environment variable '{var_name}' is not set or empty")
    return None


__all__ = ["resolve_env_reference"]
