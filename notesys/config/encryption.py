"""Encryption configuration models."""

from __future__ import annotations

from pydantic import Field

from .base import BaseConfig


class EncryptionConfig(BaseConfig):
    """Settings for the password based note encryption."""

    kdf_iterations: int = Field(
        480_000,
        ge=1,
        description="PBKDF2 iterations used to derive the key from a password",
    )
    password: str | None = Field(
        None,
        description="Password or 'env:VAR_NAME' reference; prompts interactively when unset",
    )


__all__ = ["EncryptionConfig"]
