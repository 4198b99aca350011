"""Password hashing and symmetric encryption of note bodies.

``hash_password`` stretches a password with PBKDF2-HMAC-SHA256 and returns
the 32 byte result as url-safe base64 text, which is directly usable as a
Fernet key. Blobs are Fernet tokens: authenticated, so a wrong key or a
tampered blob is detected instead of yielding garbage plaintext.
"""

from __future__ import annotations

import base64

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from notesys.errors import DecryptFailure

# Shared by every installation; there is no per-user secret to derive a salt from.
NOTE_SALT = "dbd71826401a4fca6c360f065a281063"

DEFAULT_KDF_ITERATIONS = 480_000


def hash_password(password: str, salt: str = NOTE_SALT, *, iterations: int = DEFAULT_KDF_ITERATIONS) -> str:
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=salt.encode("utf-8"),
        iterations=iterations,
    )
    return base64.urlsafe_b64encode(kdf.derive(password.encode("utf-8"))).decode("ascii")


def encrypt(key: str, plaintext: str) -> bytes:
    return Fernet(key.encode("ascii")).encrypt(plaintext.encode("utf-8"))


def decrypt(key: str, blob: bytes) -> str:
    """Return the plaintext of ``blob`` or raise :class:`DecryptFailure`."""

    try:
        data = Fernet(key.encode("ascii")).decrypt(blob)
    except (InvalidToken, ValueError, TypeError) as exc:
        raise DecryptFailure("Wrong password or corrupted note") from exc
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise DecryptFailure("Decrypted note is not valid UTF-8") from exc


__all__ = ["NOTE_SALT", "DEFAULT_KDF_ITERATIONS", "hash_password", "encrypt", "decrypt"]
