"""Note encryption: primitives and the password gate."""

from .gate import EncryptionGate, GateState, PasswordProvider, StaticPasswordProvider
from .primitives import NOTE_SALT, decrypt, encrypt, hash_password

__all__ = [
    "EncryptionGate",
    "GateState",
    "PasswordProvider",
    "StaticPasswordProvider",
    "NOTE_SALT",
    "hash_password",
    "encrypt",
    "decrypt",
]
