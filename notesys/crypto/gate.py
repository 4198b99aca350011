"""Password acquisition state machine guarding encrypted notes.

States and transitions:

``NO_SESSION``
    No key yet. The first key request derives one from the remembered
    password (-> ``CACHED``) or, if none is remembered, asks the password
    provider (-> ``NEEDS_PROMPT``).
``CACHED``
    A key is held. A failed decrypt forgets the remembered password and the
    key (-> ``NEEDS_PROMPT``) and sets an escalating prompt message.
``NEEDS_PROMPT``
    The provider is awaited for a password, which is remembered and turned
    into a key (-> ``CACHED``); the failed operation is then retried.

The retry loop has no cap: it ends on a successful decrypt or when the
provider raises, i.e. the caller gives up.
"""

from __future__ import annotations

from enum import Enum
from typing import Awaitable, Callable, Protocol

from loguru import logger

from notesys.errors import DecryptFailure
from notesys.storage.state import PASSWORD_KEY, DurableState

from .primitives import DEFAULT_KDF_ITERATIONS, NOTE_SALT, decrypt, encrypt, hash_password

FIRST_PROMPT_MESSAGE = "Please enter password to decrypt files"


class GateState(Enum):
    NO_SESSION = "no_session"
    CACHED = "cached"
    NEEDS_PROMPT = "needs_prompt"


class PasswordProvider(Protocol):
    async def get_password(self, message: str) -> str:
        """Ask the user for a password, showing ``message``."""


class StaticPasswordProvider:
    """Hands out a fixed password once.

    A second request means the password was rejected; there is nobody to ask,
    so the request fails instead of looping.
    """

    def __init__(self, password: str) -> None:
        self._password = password
        self._used = False

    async def get_password(self, message: str) -> str:
        if self._used:
            raise DecryptFailure("The configured password is not correct")
        self._used = True
        return self._password


class EncryptionGate:
    """Owns the password lifecycle and wraps/unwraps note bytes."""

    def __init__(
        self,
        provider: PasswordProvider,
        state: DurableState,
        *,
        iterations: int = DEFAULT_KDF_ITERATIONS,
        salt: str = NOTE_SALT,
    ) -> None:
        self.provider = provider
        self.state = state
        self.iterations = iterations
        self.salt = salt
        self.status = GateState.NO_SESSION
        self.message = FIRST_PROMPT_MESSAGE
        self._password: str | None = None
        self._key: str | None = None
        self._restored = False

    async def restore(self) -> None:
        """Load the remembered password from durable state."""
        self._password = await self.state.get(PASSWORD_KEY)
        self._restored = True

    def has_password(self) -> bool:
        return bool(self._password)

    async def remember_password(self, password: str) -> None:
        self._password = password
        self._restored = True
        await self.state.set(PASSWORD_KEY, password)
        self._key = self._derive(password)
        self.status = GateState.CACHED

    async def forget_password(self) -> None:
        self._password = None
        self._key = None
        await self.state.delete(PASSWORD_KEY)
        self.status = GateState.NO_SESSION

    async def key(self) -> str:
        if not self._restored:
            await self.restore()
        while self._key is None:
            if self.status is GateState.NO_SESSION and self._password:
                self._key = self._derive(self._password)
                self.status = GateState.CACHED
                break
            self.status = GateState.NEEDS_PROMPT
            password = await self.provider.get_password(self.message)
            await self.remember_password(password)
        return self._key

    async def encrypt(self, plaintext: str) -> bytes:
        return encrypt(await self.key(), plaintext)

    async def decrypt(self, load: Callable[[], Awaitable[bytes]]) -> str:
        """Decrypt the blob returned by ``load``, prompting until a password works.

        ``load`` is awaited again on every attempt.
        """

        while True:
            key = await self.key()
            blob = await load()
            try:
                plaintext = decrypt(key, blob)
            except DecryptFailure:
                logger.warning("Decryption failed; asking for the password again")
                await self._reject_password()
                continue
            self.message = FIRST_PROMPT_MESSAGE
            return plaintext

    async def _reject_password(self) -> None:
        if self._password:
            self.message = f"Password '{self._password}' is not correct. Please enter valid password."
        else:
            self.message = FIRST_PROMPT_MESSAGE
        self._password = None
        self._key = None
        await self.state.delete(PASSWORD_KEY)
        self.status = GateState.NEEDS_PROMPT

    def _derive(self, password: str) -> str:
        return hash_password(password, self.salt, iterations=self.iterations)


__all__ = [
    "GateState",
    "PasswordProvider",
    "StaticPasswordProvider",
    "EncryptionGate",
    "FIRST_PROMPT_MESSAGE",
]
