"""Shared helpers for note store tests."""

from __future__ import annotations

# Keeps key derivation fast; production uses 480 000 iterations.
TEST_KDF_ITERATIONS = 1_000


class ScriptedPasswordProvider:
    """Answers password prompts from a fixed list and records the messages."""

    def __init__(self, *passwords: str) -> None:
        self.passwords = list(passwords)
        self.messages: list[str] = []

    async def get_password(self, message: str) -> str:
        self.messages.append(message)
        if not self.passwords:
            raise RuntimeError("no more passwords")
        return self.passwords.pop(0)
