from __future__ import annotations

import asyncio

import pytest

from notesys.crypto.gate import (
    FIRST_PROMPT_MESSAGE,
    EncryptionGate,
    GateState,
    StaticPasswordProvider,
)
from notesys.errors import DecryptFailure
from notesys.storage.state import PASSWORD_KEY, MemoryState

from ..utils import TEST_KDF_ITERATIONS, ScriptedPasswordProvider


def _blob_for(password: str, content: str) -> bytes:
    other = EncryptionGate(ScriptedPasswordProvider(password), MemoryState(), iterations=TEST_KDF_ITERATIONS)
    return asyncio.run(other.encrypt(content))


def test_remembered_password_needs_no_prompt(provider, state) -> None:
    blob = _blob_for("pw", "hello")
    state.values[PASSWORD_KEY] = "pw"
    gate = EncryptionGate(provider, state, iterations=TEST_KDF_ITERATIONS)

    async def _load() -> bytes:
        return blob

    assert gate.status is GateState.NO_SESSION
    assert asyncio.run(gate.decrypt(_load)) == "hello"
    assert gate.status is GateState.CACHED
    assert provider.messages == []


def test_first_use_prompts_and_remembers(gate, provider, state) -> None:
    provider.passwords.append("pw")

    blob = asyncio.run(gate.encrypt("hello"))

    assert provider.messages == [FIRST_PROMPT_MESSAGE]
    assert state.values[PASSWORD_KEY] == "pw"
    assert gate.status is GateState.CACHED
    assert blob != b"hello"


def test_wrong_password_escalates_message_and_retries(gate, provider, state) -> None:
    blob = _blob_for("right", "the plan")
    provider.passwords.extend(["wrong", "still wrong", "right"])
    loads = 0

    async def _load() -> bytes:
        nonlocal loads
        loads += 1
        return blob

    assert asyncio.run(gate.decrypt(_load)) == "the plan"
    assert provider.messages == [
        FIRST_PROMPT_MESSAGE,
        "Password 'wrong' is not correct. Please enter valid password.",
        "Password 'still wrong' is not correct. Please enter valid password.",
    ]
    assert loads == 3
    assert state.values[PASSWORD_KEY] == "right"
    assert gate.message == FIRST_PROMPT_MESSAGE


def test_stale_remembered_password_is_cleared(provider, state) -> None:
    blob = _blob_for("new", "body")
    state.values[PASSWORD_KEY] = "old"
    provider.passwords.append("new")
    gate = EncryptionGate(provider, state, iterations=TEST_KDF_ITERATIONS)

    async def _load() -> bytes:
        return blob

    assert asyncio.run(gate.decrypt(_load)) == "body"
    assert provider.messages == ["Password 'old' is not correct. Please enter valid password."]


def test_abandoned_prompt_propagates(gate, provider) -> None:
    blob = _blob_for("right", "x")
    provider.passwords.append("wrong")

    async def _load() -> bytes:
        return blob

    with pytest.raises(RuntimeError, match="no more passwords"):
        asyncio.run(gate.decrypt(_load))
    assert gate.status is GateState.NEEDS_PROMPT
    assert gate.has_password() is False


def test_static_provider_fails_on_second_request(state) -> None:
    blob = _blob_for("right", "x")
    gate = EncryptionGate(StaticPasswordProvider("wrong"), state, iterations=TEST_KDF_ITERATIONS)

    async def _load() -> bytes:
        return blob

    with pytest.raises(DecryptFailure):
        asyncio.run(gate.decrypt(_load))


def test_forget_password(gate, state) -> None:
    asyncio.run(gate.remember_password("pw"))
    assert gate.has_password()

    asyncio.run(gate.forget_password())

    assert PASSWORD_KEY not in state.values
    assert gate.status is GateState.NO_SESSION
    assert gate.has_password() is False
