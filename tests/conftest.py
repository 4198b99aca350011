"""Pytest helpers for path configuration and shared note store fixtures."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

_REPO_ROOT = Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

from notesys.crypto.gate import EncryptionGate  # noqa: E402
from notesys.notes.session import NoteSession  # noqa: E402
from notesys.storage.state import MemoryState  # noqa: E402

from .utils import TEST_KDF_ITERATIONS, ScriptedPasswordProvider  # noqa: E402


@pytest.fixture()
def state() -> MemoryState:
    return MemoryState()


@pytest.fixture()
def kv_store() -> dict[str, str]:
    return {}


@pytest.fixture()
def provider() -> ScriptedPasswordProvider:
    return ScriptedPasswordProvider()


@pytest.fixture()
def gate(provider: ScriptedPasswordProvider, state: MemoryState) -> EncryptionGate:
    return EncryptionGate(provider, state, iterations=TEST_KDF_ITERATIONS)


@pytest.fixture()
def session(state: MemoryState, kv_store: dict[str, str], gate: EncryptionGate) -> NoteSession:
    return NoteSession(state, kv_store, gate)
