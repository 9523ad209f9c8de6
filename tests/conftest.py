import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
TESTS = Path(__file__).resolve().parent
for path in (ROOT, TESTS):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

from dal.kv_store import MemoryKeyValueStore  # noqa: E402
from fakes import FakeProvider  # noqa: E402
from services.chat.orchestrator import ConversationOrchestrator  # noqa: E402
from services.chat.session_store import SessionStore  # noqa: E402


@pytest.fixture
def kv_store():
    return MemoryKeyValueStore()


@pytest.fixture
def store(kv_store):
    return SessionStore(kv_store, debounce_seconds=0.01)


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def orchestrator(provider, store):
    return ConversationOrchestrator(provider, store, model="gpt-5-mini", error_message="Something went wrong.")
