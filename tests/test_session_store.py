import asyncio
import json

import pytest

from dal.kv_store import MemoryKeyValueStore, StorageQuotaExceeded
from models.message import ASSISTANT, USER, Message
from services.chat.session_store import FALLBACK_SESSION_COUNT, SessionStore, history_from_messages


class RecordingStore(MemoryKeyValueStore):
    def __init__(self, failures=0, **kwargs):
        super().__init__(**kwargs)
        self.failures = failures
        self.writes = []

    async def set(self, key, value):
        self.writes.append(value)
        if self.failures:
            self.failures -= 1
            raise StorageQuotaExceeded("full")
        await super().set(key, value)


def _turn(text, reply="ok", **extra):
    return [Message(sender=USER, text=text, **extra), Message(sender=ASSISTANT, text=reply)]


@pytest.mark.asyncio
async def test_first_turn_creates_active_session_with_title():
    store = SessionStore(RecordingStore(), debounce_seconds=0.01)
    long_prompt = "Explain the difference between a list and a tuple in Python"
    session = store.record_turn(_turn(long_prompt))
    assert store.active_session_id == session.id
    assert session.title == long_prompt[:40] + "..."
    assert len(store.sessions) == 1


@pytest.mark.asyncio
async def test_short_title_is_not_truncated():
    store = SessionStore(RecordingStore(), debounce_seconds=0.01)
    assert store.record_turn(_turn("Hello")).title == "Hello"


@pytest.mark.asyncio
async def test_timeline_without_user_message_is_ignored():
    kv = RecordingStore()
    store = SessionStore(kv, debounce_seconds=0.01)
    assert store.record_turn([Message(sender=ASSISTANT, text="Welcome")]) is None
    await asyncio.sleep(0.05)
    assert store.sessions == []
    assert kv.writes == []


@pytest.mark.asyncio
async def test_unchanged_timeline_does_not_write_again():
    kv = RecordingStore()
    store = SessionStore(kv, debounce_seconds=0.01)
    messages = _turn("Hi")
    store.record_turn(messages)
    await asyncio.sleep(0.05)
    store.record_turn(messages)
    await asyncio.sleep(0.05)
    assert len(kv.writes) == 1


@pytest.mark.asyncio
async def test_rapid_changes_are_coalesced_into_one_write():
    kv = RecordingStore()
    store = SessionStore(kv, debounce_seconds=0.05)
    messages = _turn("Hi")
    store.record_turn(messages)
    for index in range(3):
        messages.append(Message(sender=ASSISTANT, text=f"more {index}"))
        store.record_turn(messages)
    await asyncio.sleep(0.15)
    assert len(kv.writes) == 1
    stored = json.loads(kv.writes[0])
    assert len(stored[0]["messages"]) == 5


@pytest.mark.asyncio
async def test_recorded_messages_are_copies():
    store = SessionStore(RecordingStore(), debounce_seconds=0.01)
    messages = _turn("Hi")
    session = store.record_turn(messages)
    messages[1].text = "changed later"
    assert session.messages[1].text == "ok"
    await store.flush()


@pytest.mark.asyncio
async def test_flush_writes_pending_change_immediately():
    kv = RecordingStore()
    store = SessionStore(kv, debounce_seconds=10)
    store.record_turn(_turn("Hi"))
    await store.flush()
    assert len(kv.writes) == 1


@pytest.mark.asyncio
async def test_persist_strips_inline_images_only():
    kv = RecordingStore()
    store = SessionStore(kv, debounce_seconds=10)
    messages = _turn("Draw", attached_image_url="data:image/png;base64,AAAA")
    messages[1].generated_image_url = "https://cdn.example.com/cat.png"
    store.record_turn(messages)
    assert await store.persist() is True
    stored = json.loads(kv.writes[-1])[0]["messages"]
    assert "attached_image_url" not in stored[0]
    assert stored[1]["generated_image_url"] == "https://cdn.example.com/cat.png"
    await store.flush()


@pytest.mark.asyncio
async def test_quota_failure_falls_back_to_recent_sessions_without_images():
    kv = RecordingStore(failures=1)
    store = SessionStore(kv, debounce_seconds=10)
    for index in range(FALLBACK_SESSION_COUNT + 2):
        store.clear_active()
        messages = _turn(f"prompt {index}")
        messages[1].generated_image_url = "https://cdn.example.com/img.png"
        store.record_turn(messages)

    assert await store.persist() is True
    stored = json.loads(kv.writes[-1])
    assert [session["title"] for session in stored] == [f"prompt {i}" for i in range(2, FALLBACK_SESSION_COUNT + 2)]
    assert all(msg.get("generated_image_url") is None for session in stored for msg in session["messages"])
    assert len(store.sessions) == FALLBACK_SESSION_COUNT + 2
    await store.flush()


@pytest.mark.asyncio
async def test_double_failure_does_not_raise_and_keeps_memory():
    kv = RecordingStore(failures=2)
    store = SessionStore(kv, debounce_seconds=10)
    messages = _turn("Hi")
    session = store.record_turn(messages)
    assert await store.persist() is False
    assert len(kv.writes) == 2
    assert store.sessions == [session]
    assert session.messages[0].text == "Hi"
    await store.flush()


@pytest.mark.asyncio
async def test_load_round_trips_sessions():
    kv = MemoryKeyValueStore()
    store = SessionStore(kv, debounce_seconds=10)
    store.record_turn(_turn("Hi"))
    await store.flush()

    reloaded = SessionStore(kv)
    sessions = await reloaded.load()
    assert [s.title for s in sessions] == ["Hi"]
    assert sessions[0].messages[0].sender == USER


@pytest.mark.asyncio
async def test_corrupt_history_loads_as_empty():
    kv = MemoryKeyValueStore()
    await kv.set("chatHistory", "{not json")
    store = SessionStore(kv)
    assert await store.load() == []


def test_history_pairs_follow_message_order():
    messages = _turn("Q1", "A1") + _turn("Q2", "A2")
    assert history_from_messages(messages) == [
        {"role": "user", "text": "Q1"},
        {"role": "assistant", "text": "A1"},
        {"role": "user", "text": "Q2"},
        {"role": "assistant", "text": "A2"},
    ]
