"""Conversation history store with debounced, quota-aware persistence."""

from __future__ import annotations

import asyncio
import copy
import json
import logging
import os
import time
from typing import Dict, List, Optional
from uuid import uuid4

from dal.kv_store import StorageQuotaExceeded
from models.message import IMAGE_FIELDS, USER, Message
from models.session_models import ChatSession, session_title

LOGGER = logging.getLogger(__name__)

STORAGE_KEY = "chatHistory"
DEBOUNCE_SECONDS = float(os.getenv("CHAT_PERSIST_DEBOUNCE_SECONDS", "1.0"))
FALLBACK_SESSION_COUNT = 5


def _serialize_messages(messages: List[Message]) -> str:
	return json.dumps([msg.to_dict() for msg in messages], sort_keys=True)


def _strip_message(data: Dict[str, object], *, inline_only: bool) -> Dict[str, object]:
	"""Drop image payloads from a serialized message.

	With `inline_only` only data: URLs are removed; otherwise every image URL is.
	"""
	for key in IMAGE_FIELDS:
		value = data.get(key)
		if value is None:
			continue
		if not inline_only or (isinstance(value, str) and value.startswith("data:")):
			data.pop(key, None)
	return data


def history_from_messages(messages: List[Message]) -> List[Dict[str, str]]:
	"""Return the provider-facing history as ordered `{role, text}` pairs."""
	return [{"role": msg.sender, "text": msg.text} for msg in messages]


class SessionStore:
	"""Own the session list, the active-session pointer and their persistence.

	Args:
		kv_store: Bounded store exposing async `get(key)` and `set(key, value)`.
		debounce_seconds: Quiet period before a scheduled write runs.
		storage_key: Key the whole history is stored under.
	"""

	def __init__(self, kv_store, *, debounce_seconds: float = DEBOUNCE_SECONDS, storage_key: str = STORAGE_KEY) -> None:
		self._kv = kv_store
		self.debounce_seconds = debounce_seconds
		self.storage_key = storage_key
		self._sessions: List[ChatSession] = []
		self.active_session_id: Optional[str] = None
		self._persist_task: Optional[asyncio.Task] = None

	@property
	def sessions(self) -> List[ChatSession]:
		return list(self._sessions)

	@property
	def active_session(self) -> Optional[ChatSession]:
		if self.active_session_id is None:
			return None
		return self.get(self.active_session_id)

	def get(self, session_id: str) -> Optional[ChatSession]:
		"""Return a session by id, or None if unknown."""
		for session in self._sessions:
			if session.id == session_id:
				return session
		return None

	async def load(self) -> List[ChatSession]:
		"""Read persisted sessions; unreadable history yields an empty list."""
		try:
			raw = await self._kv.get(self.storage_key)
			if raw:
				self._sessions = [ChatSession.from_dict(item) for item in json.loads(raw)]
		except Exception as exc:
			LOGGER.warning("Failed to load chat history, starting empty: %s", exc)
			self._sessions = []
		return self.sessions

	def activate(self, session_id: str) -> Optional[ChatSession]:
		"""Mark a stored session as active and return it."""
		session = self.get(session_id)
		if session is not None:
			self.active_session_id = session.id
		return session

	def clear_active(self) -> None:
		self.active_session_id = None

	def record_turn(self, messages: List[Message]) -> Optional[ChatSession]:
		"""Save the current timeline into the active session, creating one if needed.

		Call only when no turn is in flight. Timelines without a user message are
		ignored; an unchanged timeline does not trigger a write.
		"""
		user_messages = [msg for msg in messages if msg.sender == USER]
		if not user_messages:
			return None

		active = self.active_session
		if active is not None:
			if _serialize_messages(active.messages) == _serialize_messages(messages):
				return active
			active.messages = copy.deepcopy(messages)
			active.timestamp = time.time() * 1000
			self.schedule_persist()
			return active

		session = ChatSession(
			id=uuid4().hex,
			title=session_title(user_messages[0].text),
			messages=copy.deepcopy(messages),
		)
		self._sessions.append(session)
		self.active_session_id = session.id
		self.schedule_persist()
		return session

	def schedule_persist(self) -> None:
		"""Restart the debounce timer; only the last change within the window is written."""
		if self._persist_task is not None and not self._persist_task.done():
			self._persist_task.cancel()
		self._persist_task = asyncio.get_running_loop().create_task(self._persist_later())

	async def _persist_later(self) -> None:
		await asyncio.sleep(self.debounce_seconds)
		await self.persist()

	async def flush(self) -> None:
		"""Write immediately if a debounced write is pending."""
		task, self._persist_task = self._persist_task, None
		if task is None or task.done():
			return
		task.cancel()
		await self.persist()

	def _snapshot(self, sessions: List[ChatSession], *, inline_only: bool) -> str:
		payload = []
		for session in sessions:
			data = session.to_dict()
			data["messages"] = [_strip_message(msg, inline_only=inline_only) for msg in data["messages"]]
			payload.append(data)
		return json.dumps(payload)

	async def persist(self) -> bool:
		"""Write the history, degrading to the most recent sessions on quota errors.

		Returns True if one of the tiers was written. Never raises.
		"""
		try:
			await self._kv.set(self.storage_key, self._snapshot(self._sessions, inline_only=True))
			return True
		except StorageQuotaExceeded as exc:
			LOGGER.warning("Chat history exceeds storage quota, trimming: %s", exc)
		except Exception as exc:
			LOGGER.warning("Failed to save chat history, trimming: %s", exc)

		recent = self._sessions[-FALLBACK_SESSION_COUNT:]
		try:
			await self._kv.set(self.storage_key, self._snapshot(recent, inline_only=False))
			return True
		except Exception as exc:
			LOGGER.error("Critical storage failure, history not persisted: %s", exc)
			return False
