"""Session and toggle models for the conversation client."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List

from models.message import Message

TITLE_LIMIT = 40


def session_title(text: str) -> str:
	"""Return a bounded title derived from the first user turn."""
	title = text[:TITLE_LIMIT]
	return title + "..." if len(text) > TITLE_LIMIT else title


@dataclass
class ChatSession:
	"""A named, timestamped, ordered sequence of messages."""

	id: str
	title: str
	messages: List[Message] = field(default_factory=list)
	timestamp: float = field(default_factory=lambda: time.time() * 1000)

	def to_dict(self) -> Dict[str, Any]:
		return {
			"id": self.id,
			"title": self.title,
			"timestamp": self.timestamp,
			"messages": [msg.to_dict() for msg in self.messages],
		}

	@classmethod
	def from_dict(cls, data: Dict[str, Any]) -> "ChatSession":
		return cls(
			id=str(data["id"]),
			title=data.get("title") or "",
			timestamp=float(data.get("timestamp") or 0),
			messages=[Message.from_dict(item) for item in data.get("messages") or []],
		)


@dataclass
class ToggleState:
	"""Per-conversation feature toggles.

	Reasoning and turbo are mutually exclusive: enabling one clears the other.
	Use the setters rather than assigning the flags directly.
	"""

	model: str
	reasoning_enabled: bool = False
	turbo_enabled: bool = False
	search_enabled: bool = False

	def set_reasoning(self, enabled: bool) -> None:
		self.reasoning_enabled = enabled
		if enabled:
			self.turbo_enabled = False

	def set_turbo(self, enabled: bool) -> None:
		self.turbo_enabled = enabled
		if enabled:
			self.reasoning_enabled = False

	def set_search(self, enabled: bool) -> None:
		self.search_enabled = enabled

	def to_dict(self) -> Dict[str, Any]:
		return {
			"model": self.model,
			"reasoning_enabled": self.reasoning_enabled,
			"turbo_enabled": self.turbo_enabled,
			"search_enabled": self.search_enabled,
		}
