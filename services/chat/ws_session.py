"""Dispatch chat websocket events to the conversation orchestrator."""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, Optional, Set

from fastapi import WebSocket

from models.media import AttachedFile
from services.chat.orchestrator import ConversationOrchestrator
from utils.media_codec import data_url_to_file
from utils.media_validation import validate_attachment_type

LOGGER = logging.getLogger(__name__)

BUSY_DETAIL = "A response is already in progress."


class ChatSocketHandler:
	"""Route websocket messages for one connected client."""

	def __init__(self, orchestrator: ConversationOrchestrator) -> None:
		self.orchestrator = orchestrator
		self._turns: Set[asyncio.Task] = set()

	async def handle(self, websocket: WebSocket, payload: Dict[str, Any]) -> None:
		"""Process a single inbound websocket payload."""
		request_id = payload.get("request_id")
		message_type = payload.get("type")
		try:
			if message_type == "chat.send":
				result = self._start_turn(websocket, payload)
			elif message_type == "chat.stage_image":
				result = self._stage_image(payload)
			elif message_type == "chat.stage_attachment":
				result = self._stage_attachment(payload)
			elif message_type == "chat.clear_attachment":
				result = {"type": "chat.attachment_cleared", "accepted": self.orchestrator.clear_staged_attachment()}
			elif message_type == "toggles.update":
				result = self._update_toggles(payload)
			elif message_type == "session.load":
				result = self._load_session(payload)
			elif message_type == "session.new":
				result = {"type": "session.new", "accepted": self.orchestrator.new_chat()}
			else:
				raise ValueError("Unsupported message type.")
			result["request_id"] = request_id
			await self._send(websocket, result)
		except Exception as exc:
			await self._send_error(websocket, request_id, str(exc))

	def _attachment_from(self, raw: Dict[str, Any]) -> Optional[AttachedFile]:
		if not raw.get("data_url"):
			return None
		attachment = data_url_to_file(raw["data_url"], raw.get("filename") or "attachment")
		validate_attachment_type(attachment.mime_type)
		return attachment

	def _start_turn(self, websocket: WebSocket, payload: Dict[str, Any]) -> Dict[str, Any]:
		"""Launch a turn without blocking the receive loop; busy sends are dropped."""
		text = payload.get("text") or ""
		attachment = self._attachment_from(payload.get("attachment") or {})
		if self.orchestrator.is_loading:
			return {"type": "chat.dropped", "detail": BUSY_DETAIL}
		task = asyncio.get_running_loop().create_task(
			self._run_turn(websocket, payload.get("request_id"), text, attachment)
		)
		self._turns.add(task)
		task.add_done_callback(self._turns.discard)
		return {"type": "chat.accepted"}

	async def _run_turn(self, websocket: WebSocket, request_id: Any, text: str, attachment: Optional[AttachedFile]) -> None:
		# Another turn may have started between acceptance and this task running.
		reply = await self.orchestrator.send(text, attachment)
		if reply is None:
			result = {"type": "chat.dropped", "detail": BUSY_DETAIL}
		else:
			result = {"type": "chat.completed", "message_id": reply.id}
		result["request_id"] = request_id
		try:
			await self._send(websocket, result)
		except Exception as exc:
			LOGGER.warning("Could not report turn result to the client: %s", exc)

	def _stage_attachment(self, payload: Dict[str, Any]) -> Dict[str, Any]:
		attachment = self._attachment_from(payload.get("attachment") or {})
		if attachment is None:
			raise ValueError("attachment.data_url is required.")
		accepted = self.orchestrator.stage_attachment(attachment)
		return {"type": "chat.attachment_staged", "accepted": accepted, "filename": attachment.filename}

	def _stage_image(self, payload: Dict[str, Any]) -> Dict[str, Any]:
		image_url = payload.get("image_url") or ""
		if not image_url:
			raise ValueError("image_url is required.")
		accepted = self.orchestrator.stage_image_for_editing(image_url)
		return {"type": "chat.image_staged", "accepted": accepted, "model": self.orchestrator.model}

	def _update_toggles(self, payload: Dict[str, Any]) -> Dict[str, Any]:
		if payload.get("reasoning") and payload.get("turbo"):
			raise ValueError("Reasoning and turbo modes are mutually exclusive.")
		if "reasoning" in payload:
			self.orchestrator.set_reasoning(bool(payload["reasoning"]))
		if "turbo" in payload:
			self.orchestrator.set_turbo(bool(payload["turbo"]))
		if "search" in payload:
			self.orchestrator.set_search(bool(payload["search"]))
		return {"type": "toggles.state", **self.orchestrator.toggles.to_dict()}

	def _load_session(self, payload: Dict[str, Any]) -> Dict[str, Any]:
		session_id: Optional[str] = payload.get("session_id")
		if not session_id:
			raise ValueError("session_id is required.")
		history = self.orchestrator.load_session(session_id)
		if history is None:
			raise KeyError(f"Session {session_id} not found")
		return {"type": "session.loaded", "session_id": session_id}

	async def _send_error(self, websocket: WebSocket, request_id: Any, detail: str) -> None:
		await self._send(websocket, {"type": "error", "request_id": request_id, "detail": detail})

	async def _send(self, websocket: WebSocket, payload: Dict[str, Any]) -> None:
		await websocket.send_text(json.dumps(payload))
