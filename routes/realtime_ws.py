"""WebSocket endpoint streaming timeline updates for the chat client."""

from __future__ import annotations

import asyncio
import json

from fastapi import APIRouter, Depends, HTTPException, WebSocket
from starlette.websockets import WebSocketDisconnect

from services.chat.orchestrator import ConversationOrchestrator
from services.chat.ws_session import ChatSocketHandler

router = APIRouter()


def _require_orchestrator(websocket: WebSocket) -> ConversationOrchestrator:
	orchestrator = getattr(websocket.app.state, "orchestrator", None)
	if orchestrator is None:
		raise HTTPException(status_code=500, detail="Conversation engine unavailable")
	return orchestrator


async def _forward_updates(websocket: WebSocket, updates: "asyncio.Queue[list]") -> None:
	while True:
		messages = await updates.get()
		await websocket.send_text(json.dumps({"type": "timeline.update", "messages": messages}))


@router.websocket("/ws/chat")
async def chat_socket(websocket: WebSocket, orchestrator: ConversationOrchestrator = Depends(_require_orchestrator)):
	"""Accept chat commands and push a timeline snapshot after every change."""
	await websocket.accept()
	updates: "asyncio.Queue[list]" = asyncio.Queue()
	unsubscribe = orchestrator.subscribe(updates.put_nowait)
	forwarder = asyncio.create_task(_forward_updates(websocket, updates))
	updates.put_nowait(orchestrator.snapshot())

	handler = ChatSocketHandler(orchestrator)
	try:
		while True:
			try:
				raw = await websocket.receive_text()
			except WebSocketDisconnect:
				break
			try:
				payload = json.loads(raw)
			except json.JSONDecodeError:
				await websocket.send_text(json.dumps({"type": "error", "detail": "Payload must be JSON"}))
				continue
			await handler.handle(websocket, payload)
	finally:
		unsubscribe()
		forwarder.cancel()
