"""Session history helpers behind the HTTP routes."""

from __future__ import annotations

from typing import Any, Dict, List

from fastapi import HTTPException, Request

from services.chat.orchestrator import ConversationOrchestrator


def _orchestrator(request: Request) -> ConversationOrchestrator:
	orchestrator = getattr(request.app.state, "orchestrator", None)
	if orchestrator is None:
		raise HTTPException(status_code=503, detail="Conversation engine unavailable")
	return orchestrator


def list_sessions(request: Request) -> List[Dict[str, Any]]:
	"""Return stored sessions, newest first, without their messages."""
	store = _orchestrator(request).store
	sessions = sorted(store.sessions, key=lambda session: session.timestamp, reverse=True)
	return [
		{
			"id": session.id,
			"title": session.title,
			"timestamp": session.timestamp,
			"message_count": len(session.messages),
			"active": session.id == store.active_session_id,
		}
		for session in sessions
	]


def load_session(request: Request, session_id: str) -> Dict[str, Any]:
	"""Activate a stored session and return its timeline."""
	orchestrator = _orchestrator(request)
	if orchestrator.is_loading:
		raise HTTPException(status_code=409, detail="Cannot switch sessions while a response is in progress.")
	history = orchestrator.load_session(session_id)
	if history is None:
		raise HTTPException(status_code=404, detail=f"Session {session_id} not found")
	return {"session_id": session_id, "messages": orchestrator.snapshot(), "history": history}


def start_new_chat(request: Request) -> Dict[str, Any]:
	orchestrator = _orchestrator(request)
	if not orchestrator.new_chat():
		raise HTTPException(status_code=409, detail="Cannot start a new chat while a response is in progress.")
	return {"session_id": None, "messages": []}
