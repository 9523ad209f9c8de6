"""Chat turn and toggle helpers behind the HTTP routes."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import HTTPException, Request, UploadFile

from models.media import Location
from services.chat.orchestrator import ConversationOrchestrator
from utils.media_validation import read_attachment


def _orchestrator(request: Request) -> ConversationOrchestrator:
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise HTTPException(status_code=503, detail="Conversation engine unavailable")
    return orchestrator


def chat_state(request: Request) -> Dict[str, Any]:
    """Return the timeline plus the current toggle state."""
    orchestrator = _orchestrator(request)
    staged = orchestrator.staged_file
    return {
        "messages": orchestrator.snapshot(),
        "is_loading": orchestrator.is_loading,
        "toggles": orchestrator.toggles.to_dict(),
        "aspect_ratio": orchestrator.aspect_ratio,
        "staged_attachment": staged.filename if staged else None,
        "active_session_id": orchestrator.store.active_session_id,
    }


async def send_message(request: Request, text: str, file: Optional[UploadFile] = None) -> Dict[str, Any]:
    """Run one turn to completion and return the assistant reply."""
    orchestrator = _orchestrator(request)
    attachment = await read_attachment(file) if file is not None else None
    if orchestrator.is_loading:
        raise HTTPException(status_code=409, detail="A response is already in progress.")
    reply = await orchestrator.send(text, attachment)
    if reply is None:
        if orchestrator.is_loading:
            raise HTTPException(status_code=409, detail="A response is already in progress.")
        raise HTTPException(status_code=400, detail="Message text or an attachment is required.")
    return {"message": reply.to_dict(), "session_id": orchestrator.store.active_session_id}


def update_toggles(
    request: Request,
    reasoning: Optional[bool] = None,
    turbo: Optional[bool] = None,
    search: Optional[bool] = None,
) -> Dict[str, Any]:
    """Apply toggle changes; reasoning and turbo cannot both be switched on."""
    if reasoning and turbo:
        raise HTTPException(status_code=400, detail="Reasoning and turbo modes are mutually exclusive.")
    orchestrator = _orchestrator(request)
    if reasoning is not None:
        orchestrator.set_reasoning(reasoning)
    if turbo is not None:
        orchestrator.set_turbo(turbo)
    if search is not None:
        orchestrator.set_search(search)
    return orchestrator.toggles.to_dict()


def change_model(request: Request, model: str) -> Dict[str, Any]:
    orchestrator = _orchestrator(request)
    if not orchestrator.set_model(model):
        raise HTTPException(status_code=409, detail="Cannot switch models while a response is in progress.")
    return orchestrator.toggles.to_dict()


def change_aspect_ratio(request: Request, ratio: str) -> Dict[str, Any]:
    orchestrator = _orchestrator(request)
    try:
        orchestrator.set_aspect_ratio(ratio)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"aspect_ratio": orchestrator.aspect_ratio}


def update_location(request: Request, latitude: Optional[float], longitude: Optional[float]) -> Dict[str, Any]:
    orchestrator = _orchestrator(request)
    if latitude is None or longitude is None:
        orchestrator.set_location(None)
        return {"location": None}
    orchestrator.set_location(Location(latitude=latitude, longitude=longitude))
    return {"location": {"latitude": latitude, "longitude": longitude}}


def stage_image(request: Request, image_url: str) -> Dict[str, Any]:
    """Stage a generated image for editing."""
    orchestrator = _orchestrator(request)
    try:
        staged = orchestrator.stage_image_for_editing(image_url)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if not staged:
        raise HTTPException(status_code=409, detail="Cannot stage an image while a response is in progress.")
    return {"model": orchestrator.model, "staged_attachment": orchestrator.staged_file.filename}


async def stage_upload(request: Request, file: UploadFile) -> Dict[str, Any]:
    """Stage an uploaded file as the attachment for the next turn."""
    orchestrator = _orchestrator(request)
    attachment = await read_attachment(file)
    if not orchestrator.stage_attachment(attachment):
        raise HTTPException(status_code=409, detail="Cannot stage an attachment while a response is in progress.")
    return {"staged_attachment": attachment.filename, "mime_type": attachment.mime_type}


def clear_attachment(request: Request) -> Dict[str, Any]:
    orchestrator = _orchestrator(request)
    if not orchestrator.clear_staged_attachment():
        raise HTTPException(status_code=409, detail="Cannot clear the attachment while a response is in progress.")
    return {"staged_attachment": None}
