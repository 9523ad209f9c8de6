"""FastAPI routes for chat turns and feature toggles."""

from typing import Optional

from fastapi import APIRouter, File, Form, HTTPException, Request, UploadFile
from pydantic import BaseModel

from controllers.chat_controller import (
    change_aspect_ratio,
    change_model,
    chat_state,
    clear_attachment,
    send_message,
    stage_image,
    stage_upload,
    update_location,
    update_toggles,
)

router = APIRouter(prefix="/chat")


class TogglePayload(BaseModel):
    reasoning: Optional[bool] = None
    turbo: Optional[bool] = None
    search: Optional[bool] = None


class ModelPayload(BaseModel):
    model: str


class AspectRatioPayload(BaseModel):
    aspect_ratio: str


class LocationPayload(BaseModel):
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class StageImagePayload(BaseModel):
    image_url: str


@router.get("/messages")
async def get_messages_route(request: Request):
    return chat_state(request)


@router.post("/messages")
async def post_message_route(
    request: Request,
    text: str = Form(""),
    file: Optional[UploadFile] = File(None),
):
    """Send a user turn and wait for the assistant reply."""
    try:
        return await send_message(request, text, file)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))


@router.put("/toggles")
async def put_toggles_route(request: Request, payload: TogglePayload):
    return update_toggles(request, payload.reasoning, payload.turbo, payload.search)


@router.put("/model")
async def put_model_route(request: Request, payload: ModelPayload):
    return change_model(request, payload.model)


@router.put("/aspect-ratio")
async def put_aspect_ratio_route(request: Request, payload: AspectRatioPayload):
    return change_aspect_ratio(request, payload.aspect_ratio)


@router.put("/location")
async def put_location_route(request: Request, payload: LocationPayload):
    return update_location(request, payload.latitude, payload.longitude)


@router.post("/stage-image")
async def post_stage_image_route(request: Request, payload: StageImagePayload):
    try:
        return stage_image(request, payload.image_url)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))


@router.post("/attachment")
async def post_attachment_route(request: Request, file: UploadFile = File(...)):
    """Stage a file to be sent with the next message."""
    try:
        return await stage_upload(request, file)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))


@router.delete("/attachment")
async def delete_attachment_route(request: Request):
    return clear_attachment(request)
