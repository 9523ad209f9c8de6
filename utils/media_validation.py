"""Validation helpers for uploaded attachments."""

from fastapi import HTTPException, UploadFile

from models.media import AttachedFile
from utils.media_codec import sniff_mime_type

ALLOWED_ATTACHMENT_TYPES = {
    "image/png",
    "image/jpeg",
    "image/webp",
    "image/gif",
    "application/pdf",
    "text/plain",
}

MAX_ATTACHMENT_BYTES = 20 * 1024 * 1024


def validate_attachment_type(mime_type: str) -> None:
    """Reject attachment types the provider cannot take inline."""
    if mime_type not in ALLOWED_ATTACHMENT_TYPES:
        raise HTTPException(status_code=415, detail=f"Unsupported attachment type: {mime_type}")


async def read_attachment(upload: UploadFile) -> AttachedFile:
    """Read an uploaded file into an AttachedFile, checking type and size.

    The declared content type is trusted when present; otherwise image formats
    are detected from the bytes.
    """
    if not upload.filename:
        raise HTTPException(status_code=400, detail="Attachment must have a filename.")
    data = await upload.read()
    if not data:
        raise HTTPException(status_code=400, detail="Uploaded attachment is empty.")
    if len(data) > MAX_ATTACHMENT_BYTES:
        raise HTTPException(status_code=413, detail="Attachment is too large.")
    mime_type = sniff_mime_type(data, upload.content_type)
    validate_attachment_type(mime_type)
    return AttachedFile(filename=upload.filename, data=data, mime_type=mime_type)
