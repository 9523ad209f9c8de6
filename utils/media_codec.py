"""Data-shape conversions between files, data URLs and inline payloads."""

from __future__ import annotations

import base64
import binascii
import io
from typing import Optional

from PIL import Image, UnidentifiedImageError

from models.media import AttachedFile, InlinePart

DEFAULT_MIME_TYPE = "application/octet-stream"


def sniff_mime_type(data: bytes, declared: Optional[str] = None) -> str:
    """Return the declared MIME type, or detect image formats when it is missing."""
    mime = (declared or "").lower().split(";", 1)[0].strip()
    if mime and mime != DEFAULT_MIME_TYPE:
        return mime
    try:
        with Image.open(io.BytesIO(data)) as img:
            detected = Image.MIME.get(img.format or "")
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError):
        detected = None
    return detected or DEFAULT_MIME_TYPE


def file_to_inline_part(file: AttachedFile) -> InlinePart:
    return InlinePart(data=file.data, mime_type=sniff_mime_type(file.data, file.mime_type))


def inline_part_to_data_url(part: InlinePart) -> str:
    encoded = base64.b64encode(part.data).decode("utf-8")
    return f"data:{part.mime_type};base64,{encoded}"


def file_to_data_url(file: AttachedFile) -> str:
    return inline_part_to_data_url(file_to_inline_part(file))


def data_url_to_inline_part(url: str) -> InlinePart:
    """Decode a ``data:<mime>;base64,<payload>`` URL.

    Raises:
        ValueError: If the URL is not a base64 data URL.
    """
    if not url.startswith("data:") or "," not in url:
        raise ValueError("Expected a base64 data: URL.")
    header, payload = url.split(",", 1)
    if not header.endswith(";base64"):
        raise ValueError("Only base64 data URLs are supported.")
    mime_type = header.removeprefix("data:").removesuffix(";base64") or DEFAULT_MIME_TYPE
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError("Data URL payload is not valid base64.") from exc
    return InlinePart(data=data, mime_type=mime_type)


def data_url_to_file(url: str, filename: str) -> AttachedFile:
    part = data_url_to_inline_part(url)
    return AttachedFile(filename=filename, data=part.data, mime_type=part.mime_type)


def b64_to_inline_part(b64_data: str, mime_type: str = "image/png") -> InlinePart:
    """Wrap a base64 string returned by the provider."""
    return InlinePart(data=base64.b64decode(b64_data), mime_type=mime_type)
