"""Utilities to build multimodal input payloads for the Responses API."""

from typing import Any, Dict, List, Sequence, Union

from models.media import ContentPart, InlinePart
from utils.media_codec import inline_part_to_data_url


def build_content_item(part: ContentPart, index: int = 0) -> Dict[str, Any]:
    """Map one content part onto a Responses API input item."""
    if isinstance(part, InlinePart):
        data_url = inline_part_to_data_url(part)
        if part.mime_type.startswith("image/"):
            return {"type": "input_image", "image_url": data_url}
        extension = part.mime_type.split("/")[-1] or "bin"
        return {"type": "input_file", "filename": f"attachment-{index}.{extension}", "file_data": data_url}
    return {"type": "input_text", "text": part}


def build_user_message(content: Union[str, Sequence[ContentPart]]) -> Dict[str, Any]:
    """Compose a user message; each part becomes a distinct content item."""
    parts: Sequence[ContentPart] = [content] if isinstance(content, str) else content
    return {
        "type": "message",
        "role": "user",
        "content": [build_content_item(part, index) for index, part in enumerate(parts)],
    }


def build_history(history: Sequence[Dict[str, str]]) -> List[Dict[str, Any]]:
    """Convert `{role, text}` pairs into Responses API input messages."""
    items: List[Dict[str, Any]] = []
    for entry in history:
        role = "user" if entry.get("role") == "user" else "assistant"
        items.append({"type": "message", "role": role, "content": entry.get("text") or ""})
    return items
