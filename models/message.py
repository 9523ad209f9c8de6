"""Conversation timeline entries."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, List, Optional
from uuid import uuid4

USER = "user"
ASSISTANT = "assistant"

ASPECT_RATIOS = ("1:1", "16:9", "9:16", "4:3", "3:4")

# Fields holding image URLs; data: URLs in these are stripped before persisting.
IMAGE_FIELDS = ("attached_image_url", "generated_image_url")


def new_message_id() -> str:
    return uuid4().hex


@dataclass
class Message:
    """One entry in the conversation timeline.

    Attributes:
        id: Unique identifier.
        sender: ``user`` or ``assistant``.
        text: User-visible answer content. Grows while streaming.
        reasoning_text: Private reasoning trace, only set in reasoning mode.
        is_streaming: True until the pathway completes or fails.
        model_used: Model that produced the assistant message.
        attached_image_url: Data URL of the attachment sent with a user turn.
        generated_image_url: Data URL of an image produced by the model.
        aspect_ratio: Aspect ratio requested for image generation.
        suggestions: Up to three follow-up actions.
        status_label: Transient progress text, cleared on completion.
        reasoning_mode: Whether reasoning mode was active for this turn.
        sources: Web-search citations as ``{"url", "title"}`` dicts.
    """

    sender: str
    text: str = ""
    id: str = field(default_factory=new_message_id)
    reasoning_text: Optional[str] = None
    is_streaming: bool = False
    model_used: Optional[str] = None
    attached_image_url: Optional[str] = None
    generated_image_url: Optional[str] = None
    aspect_ratio: Optional[str] = None
    suggestions: Optional[List[str]] = None
    status_label: Optional[str] = None
    reasoning_mode: bool = False
    sources: Optional[List[Dict[str, str]]] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Message":
        """Build a Message from stored data, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in data.items() if key in known})
