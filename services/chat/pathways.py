"""The three generation pathways a user turn can take.

Each pathway mutates the in-flight assistant message it is given and calls
`notify()` after every visible change. Failures propagate to the orchestrator,
except for the best-effort prompt enhancement step.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Union

from models.media import ContentPart, InlinePart
from models.message import Message
from models.request_config import PROMPT_ENHANCER_MODEL, RequestConfig
from models.session_models import ToggleState
from services.chat.errors import EmptyArtifactError, MissingEditImageError
from services.chat.prompts import image_edit_prompt, prompt_enhancer_prompt
from services.chat.stream_parser import StreamingResponseParser
from utils.media_codec import data_url_to_inline_part, inline_part_to_data_url

LOGGER = logging.getLogger(__name__)

Notify = Callable[[], None]

DEFAULT_ATTACHMENT_PROMPT = "Analyze this file."


@dataclass
class Turn:
    """Everything a pathway needs to serve one user submission."""

    text: str
    model: str
    toggles: ToggleState
    config: RequestConfig
    attachment: Optional[InlinePart] = None
    continuity_image_url: Optional[str] = None
    aspect_ratio: str = "1:1"
    chat_session: Any = None


class ImageEditPathway:
    """Single non-streaming edit of the attached or last generated image."""

    STATUS = "Locking identity features & analyzing structure..."
    DEFAULT_TEXT = "Image edit complete."

    def __init__(self, provider) -> None:
        self.provider = provider

    async def run(self, turn: Turn, message: Message, notify: Notify) -> None:
        message.status_label = self.STATUS
        notify()

        if turn.attachment is not None:
            reference = turn.attachment
        elif turn.continuity_image_url:
            reference = data_url_to_inline_part(turn.continuity_image_url)
        else:
            raise MissingEditImageError("No image to edit.")

        result = await self.provider.edit_image(turn.model, reference, image_edit_prompt(turn.text))
        image = result.first_image
        description = (result.text or "").strip()
        if image is None and not description:
            raise EmptyArtifactError("Image edit returned neither an image nor a description.")

        message.text = description or self.DEFAULT_TEXT
        if image is not None:
            message.generated_image_url = inline_part_to_data_url(image)


class ImageGenerationPathway:
    """Prompt enhancement followed by a single image generation call."""

    STATUS_ENHANCING = "Optimizing prompt..."
    STATUS_RENDERING = "Rendering high-fidelity image..."

    def __init__(self, provider, enhancer_model: str = PROMPT_ENHANCER_MODEL) -> None:
        self.provider = provider
        self.enhancer_model = enhancer_model

    async def enhance_prompt(self, prompt: str) -> str:
        """Return an enriched prompt, or `prompt` unchanged if enhancement fails."""
        try:
            result = await self.provider.generate_once(self.enhancer_model, prompt_enhancer_prompt(prompt))
        except Exception as exc:
            LOGGER.warning("Prompt enhancement failed, using the original prompt: %s", exc)
            return prompt
        return (result.text or "").strip() or prompt

    async def run(self, turn: Turn, message: Message, notify: Notify) -> None:
        message.status_label = self.STATUS_ENHANCING
        notify()
        enhanced = await self.enhance_prompt(turn.text)

        message.status_label = self.STATUS_RENDERING
        notify()
        images = await self.provider.generate_images(turn.model, enhanced, aspect_ratio=turn.aspect_ratio)
        if not images:
            raise EmptyArtifactError("Image generation returned no image.")

        message.text = f'Generated image for: "{turn.text}"'
        message.generated_image_url = inline_part_to_data_url(images[0])


def initial_chat_status(toggles: ToggleState, has_attachment: bool) -> str:
    if toggles.search_enabled:
        return "Searching the web..."
    if toggles.turbo_enabled:
        return "Turbo Mode (Instant)..."
    if toggles.reasoning_enabled:
        return "Initializing reasoning..."
    if has_attachment:
        return "Reading attachment..."
    return "Thinking..."


class StreamingChatPathway:
    """Stream a chat answer through the turn's chat session."""

    async def run(self, turn: Turn, message: Message, notify: Notify) -> None:
        message.status_label = initial_chat_status(turn.toggles, turn.attachment is not None)
        notify()

        content: Union[str, List[ContentPart]] = turn.text
        if turn.attachment is not None:
            content = [turn.attachment, turn.text.strip() or DEFAULT_ATTACHMENT_PROMPT]

        parser = StreamingResponseParser(
            tagged_reasoning=turn.config.tagged_reasoning,
            reasoning_mode=message.reasoning_mode,
            search_enabled=turn.config.search_enabled,
        )
        start = time.time()
        async for fragment in turn.chat_session.send_streaming(content):
            parser.feed(fragment)
            message.text = parser.answer
            if message.reasoning_mode or parser.reasoning:
                message.reasoning_text = parser.reasoning
            if parser.sources:
                message.sources = list(parser.sources)
            message.status_label = parser.status_label()
            notify()

        parsed = parser.finish()
        message.text = parsed.text
        if message.reasoning_mode or parsed.reasoning_text:
            message.reasoning_text = parsed.reasoning_text
        message.suggestions = parsed.suggestions or None
        message.sources = parsed.sources or None
        LOGGER.info("Chat turn on %s streamed in %.3fs", turn.model, time.time() - start)
