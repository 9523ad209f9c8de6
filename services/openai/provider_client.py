"""Model provider adapter built on the OpenAI async client.

Exposes the small surface the conversation engine needs: chat sessions that
stream fragments, one-shot generation, image editing and image generation.
Every SDK failure is re-raised as `ProviderError`.
"""

from __future__ import annotations

import logging
import time
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence, Union

from openai import AsyncOpenAI

from models.media import ContentPart, GenerationResult, InlinePart, ResponseFragment
from models.request_config import RequestConfig
from services.chat.errors import ProviderError
from services.openai.media_inputs import build_history, build_user_message
from services.openai.response_parser import (
    extract_image_b64,
    extract_revised_prompt,
    extract_text,
    extract_usage,
    fragment_from_event,
)
from utils.media_codec import b64_to_inline_part

LOGGER = logging.getLogger(__name__)

HIGH_REASONING_BUDGET = 16000

IMAGE_SIZES = {
    "1:1": "1024x1024",
    "16:9": "1792x1024",
    "4:3": "1792x1024",
    "9:16": "1024x1792",
    "3:4": "1024x1792",
}


def reasoning_options(budget: Optional[int]) -> Optional[Dict[str, str]]:
    """Map a reasoning-token budget onto the Responses API `reasoning` option."""
    if budget is None:
        return None
    if budget <= 0:
        return {"effort": "minimal"}
    effort = "high" if budget >= HIGH_REASONING_BUDGET else "medium"
    return {"effort": effort, "summary": "auto"}


def request_kwargs(model: str, config: Optional[RequestConfig], inputs: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Build the keyword arguments for `responses.create` / `responses.stream`."""
    kwargs: Dict[str, Any] = {"model": model, "input": inputs}
    if config is None:
        return kwargs
    if config.system_instruction:
        kwargs["instructions"] = config.system_instruction
    if config.search_enabled:
        kwargs["tools"] = [{"type": "web_search"}]
    reasoning = reasoning_options(config.reasoning_budget)
    if reasoning is not None:
        kwargs["reasoning"] = reasoning
    return kwargs


class OpenAIChatSession:
    """A conversation bound to one model and one request configuration.

    The Responses API is stateless, so the session keeps the running input
    history and appends each completed turn to it.
    """

    def __init__(self, client: AsyncOpenAI, model: str, config: RequestConfig, history: Sequence[Dict[str, str]] = ()) -> None:
        self.client = client
        self.model = model
        self.config = config
        self.history: List[Dict[str, Any]] = build_history(history)

    async def send_streaming(self, content: Union[str, Sequence[ContentPart]]) -> AsyncIterator[ResponseFragment]:
        """Send one user turn and yield response fragments in arrival order."""
        message = build_user_message(content)
        kwargs = request_kwargs(self.model, self.config, self.history + [message])
        answer: List[str] = []
        try:
            async with self.client.responses.stream(**kwargs) as stream:
                async for event in stream:
                    fragment = fragment_from_event(event)
                    if fragment is None:
                        continue
                    answer.extend(part.text for part in fragment.parts if not part.thought)
                    yield fragment
        except ProviderError:
            raise
        except Exception as exc:
            raise ProviderError(f"OpenAI streaming call failed: {exc}") from exc

        self.history.append(message)
        self.history.append({"type": "message", "role": "assistant", "content": "".join(answer)})


class OpenAIProvider:
    """Provider client used by the orchestrator and its pathways."""

    def __init__(self, client: AsyncOpenAI) -> None:
        if client is None:
            raise ValueError("AsyncOpenAI client is required.")
        self.client = client

    def create_chat_session(
        self, model: str, config: RequestConfig, history: Sequence[Dict[str, str]] = ()
    ) -> OpenAIChatSession:
        return OpenAIChatSession(self.client, model, config, history)

    async def generate_once(
        self,
        model: str,
        content: Union[str, Sequence[ContentPart]],
        config: Optional[RequestConfig] = None,
    ) -> GenerationResult:
        """Run a single non-streaming text generation."""
        start = time.time()
        try:
            response = await self.client.responses.create(
                **request_kwargs(model, config, [build_user_message(content)])
            )
        except Exception as exc:
            raise ProviderError(f"OpenAI Responses API error: {exc}") from exc
        LOGGER.info("generate_once(%s) latency: %.3fs usage: %s", model, time.time() - start, extract_usage(response))
        return GenerationResult(text=extract_text(response))

    async def edit_image(self, model: str, image: InlinePart, prompt: str) -> GenerationResult:
        """Edit `image` following `prompt`; returns at most one image."""
        extension = image.mime_type.split("/")[-1] or "png"
        start = time.time()
        try:
            response = await self.client.images.edit(
                model=model,
                image=(f"reference.{extension}", image.data, image.mime_type),
                prompt=prompt,
            )
        except Exception as exc:
            raise ProviderError(f"OpenAI image edit failed: {exc}") from exc
        LOGGER.info("edit_image(%s) latency: %.3fs", model, time.time() - start)
        images = [b64_to_inline_part(b64) for b64 in extract_image_b64(response)[:1]]
        return GenerationResult(text=extract_revised_prompt(response), images=images)

    async def generate_images(self, model: str, prompt: str, *, aspect_ratio: str = "1:1") -> List[InlinePart]:
        """Generate exactly one image for `prompt`."""
        start = time.time()
        try:
            response = await self.client.images.generate(
                model=model,
                prompt=prompt,
                n=1,
                size=IMAGE_SIZES.get(aspect_ratio, IMAGE_SIZES["1:1"]),
                response_format="b64_json",
            )
        except Exception as exc:
            raise ProviderError(f"OpenAI image generation failed: {exc}") from exc
        LOGGER.info("generate_images(%s) latency: %.3fs", model, time.time() - start)
        return [b64_to_inline_part(b64) for b64 in extract_image_b64(response)]
