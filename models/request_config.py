"""Model catalog and the per-turn request configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

CHAT = "chat"
IMAGE_EDIT = "image_edit"
IMAGE_GENERATION = "image_generation"

WEB_SEARCH_TOOL = "web_search"


@dataclass(frozen=True)
class ModelProfile:
    """Capabilities of a selectable model.

    Attributes:
        name: Provider model identifier.
        kind: ``chat``, ``image_edit`` or ``image_generation``.
        supports_reasoning: Whether extended reasoning can be requested.
        supports_search: Whether the web search tool can be attached.
        reasoning_budget: Token budget used when reasoning mode is on.
    """

    name: str
    kind: str = CHAT
    supports_reasoning: bool = False
    supports_search: bool = False
    reasoning_budget: Optional[int] = None

    @property
    def is_chat(self) -> bool:
        return self.kind == CHAT


MODEL_CATALOG: Dict[str, ModelProfile] = {
    profile.name: profile
    for profile in (
        ModelProfile("gpt-5", CHAT, supports_reasoning=True, supports_search=True, reasoning_budget=16000),
        ModelProfile("gpt-5-mini", CHAT, supports_reasoning=True, supports_search=True, reasoning_budget=8192),
        ModelProfile("gpt-5-nano", CHAT, supports_reasoning=True, supports_search=True, reasoning_budget=8192),
        ModelProfile("gpt-4o-mini", CHAT, supports_search=True),
        ModelProfile("gpt-image-1", IMAGE_EDIT),
        ModelProfile("dall-e-3", IMAGE_GENERATION),
    )
}

DEFAULT_CHAT_MODEL = os.getenv("CHAT_DEFAULT_MODEL", "gpt-5-mini")
IMAGE_EDIT_MODEL = "gpt-image-1"
IMAGE_GENERATION_MODEL = "dall-e-3"
PROMPT_ENHANCER_MODEL = "gpt-5-mini"
SUGGESTION_MODEL = "gpt-5-nano"


def get_model_profile(model: str) -> ModelProfile:
    """Return the catalog entry for ``model``.

    Unknown names are treated as plain chat models with no optional features.
    """
    return MODEL_CATALOG.get(model) or ModelProfile(model)


@dataclass(frozen=True)
class RequestConfig:
    """Derived, per-turn provider configuration.

    Attributes:
        system_instruction: Full system prompt text.
        tools: Capability names attached to the request.
        reasoning_budget: 0 disables extended reasoning, None leaves the
            provider default.
        tagged_reasoning: True when the model was told to wrap its reasoning
            in sentinel tags, so the stream parser must look for them.
    """

    system_instruction: str
    tools: Tuple[str, ...] = ()
    reasoning_budget: Optional[int] = None
    tagged_reasoning: bool = False

    @property
    def search_enabled(self) -> bool:
        return WEB_SEARCH_TOOL in self.tools
