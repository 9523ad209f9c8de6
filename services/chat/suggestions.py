"""Best-effort follow-up suggestions after an image task."""

from __future__ import annotations

import logging
from typing import List

from models.request_config import SUGGESTION_MODEL, RequestConfig
from services.chat.prompts import suggestion_prompt

LOGGER = logging.getLogger(__name__)

MAX_SUGGESTIONS = 3


class SuggestionPipeline:
    """Ask a fast model for up to three short follow-up actions.

    Never raises: any failure yields an empty list.
    """

    def __init__(self, provider, model: str = SUGGESTION_MODEL) -> None:
        self.provider = provider
        self.model = model
        # Extended reasoning disabled for minimum latency.
        self.config = RequestConfig(system_instruction="", reasoning_budget=0)

    async def suggest(self, prompt: str, kind: str) -> List[str]:
        if self.provider is None:
            return []
        try:
            result = await self.provider.generate_once(self.model, suggestion_prompt(prompt, kind), self.config)
        except Exception as exc:
            LOGGER.warning("Suggestion generation failed: %s", exc)
            return []
        lines = [line.strip() for line in (result.text or "").splitlines() if line.strip()]
        return lines[:MAX_SUGGESTIONS]
