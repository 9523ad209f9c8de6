"""Derive the provider request configuration from the model and toggles."""

from __future__ import annotations

from typing import List, Optional

from models.media import Location
from models.request_config import WEB_SEARCH_TOOL, RequestConfig, get_model_profile
from models.session_models import ToggleState
from services.chat.prompts import base_system_prompt, location_prompt, reasoning_prompt


def build_request_config(
    model: str,
    toggles: ToggleState,
    location: Optional[Location] = None,
) -> RequestConfig:
    """Return the request configuration for one turn.

    Pure function. Features the model does not support are dropped silently.

    Args:
        model: Selected model name.
        toggles: Current toggle state.
        location: Optional user location, only used alongside web search.

    Returns:
        A fully populated RequestConfig.
    """
    profile = get_model_profile(model)
    sections: List[str] = [base_system_prompt()]
    tools: List[str] = []
    budget: Optional[int] = None

    use_reasoning = toggles.reasoning_enabled and not toggles.turbo_enabled and profile.supports_reasoning
    if use_reasoning:
        sections.append(reasoning_prompt())

    use_search = toggles.search_enabled and profile.is_chat and profile.supports_search
    if use_search:
        tools.append(WEB_SEARCH_TOOL)
        if location is not None:
            sections.append(location_prompt(location.latitude, location.longitude))

    if profile.supports_reasoning:
        if toggles.turbo_enabled:
            budget = 0
        elif use_reasoning:
            budget = profile.reasoning_budget

    return RequestConfig(
        system_instruction="\n\n".join(sections),
        tools=tuple(tools),
        reasoning_budget=budget,
        tagged_reasoning=use_reasoning,
    )
