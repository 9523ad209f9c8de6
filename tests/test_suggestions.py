import pytest
from fakes import FakeProvider

from models.request_config import SUGGESTION_MODEL
from services.chat.prompts import IMAGE_EDIT_KIND
from services.chat.suggestions import SuggestionPipeline


@pytest.mark.asyncio
async def test_returns_at_most_three_trimmed_lines():
    provider = FakeProvider()
    provider.once_results[SUGGESTION_MODEL] = "  Add a hat  \n\nChange the lighting\nMake it a sketch\nCrop tighter\n"

    suggestions = await SuggestionPipeline(provider).suggest("put the cat in space", IMAGE_EDIT_KIND)

    assert suggestions == ["Add a hat", "Change the lighting", "Make it a sketch"]
    model, prompt, config = provider.once_calls[0]
    assert model == SUGGESTION_MODEL
    assert "put the cat in space" in prompt
    assert config.reasoning_budget == 0


@pytest.mark.asyncio
async def test_failure_yields_no_suggestions():
    provider = FakeProvider()
    provider.once_results[SUGGESTION_MODEL] = RuntimeError("rate limited")

    assert await SuggestionPipeline(provider).suggest("a dog", IMAGE_EDIT_KIND) == []


@pytest.mark.asyncio
async def test_missing_provider_yields_no_suggestions():
    assert await SuggestionPipeline(None).suggest("a dog", IMAGE_EDIT_KIND) == []
