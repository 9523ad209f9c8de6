import itertools

import pytest

from models.media import Location
from models.request_config import WEB_SEARCH_TOOL, get_model_profile
from models.session_models import ToggleState
from services.chat.config_builder import build_request_config
from services.chat.prompts import REASONING_OPEN_TAG, SUGGESTIONS_SENTINEL


def _toggles(model="gpt-5-mini", reasoning=False, turbo=False, search=False):
    toggles = ToggleState(model=model)
    toggles.set_reasoning(reasoning)
    toggles.set_turbo(turbo)
    toggles.set_search(search)
    return toggles


def test_plain_chat_has_base_prompt_only():
    config = build_request_config("gpt-5-mini", _toggles())
    assert SUGGESTIONS_SENTINEL in config.system_instruction
    assert REASONING_OPEN_TAG not in config.system_instruction
    assert config.tools == ()
    assert config.reasoning_budget is None
    assert config.tagged_reasoning is False


@pytest.mark.parametrize("model,budget", [("gpt-5", 16000), ("gpt-5-mini", 8192)])
def test_reasoning_adds_tag_block_and_model_budget(model, budget):
    config = build_request_config(model, _toggles(model, reasoning=True))
    assert REASONING_OPEN_TAG in config.system_instruction
    assert config.reasoning_budget == budget
    assert config.tagged_reasoning is True


def test_turbo_forces_zero_budget_after_reasoning_was_on():
    toggles = _toggles(reasoning=True)
    toggles.set_turbo(True)
    config = build_request_config("gpt-5-mini", toggles)
    assert toggles.reasoning_enabled is False
    assert config.reasoning_budget == 0
    assert REASONING_OPEN_TAG not in config.system_instruction
    assert config.tagged_reasoning is False


def test_reasoning_is_dropped_for_model_without_support():
    config = build_request_config("gpt-4o-mini", _toggles("gpt-4o-mini", reasoning=True))
    assert REASONING_OPEN_TAG not in config.system_instruction
    assert config.reasoning_budget is None
    assert config.tagged_reasoning is False


def test_turbo_budget_only_applies_to_reasoning_models():
    config = build_request_config("gpt-4o-mini", _toggles("gpt-4o-mini", turbo=True))
    assert config.reasoning_budget is None


def test_search_attaches_tool_and_location_line():
    config = build_request_config(
        "gpt-5-mini", _toggles(search=True), Location(latitude=48.8566, longitude=2.3522)
    )
    assert config.tools == (WEB_SEARCH_TOOL,)
    assert config.search_enabled
    assert "latitude 48.8566" in config.system_instruction


def test_location_is_ignored_without_search():
    config = build_request_config("gpt-5-mini", _toggles(), Location(latitude=1.0, longitude=2.0))
    assert "latitude" not in config.system_instruction


@pytest.mark.parametrize("model", ["gpt-image-1", "dall-e-3"])
def test_search_is_dropped_for_image_models(model):
    config = build_request_config(model, _toggles(model, search=True))
    assert config.tools == ()
    assert config.reasoning_budget is None


def test_unknown_model_degrades_to_plain_chat():
    profile = get_model_profile("some-future-model")
    assert profile.is_chat
    config = build_request_config("some-future-model", _toggles("some-future-model", reasoning=True, search=True))
    assert config.tools == ()
    assert config.tagged_reasoning is False


def test_same_inputs_give_equal_configs():
    toggles = _toggles(reasoning=True, search=True)
    location = Location(latitude=10.0, longitude=20.0)
    assert build_request_config("gpt-5", toggles, location) == build_request_config("gpt-5", toggles, location)


def test_reasoning_and_turbo_never_both_on():
    operations = [
        lambda t: t.set_reasoning(True),
        lambda t: t.set_reasoning(False),
        lambda t: t.set_turbo(True),
        lambda t: t.set_turbo(False),
        lambda t: t.set_search(True),
    ]
    for sequence in itertools.product(operations, repeat=4):
        toggles = ToggleState(model="gpt-5")
        for operation in sequence:
            operation(toggles)
            assert not (toggles.reasoning_enabled and toggles.turbo_enabled)
