from types import SimpleNamespace

import pytest

from models.media import InlinePart
from models.request_config import RequestConfig
from services.chat.errors import ProviderError
from services.openai.media_inputs import build_history, build_user_message
from services.openai.provider_client import OpenAIProvider, reasoning_options, request_kwargs
from services.openai.response_parser import extract_text, fragment_from_event


class FakeStream:
    def __init__(self, events):
        self.events = events

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def __aiter__(self):
        for event in self.events:
            yield event


class FakeResponses:
    def __init__(self, events=(), response=None):
        self.events = list(events)
        self.response = response
        self.calls = []

    def stream(self, **kwargs):
        self.calls.append(kwargs)
        return FakeStream(self.events)

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if isinstance(self.response, Exception):
            raise self.response
        return self.response


class FakeImages:
    def __init__(self, data):
        self.data = data
        self.calls = []

    async def edit(self, **kwargs):
        self.calls.append(("edit", kwargs))
        return SimpleNamespace(data=self.data)

    async def generate(self, **kwargs):
        self.calls.append(("generate", kwargs))
        return SimpleNamespace(data=self.data)


def _client(events=(), response=None, image_data=()):
    return SimpleNamespace(responses=FakeResponses(events, response), images=FakeImages(list(image_data)))


@pytest.mark.parametrize(
    "budget,expected",
    [
        (None, None),
        (0, {"effort": "minimal"}),
        (8192, {"effort": "medium", "summary": "auto"}),
        (16000, {"effort": "high", "summary": "auto"}),
    ],
)
def test_reasoning_budget_mapping(budget, expected):
    assert reasoning_options(budget) == expected


def test_request_kwargs_carry_instructions_tools_and_reasoning():
    config = RequestConfig(system_instruction="Be brief.", tools=("web_search",), reasoning_budget=0)
    kwargs = request_kwargs("gpt-5-mini", config, [])
    assert kwargs["instructions"] == "Be brief."
    assert kwargs["tools"] == [{"type": "web_search"}]
    assert kwargs["reasoning"] == {"effort": "minimal"}


def test_user_message_keeps_each_part_separate():
    message = build_user_message([InlinePart(b"img", "image/png"), InlinePart(b"%PDF", "application/pdf"), "Compare"])
    kinds = [item["type"] for item in message["content"]]
    assert kinds == ["input_image", "input_file", "input_text"]
    assert message["content"][1]["file_data"].startswith("data:application/pdf;base64,")


def test_history_maps_roles():
    history = build_history([{"role": "user", "text": "Q"}, {"role": "assistant", "text": "A"}])
    assert [item["role"] for item in history] == ["user", "assistant"]
    assert history[1]["content"] == "A"


def test_stream_events_become_fragments():
    text = fragment_from_event({"type": "response.output_text.delta", "delta": "Hi"})
    thought = fragment_from_event(SimpleNamespace(type="response.reasoning_summary_text.delta", delta="hmm"))
    search = fragment_from_event({"type": "response.web_search_call.searching"})
    citation = fragment_from_event(
        {
            "type": "response.output_text.annotation.added",
            "annotation": {"type": "url_citation", "url": "https://example.com", "title": "Example"},
        }
    )
    assert text.parts[0].text == "Hi" and not text.parts[0].thought
    assert thought.parts[0].thought
    assert search.searching
    assert citation.sources == [{"url": "https://example.com", "title": "Example"}]
    assert fragment_from_event({"type": "response.created"}) is None


def test_failed_response_event_raises():
    with pytest.raises(ProviderError, match="overloaded"):
        fragment_from_event({"type": "response.failed", "response": {"error": {"message": "overloaded"}}})


def test_extract_text_joins_output_items():
    response = {
        "output": [
            {"type": "reasoning", "content": []},
            {"type": "message", "content": [{"type": "output_text", "text": "Hello "}, {"type": "output_text", "text": "world"}]},
        ]
    }
    assert extract_text(response) == "Hello world"


@pytest.mark.asyncio
async def test_chat_session_streams_and_extends_history():
    client = _client(
        events=[
            {"type": "response.created"},
            {"type": "response.output_text.delta", "delta": "Hel"},
            {"type": "response.output_text.delta", "delta": "lo"},
        ]
    )
    session = OpenAIProvider(client).create_chat_session(
        "gpt-5-mini", RequestConfig(system_instruction="sys"), [{"role": "user", "text": "earlier"}]
    )

    fragments = [fragment async for fragment in session.send_streaming("Hi")]

    assert "".join(f.parts[0].text for f in fragments) == "Hello"
    assert client.responses.calls[0]["input"][0]["content"] == "earlier"
    assert session.history[-1] == {"type": "message", "role": "assistant", "content": "Hello"}
    assert len(session.history) == 3


@pytest.mark.asyncio
async def test_chat_session_wraps_stream_failures():
    client = _client(events=[{"type": "error", "message": "bad request"}])
    session = OpenAIProvider(client).create_chat_session("gpt-5-mini", RequestConfig(system_instruction=""))

    with pytest.raises(ProviderError):
        [fragment async for fragment in session.send_streaming("Hi")]
    assert session.history == []


@pytest.mark.asyncio
async def test_generate_once_returns_text_and_wraps_errors():
    provider = OpenAIProvider(_client(response={"output_text": "Short answer"}))
    result = await provider.generate_once("gpt-5-nano", "question")
    assert result.text == "Short answer"

    failing = OpenAIProvider(_client(response=RuntimeError("timeout")))
    with pytest.raises(ProviderError):
        await failing.generate_once("gpt-5-nano", "question")


@pytest.mark.asyncio
async def test_image_calls_decode_base64_payloads():
    client = _client(image_data=[{"b64_json": "aGk=", "revised_prompt": "A cat wearing a hat"}, {"b64_json": "eW8="}])
    provider = OpenAIProvider(client)

    edited = await provider.edit_image("gpt-image-1", InlinePart(b"src", "image/jpeg"), "add a hat")
    generated = await provider.generate_images("dall-e-3", "a cat", aspect_ratio="9:16")

    assert edited.text == "A cat wearing a hat"
    assert edited.images == [InlinePart(b"hi", "image/png")]
    assert len(generated) == 2
    edit_kwargs = client.images.calls[0][1]
    assert edit_kwargs["image"] == ("reference.jpeg", b"src", "image/jpeg")
    assert client.images.calls[1][1]["size"] == "1024x1792"
