"""In-memory stand-ins for the model provider used across the tests."""

import asyncio
from typing import Any, Dict, List, Optional

from models.media import FragmentPart, GenerationResult, InlinePart, ResponseFragment

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-image-payload"


def text_fragment(text: str, thought: bool = False) -> ResponseFragment:
    return ResponseFragment(parts=[FragmentPart(text=text, thought=thought)])


class FakeChatSession:
    def __init__(self, provider: "FakeProvider", model: str, config, history) -> None:
        self.provider = provider
        self.model = model
        self.config = config
        self.history = list(history)
        self.sent: List[Any] = []

    async def send_streaming(self, content):
        self.sent.append(content)
        if self.provider.gate is not None:
            await self.provider.gate.wait()
        for item in self.provider.stream_script:
            if isinstance(item, Exception):
                raise item
            yield item
            await asyncio.sleep(0)


class FakeProvider:
    """Scriptable provider recording every call it receives.

    `once_results` maps a model name to the text returned by `generate_once`,
    or to an exception to raise.
    """

    def __init__(self) -> None:
        self.stream_script: List[Any] = [text_fragment("Hello there.")]
        self.gate: Optional[asyncio.Event] = None
        self.once_results: Dict[str, Any] = {}
        self.edit_result: Any = GenerationResult(text="", images=[InlinePart(PNG_BYTES, "image/png")])
        self.generated: Any = [InlinePart(PNG_BYTES, "image/png")]
        self.sessions: List[FakeChatSession] = []
        self.once_calls: List[tuple] = []
        self.edit_calls: List[tuple] = []
        self.generate_calls: List[tuple] = []

    def create_chat_session(self, model, config, history=()):
        session = FakeChatSession(self, model, config, history)
        self.sessions.append(session)
        return session

    async def generate_once(self, model, content, config=None):
        self.once_calls.append((model, content, config))
        result = self.once_results.get(model, "")
        if isinstance(result, Exception):
            raise result
        return GenerationResult(text=result)

    async def edit_image(self, model, image, prompt):
        self.edit_calls.append((model, image, prompt))
        if isinstance(self.edit_result, Exception):
            raise self.edit_result
        return self.edit_result

    async def generate_images(self, model, prompt, *, aspect_ratio="1:1"):
        self.generate_calls.append((model, prompt, aspect_ratio))
        if isinstance(self.generated, Exception):
            raise self.generated
        return list(self.generated)
