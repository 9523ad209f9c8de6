"""Incremental parser splitting a streamed answer into reasoning, answer and suggestions.

The provider may separate reasoning natively (``FragmentPart.thought``) or, when
the model was instructed to, inline it between ``<THOUGHT_PROCESS>`` tags. The
tag scanner is a two-state automaton that holds back only the tail of the text
that could still turn out to be the start of a tag, so tags split across
fragment boundaries are detected once the rest arrives. A closing tag always
sends the text before it to the reasoning trace, even without an opening tag.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Tuple

from models.media import ResponseFragment
from services.chat.prompts import REASONING_CLOSE_TAG, REASONING_OPEN_TAG, SUGGESTIONS_SENTINEL

OUTSIDE_REASONING = "outside"
INSIDE_REASONING = "inside"

MAX_SUGGESTIONS = 3
# Once the answer is longer than this, the status label is cleared.
MIN_VISIBLE_ANSWER = 50

STATUS_SEARCHING = "Searching the web..."
STATUS_ANALYZING_SOURCES = "Analyzing sources..."
STATUS_REASONING = "Reasoning..."
STATUS_ALLOCATING = "Allocating reasoning tokens..."
STATUS_TYPING = "Typing..."

TAGS = (REASONING_OPEN_TAG, REASONING_CLOSE_TAG)


def _partial_tag_length(text: str, tag: str) -> int:
    """Length of the longest suffix of ``text`` that is a proper prefix of ``tag``."""
    for size in range(min(len(text), len(tag) - 1), 0, -1):
        if tag.startswith(text[-size:]):
            return size
    return 0


def split_suggestions(answer: str) -> Tuple[str, List[str]]:
    """Split a final answer on the suggestions sentinel.

    Returns the answer text and up to three suggestions. Without a sentinel the
    answer is returned verbatim with no suggestions.
    """
    if SUGGESTIONS_SENTINEL not in answer:
        return answer, []
    main, _, tail = answer.partition(SUGGESTIONS_SENTINEL)
    suggestions = [line.strip() for line in tail.splitlines() if line.strip()]
    return main.strip(), suggestions[:MAX_SUGGESTIONS]


@dataclass
class ParsedResponse:
    text: str
    reasoning_text: str
    suggestions: List[str] = field(default_factory=list)
    sources: List[dict] = field(default_factory=list)


class StreamingResponseParser:
    """Consume response fragments in arrival order and keep append-only accumulators.

    Args:
        tagged_reasoning: Whether plain text may contain reasoning sentinel tags.
        reasoning_mode: Whether reasoning mode is on for this turn (status labels).
        search_enabled: Whether web search is on for this turn (status labels).
    """

    def __init__(self, *, tagged_reasoning: bool, reasoning_mode: bool = False, search_enabled: bool = False) -> None:
        self.tagged_reasoning = tagged_reasoning
        self.reasoning_mode = reasoning_mode
        self.search_enabled = search_enabled
        self.state = OUTSIDE_REASONING
        self.answer = ""
        self.reasoning = ""
        self.sources: List[dict] = []
        self._pending = ""
        self._searching = False

    def feed(self, fragment: ResponseFragment) -> None:
        """Apply one fragment to the accumulators."""
        for part in fragment.parts:
            if part.thought:
                self.reasoning += part.text
            elif self.tagged_reasoning:
                self._scan(part.text)
            else:
                self.answer += part.text
        if fragment.searching:
            self._searching = True
        elif fragment.parts:
            self._searching = False
        for source in fragment.sources:
            if source not in self.sources:
                self.sources.append(source)

    def _emit(self, text: str) -> None:
        if self.state == INSIDE_REASONING:
            self.reasoning += text
        else:
            self.answer += text

    def _scan(self, text: str) -> None:
        # Either tag may appear in either state; the earliest one in the buffer wins.
        buffer = self._pending + text
        self._pending = ""
        while buffer:
            found = [(buffer.find(tag), tag) for tag in TAGS if tag in buffer]
            if found:
                index, tag = min(found)
                if tag == REASONING_CLOSE_TAG:
                    self.reasoning += buffer[:index]
                    self.state = OUTSIDE_REASONING
                else:
                    self._emit(buffer[:index])
                    self.state = INSIDE_REASONING
                buffer = buffer[index + len(tag):]
                continue
            keep = max(_partial_tag_length(buffer, tag) for tag in TAGS)
            self._emit(buffer[: len(buffer) - keep])
            self._pending = buffer[len(buffer) - keep:]
            break

    def status_label(self) -> str:
        """Return the progress label for the current accumulator state."""
        if len(self.answer) > MIN_VISIBLE_ANSWER:
            return ""
        if self.search_enabled or self._searching:
            return STATUS_SEARCHING if self._searching else STATUS_ANALYZING_SOURCES
        if self.reasoning_mode and not self.answer and self.reasoning:
            return STATUS_REASONING
        if self.reasoning_mode and not self.reasoning:
            return STATUS_ALLOCATING
        return STATUS_TYPING

    def finish(self) -> ParsedResponse:
        """Flush held-back text and split off the suggestions block."""
        if self._pending:
            self._emit(self._pending)
            self._pending = ""
        text, suggestions = split_suggestions(self.answer)
        return ParsedResponse(
            text=text,
            reasoning_text=self.reasoning,
            suggestions=suggestions,
            sources=list(self.sources),
        )

