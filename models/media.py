"""Media and content shapes exchanged with the model provider."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Union


@dataclass(frozen=True)
class InlinePart:
    """Raw binary payload sent inline with a request (image, PDF, ...).

    Attributes:
        data: Decoded bytes of the payload.
        mime_type: MIME type such as ``image/png``.
    """

    data: bytes
    mime_type: str


@dataclass(frozen=True)
class AttachedFile:
    """A user-supplied file staged for the next turn."""

    filename: str
    data: bytes
    mime_type: str


# A request content part is either plain text or an inline binary payload.
ContentPart = Union[str, InlinePart]


@dataclass(frozen=True)
class Location:
    """Approximate user position reported by the client."""

    latitude: float
    longitude: float


@dataclass
class FragmentPart:
    """One sub-part of a streamed fragment; ``thought`` marks native reasoning."""

    text: str
    thought: bool = False


@dataclass
class ResponseFragment:
    """A single increment of a streamed provider response."""

    parts: List[FragmentPart] = field(default_factory=list)
    searching: bool = False
    sources: List[dict] = field(default_factory=list)


@dataclass
class GenerationResult:
    """Outcome of a single non-streaming provider call."""

    text: str = ""
    images: List[InlinePart] = field(default_factory=list)

    @property
    def first_image(self) -> Optional[InlinePart]:
        return self.images[0] if self.images else None
