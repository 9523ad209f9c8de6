"""Helpers to parse Responses API outputs and streaming events."""

from typing import Any, Dict, List, Optional

from models.media import FragmentPart, ResponseFragment
from services.chat.errors import ProviderError

TEXT_DELTA_EVENTS = {"response.output_text.delta"}
REASONING_DELTA_EVENTS = {"response.reasoning_summary_text.delta", "response.reasoning_text.delta"}
SEARCH_EVENTS = {"response.web_search_call.in_progress", "response.web_search_call.searching"}
ANNOTATION_EVENTS = {"response.output_text.annotation.added"}
FAILURE_EVENTS = {"response.failed", "error"}


def _field(obj: Any, name: str, default: Any = None) -> Any:
    """Read `name` from an SDK object or a plain dict."""
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


def _source_from_annotation(annotation: Any) -> Optional[Dict[str, str]]:
    if _field(annotation, "type") != "url_citation":
        return None
    url = _field(annotation, "url")
    if not url:
        return None
    return {"url": url, "title": _field(annotation, "title") or url}


def fragment_from_event(event: Any) -> Optional[ResponseFragment]:
    """Convert one streaming event into a fragment, or None for events we ignore.

    Raises:
        ProviderError: If the event reports a failed response.
    """
    event_type = _field(event, "type")
    if event_type in TEXT_DELTA_EVENTS:
        return ResponseFragment(parts=[FragmentPart(text=_field(event, "delta") or "")])
    if event_type in REASONING_DELTA_EVENTS:
        return ResponseFragment(parts=[FragmentPart(text=_field(event, "delta") or "", thought=True)])
    if event_type in SEARCH_EVENTS:
        return ResponseFragment(searching=True)
    if event_type in ANNOTATION_EVENTS:
        source = _source_from_annotation(_field(event, "annotation"))
        return ResponseFragment(sources=[source]) if source else None
    if event_type in FAILURE_EVENTS:
        error = _field(event, "error") or _field(_field(event, "response"), "error")
        message = _field(error, "message") or _field(event, "message") or "unknown error"
        raise ProviderError(f"Streaming response failed: {message}")
    return None


def extract_text(response: Any) -> str:
    """Concatenate the output_text entries of a response."""
    chunks: List[str] = []
    for item in _field(response, "output", None) or []:
        if _field(item, "type") != "message":
            continue
        for content in _field(item, "content", None) or []:
            if _field(content, "type") == "output_text":
                chunks.append(_field(content, "text") or "")
    if chunks:
        return "".join(chunks)
    return _field(response, "output_text", "") or ""


def extract_usage(response: Any) -> Dict[str, Optional[int]]:
    """Return token usage if present."""
    usage = _field(response, "usage")
    return {
        "input_tokens": _field(usage, "input_tokens") if usage else None,
        "output_tokens": _field(usage, "output_tokens") if usage else None,
    }


def extract_image_b64(response: Any) -> List[str]:
    """Return the base64 payloads of an Images API response."""
    return [b64 for b64 in (_field(item, "b64_json") for item in _field(response, "data", None) or []) if b64]


def extract_revised_prompt(response: Any) -> str:
    for item in _field(response, "data", None) or []:
        revised = _field(item, "revised_prompt")
        if revised:
            return revised
    return ""
