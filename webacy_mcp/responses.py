"""
Tool response envelope and authority-response classification.

Every successful tool call leaves the server as

    {"content": [{"type": "text", "text": "<string>"}]}

whether or not it was gated. `normalize()` builds that envelope from whatever a
handler returns.

The authority answers a protected invocation on the same text channel for
both outcomes: a denial arrives as JSON text with an "error" key, a success as
the tool's own text (which is often JSON too). `classify_authority_response()`
is the single place that tells them apart. Precedence:

1. content[0].text parses as a JSON object with an "error" key -> Denied
2. content[0].text is any other string                          -> Approved
3. top-level "error" object and no content                      -> Denied
4. anything else                                                -> Malformed
"""

import json
from dataclasses import dataclass
from typing import Any, Literal, Mapping, TypedDict

DEFAULT_DENIAL_MESSAGE = "Authentication failed"


class TextContent(TypedDict):
    type: Literal["text"]
    text: str


class ToolResponseEnvelope(TypedDict):
    content: list[TextContent]


def envelope(text: str) -> ToolResponseEnvelope:
    return {"content": [{"type": "text", "text": text}]}


def normalize(result: Any) -> ToolResponseEnvelope:
    """
    Wrap a handler result into the response envelope.

    Strings are assumed to be serialized already and are used verbatim. Other
    values are serialized as indented JSON; a value json can't serialize is a
    bug in the handler and raises.
    """
    if isinstance(result, str):
        return envelope(result)
    return envelope(json.dumps(result, indent=2))


# ---------------------------------------------------------------------------
# Authority results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Approved:
    payload: str


@dataclass(frozen=True)
class Denied:
    """
    The authority refused the call.

    Attributes:
        message: Human-readable reason
        details: The authority's "error" value, as sent
        response_text: The authority's full text reply, when it sent one
    """

    message: str
    details: Any = None
    response_text: str | None = None


@dataclass(frozen=True)
class Malformed:
    raw: Any


AuthorityResult = Approved | Denied | Malformed


def _error_message(error: Any, fallback: str) -> str:
    if isinstance(error, str) and error:
        return error
    if isinstance(error, Mapping):
        message = error.get("message")
        if isinstance(message, str) and message:
            return message
    return fallback


def _load_json(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError:
        return None


def classify_authority_response(response: Any) -> AuthorityResult:
    if not isinstance(response, Mapping):
        return Malformed(response)

    content = response.get("content")
    if isinstance(content, list):
        first = content[0] if content else None
        if not isinstance(first, Mapping) or not isinstance(first.get("text"), str):
            return Malformed(response)

        text = first["text"]
        parsed = _load_json(text)
        if isinstance(parsed, Mapping) and "error" in parsed:
            return Denied(
                message=_error_message(parsed["error"], DEFAULT_DENIAL_MESSAGE),
                details=parsed["error"],
                response_text=text,
            )
        return Approved(payload=text)

    error = response.get("error")
    if error:
        return Denied(message=_error_message(error, DEFAULT_DENIAL_MESSAGE), details=error)

    return Malformed(response)
