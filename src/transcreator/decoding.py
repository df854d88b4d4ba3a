"""
Decoding of agent responses: JSON envelopes for structured agents and
newline-delimited subtitle text for batch agents.
"""

import json
import re
from typing import TypeVar

from pydantic import BaseModel, ValidationError

from .errors import MalformedAgentResponse

T = TypeVar("T", bound=BaseModel)

_FENCE_OPEN_RE = re.compile(r"^```[A-Za-z0-9_-]*[ \t]*\n?")
_FENCE_CLOSE_RE = re.compile(r"\n?```\s*$")
_SEQ_PREFIX_RE = re.compile(r"^\s*\d+\s*\|\s?")


def strip_code_fence(text: str) -> str:
    """Remove one leading and one trailing code fence (```json ... ```)."""
    cleaned = text.strip()
    cleaned = _FENCE_OPEN_RE.sub("", cleaned, count=1)
    cleaned = _FENCE_CLOSE_RE.sub("", cleaned, count=1)
    return cleaned.strip()


def decode_structured(raw_text: str, agent_name: str, schema: type[T]) -> T:
    """Parse ``raw_text`` as JSON and validate it against ``schema``."""
    cleaned = strip_code_fence(raw_text)
    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise MalformedAgentResponse(agent_name, raw_text, e) from e
    try:
        return schema.model_validate(payload)
    except ValidationError as e:
        raise MalformedAgentResponse(agent_name, raw_text, e) from e


def split_lines(text: str) -> list[str]:
    """Split batch text into subtitle lines, ignoring surrounding blank lines."""
    stripped = text.strip("\r\n")
    if not stripped.strip():
        return []
    return stripped.splitlines()


def normalize_batch_text(raw_text: str) -> str:
    """Clean a batch agent's reply into one subtitle per line.

    Drops a wrapping code fence and any ``sequence |`` prefix the model echoed
    back from the prompt format.
    """
    lines = split_lines(strip_code_fence(raw_text))
    if lines and all(_SEQ_PREFIX_RE.match(ln) for ln in lines):
        lines = [_SEQ_PREFIX_RE.sub("", ln, count=1) for ln in lines]
    return "\n".join(ln.rstrip() for ln in lines)
