"""Tagged parse results for model-produced JSON."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Generic, TypeVar, Union

T = TypeVar("T")

_FENCE_OPEN = re.compile(r"^```[a-zA-Z]*\s*\n?")
_FENCE_CLOSE = re.compile(r"\n?```\s*$")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """JSON parsed into the expected container type."""

    value: T


@dataclass(frozen=True)
class Malformed:
    """Text that could not be used; kept for logging."""

    raw: str
    error: str


ParseResult = Union[Ok[T], Malformed]


def strip_code_fences(text: str) -> str:
    """Remove a surrounding ``` / ```json fence if present."""
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = _FENCE_OPEN.sub("", cleaned, count=1)
        cleaned = _FENCE_CLOSE.sub("", cleaned, count=1)
    return cleaned.strip()


def parse_json(text: str | None, empty: T) -> ParseResult[T]:
    """
    Parse model output as JSON of the same container type as ``empty``.

    Blank or missing text is not an error: it yields ``Ok(empty)``.

    Args:
        text: Raw response text
        empty: Default value; its type (dict or list) is the expected shape

    Returns:
        Ok with the decoded value, or Malformed with the reason
    """
    if text is None or not text.strip():
        return Ok(empty)

    try:
        value: Any = json.loads(text)
    except json.JSONDecodeError as e:
        return Malformed(raw=text, error=str(e))

    if not isinstance(value, type(empty)):
        return Malformed(
            raw=text,
            error=f"Expected {type(empty).__name__}, got {type(value).__name__}",
        )

    return Ok(value)


def unwrap_or(result: ParseResult[T], default: T) -> T:
    """Return the parsed value, or ``default`` for malformed text."""
    if isinstance(result, Ok):
        return result.value
    return default
