"""Helpers for building normalised grounding envelopes."""

from typing import Any, Iterable


def grounding_envelope(
    citations: Iterable[tuple[str | None, str | None]],
    extra: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Build a response envelope carrying web grounding chunks.

    Args:
        citations: (title, uri) pairs consulted by the provider
        extra: Additional top-level envelope fields (usage, model, ...)

    Returns:
        Dict shaped like a Gemini response dump
    """
    chunks = [{"web": {"title": title, "uri": uri}} for title, uri in citations]
    envelope: dict[str, Any] = dict(extra or {})
    envelope["candidates"] = [
        {"grounding_metadata": {"grounding_chunks": chunks}}
    ]
    return envelope
