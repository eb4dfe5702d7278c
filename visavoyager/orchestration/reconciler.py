"""Source reconciliation: explicit citations merged with grounding metadata."""

import logging
from typing import Any

from .models import SourceCitation

logger = logging.getLogger(__name__)


def explicit_sources(structured: Any) -> list[SourceCitation]:
    """Citations the model wrote into its ``sources`` field."""
    if not isinstance(structured, dict):
        return []

    sources = structured.get("sources")
    if not isinstance(sources, list):
        return []

    citations = []
    for entry in sources:
        if isinstance(entry, dict) and isinstance(entry.get("uri"), str) and entry["uri"]:
            citations.append(SourceCitation(title=entry.get("title"), uri=entry["uri"]))
    return citations


def grounding_sources(raw: Any) -> list[SourceCitation]:
    """Web chunks the service consulted, from the first candidate's metadata.

    Chunks without a URI are discarded.
    """
    if not isinstance(raw, dict):
        return []

    candidates = raw.get("candidates") or []
    if not candidates or not isinstance(candidates[0], dict):
        return []

    metadata = candidates[0].get("grounding_metadata") or {}
    chunks = metadata.get("grounding_chunks") or []

    citations = []
    for chunk in chunks:
        web = chunk.get("web") if isinstance(chunk, dict) else None
        if isinstance(web, dict) and isinstance(web.get("uri"), str) and web["uri"]:
            citations.append(SourceCitation(title=web.get("title"), uri=web["uri"]))
    return citations


def reconcile_sources(structured: Any, raw: Any) -> list[SourceCitation]:
    """
    Merge explicit and grounding citations, unique by URI.

    Explicit citations come first, so on a duplicate URI the explicit
    entry's title is kept. Order of first occurrence is preserved.

    Args:
        structured: Parsed structured response (may lack ``sources``)
        raw: Normalised response envelope (may lack grounding metadata)

    Returns:
        Ordered, URI-unique citation list
    """
    explicit = explicit_sources(structured)
    implicit = grounding_sources(raw)

    unique: dict[str, SourceCitation] = {}
    for citation in [*explicit, *implicit]:
        if citation.uri not in unique:
            unique[citation.uri] = citation

    merged = list(unique.values())
    logger.debug(
        f"Reconciled {len(explicit)} explicit + {len(implicit)} grounding "
        f"sources to {len(merged)}"
    )
    return merged
