"""
Source Reconciliation Tests

Explicit citations from the structured answer merged with the grounding
chunks the service reports.
"""

from visavoyager.llm import grounding_envelope
from visavoyager.orchestration.reconciler import (
    explicit_sources,
    grounding_sources,
    reconcile_sources,
)


def test_merge_is_unique_by_uri():
    """Test that the same page cited twice appears once."""
    structured = {
        "sources": [
            {"title": "Official MOFA page", "uri": "https://www.mofa.go.jp/j_info/visit/visa/"},
            {"title": "Embassy", "uri": "https://www.ca.emb-japan.go.jp/"},
        ]
    }
    raw = grounding_envelope([
        ("mofa.go.jp", "https://www.mofa.go.jp/j_info/visit/visa/"),
        ("JNTO", "https://www.japan.travel/en/plan/visa/"),
    ])

    sources = reconcile_sources(structured, raw)

    assert [s.uri for s in sources] == [
        "https://www.mofa.go.jp/j_info/visit/visa/",
        "https://www.ca.emb-japan.go.jp/",
        "https://www.japan.travel/en/plan/visa/",
    ]
    # Explicit entry wins on duplicate URI
    assert sources[0].title == "Official MOFA page"


def test_grounding_only():
    raw = grounding_envelope([("GOV.UK", "https://www.gov.uk/"), ("GOV.UK", "https://www.gov.uk/")])

    sources = reconcile_sources({}, raw)

    assert len(sources) == 1
    assert sources[0].title == "GOV.UK"


def test_chunks_without_uri_are_discarded():
    raw = {
        "candidates": [
            {
                "grounding_metadata": {
                    "grounding_chunks": [
                        {"web": {"title": "No link"}},
                        {"web": {"title": "Blank", "uri": ""}},
                        {"retrieved_context": {"uri": "gs://bucket/doc"}},
                        {"web": {"uri": "https://travel.state.gov/"}},
                    ]
                }
            }
        ]
    }

    sources = grounding_sources(raw)

    assert [s.uri for s in sources] == ["https://travel.state.gov/"]
    assert sources[0].title == ""


def test_empty_inputs():
    assert reconcile_sources({}, {}) == []
    assert reconcile_sources(None, None) == []
    assert reconcile_sources({"sources": "not a list"}, {"candidates": []}) == []
    assert reconcile_sources({"sources": [{"title": "No uri"}]}, grounding_envelope([])) == []


def test_explicit_sources_ignore_bad_entries():
    structured = {
        "sources": [
            "https://bare-string.example/",
            {"title": 42, "uri": "https://example.gov/"},
            {"title": "Missing uri"},
        ]
    }

    sources = explicit_sources(structured)

    assert len(sources) == 1
    assert sources[0].uri == "https://example.gov/"
    assert sources[0].title == ""


def test_reconcile_is_pure():
    """Calling twice with the same inputs gives the same result and leaves inputs alone."""
    structured = {"sources": [{"title": "A", "uri": "https://a.example/"}]}
    raw = grounding_envelope([("B", "https://b.example/")])

    first = reconcile_sources(structured, raw)
    second = reconcile_sources(structured, raw)

    assert first == second
    assert structured == {"sources": [{"title": "A", "uri": "https://a.example/"}]}
