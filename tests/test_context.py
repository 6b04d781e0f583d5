"""Tests for context assembly."""

from doc_tutor.rag.context import assemble_context, format_result, parse_context
from doc_tutor.rag.retriever import SearchMatch

MATCHES = [
    SearchMatch(text="The tenant must vacate within 30 days.", score=0.912345, chunk_number="3"),
    SearchMatch(text="Rent is due monthly.\n\nLate fees apply.", score=0.7, chunk_number="N/A"),
]


def test_empty_matches_give_no_context():
    assert assemble_context([]) is None


def test_block_format():
    block = assemble_context(MATCHES)
    assert block == (
        "[Excerpt (Similarity: 0.9123)]\nThe tenant must vacate within 30 days."
        "\n\n"
        "[Excerpt (Similarity: 0.7000)]\nRent is due monthly.\n\nLate fees apply."
    )


def test_parse_recovers_scores_and_text_in_order():
    parsed = parse_context(assemble_context(MATCHES))
    assert parsed == [
        (0.9123, "The tenant must vacate within 30 days."),
        (0.7, "Rent is due monthly.\n\nLate fees apply."),
    ]


def test_parse_empty():
    assert parse_context(None) == []
    assert parse_context("") == []


def test_format_result_prefixes_score():
    assert format_result(MATCHES[0]) == {
        "text": "[Similarity Score: 0.9123]\nThe tenant must vacate within 30 days.",
        "score": 0.912345,
        "chunkNumber": "3",
    }
