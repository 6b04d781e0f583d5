"""Tests for the grounded answer generator and its provenance tags."""

import pytest

from conftest import FakeOllamaClient
from doc_tutor.rag.generator import Generator, TutorPipeline, normalize_reply, provenance_tag
from doc_tutor.rag.rules import QueryRuleBook

CONTEXT = "[Excerpt (Similarity: 0.9100)]\nThe tenant must vacate within 30 days."


# ── Branches ─────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
@pytest.mark.parametrize("query", ["What is the rent?", "who   signed\tit", 'say "hi"'])
async def test_no_context_refusal_quotes_query(generator, ollama_client, query):
    answer = await generator.answer(query, None)
    assert answer.startswith("SOURCE: GENERATED - NO RELEVANT INFORMATION")
    assert query in answer
    assert ollama_client.prompts == []


@pytest.mark.asyncio
async def test_grounded_branch_uses_context(generator, ollama_client):
    answer = await generator.answer("When must the tenant leave?", CONTEXT)
    assert answer == "SOURCE: Document Reference\nBased on the Document Reference: 30 days."
    prompt = ollama_client.prompts[0]
    assert "Query: When must the tenant leave?" in prompt
    assert CONTEXT in prompt
    assert "SOURCE: GENERATED - NO RELEVANT INFORMATION" in prompt


@pytest.mark.asyncio
async def test_model_can_decline(rules):
    client = FakeOllamaClient(reply="SOURCE: GENERATED - NO RELEVANT INFORMATION\nI'm designed to ...")
    generator = Generator(model="fake", client=client, rules=rules)
    answer = await generator.answer("What is the rent?", CONTEXT)
    assert provenance_tag(answer) == "GENERATED - NO RELEVANT INFORMATION"


@pytest.mark.asyncio
@pytest.mark.parametrize("reply", ["", "   \n  "])
async def test_empty_reply_is_error(rules, reply):
    generator = Generator(model="fake", client=FakeOllamaClient(reply=reply), rules=rules)
    answer = await generator.answer("What is the rent?", CONTEXT)
    assert answer.startswith("SOURCE: ERROR")
    assert "Unable to generate a specific response" in answer


@pytest.mark.asyncio
async def test_call_failure_is_error_with_details(rules):
    client = FakeOllamaClient(error=TimeoutError("model not loaded"))
    generator = Generator(model="fake", client=client, rules=rules)
    answer = await generator.answer("What is the rent?", CONTEXT)
    assert answer.startswith("SOURCE: ERROR")
    assert "Technical error details: model not loaded" in answer


@pytest.mark.asyncio
async def test_rule_answer_bypasses_model(generator, ollama_client):
    answer = await generator.answer("WHO is asked to do what", CONTEXT)
    assert answer.startswith("SOURCE: Document Reference\nSri P. K. Hatibaruah")
    assert ollama_client.prompts == []


@pytest.mark.asyncio
async def test_rule_without_answer_still_calls_model(ollama_client):
    rules = QueryRuleBook.from_dicts([{"phrase": "summarise", "top_k": 20}])
    generator = Generator(model="fake", client=ollama_client, rules=rules)
    await generator.answer("Summarise", CONTEXT)
    assert len(ollama_client.prompts) == 1


# ── Tag normalization ────────────────────────────────────────────────────────


class TestNormalizeReply:
    def test_bracketed_tag_is_unwrapped(self):
        reply = "[SOURCE: Document Reference]\nBased on the Document Reference: yes."
        assert normalize_reply(reply) == "SOURCE: Document Reference\nBased on the Document Reference: yes."

    def test_case_is_canonicalised(self):
        assert normalize_reply("source: error\noops").startswith("SOURCE: ERROR\n")

    def test_untagged_reply_is_document_reference(self):
        assert normalize_reply("  The notice period is 30 days. ") == (
            "SOURCE: Document Reference\nThe notice period is 30 days."
        )

    def test_bold_tag_is_recognised(self):
        reply = "**SOURCE: GENERATED - NO RELEVANT INFORMATION**\nThe document does not say."
        assert normalize_reply(reply) == (
            "SOURCE: GENERATED - NO RELEVANT INFORMATION\nThe document does not say."
        )

    def test_tag_after_preamble_is_moved_to_top(self):
        reply = "Here is my answer:\nSOURCE: GENERATED - NO RELEVANT INFORMATION\nNot covered."
        assert normalize_reply(reply) == (
            "SOURCE: GENERATED - NO RELEVANT INFORMATION\nHere is my answer:\nNot covered."
        )

    def test_first_tag_line_wins(self):
        reply = "SOURCE: ERROR\nsomething\nSOURCE: Document Reference"
        assert provenance_tag(normalize_reply(reply)) == "ERROR"

    def test_tag_inside_a_sentence_is_not_a_tag(self):
        reply = "The clause is cited as SOURCE: ERROR in the appendix."
        assert normalize_reply(reply) == f"SOURCE: Document Reference\n{reply}"

    def test_every_output_has_exactly_one_known_tag(self):
        for reply in ["x", "SOURCE: ERROR", "[SOURCE: GENERATED - NO RELEVANT INFORMATION] text"]:
            assert provenance_tag(normalize_reply(reply)) is not None


# ── Pipeline ─────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_pipeline_bundles_response(pipeline):
    response = await pipeline.ask("When must the tenant leave?")
    assert response["hasContext"] is True
    assert len(response["results"]) == 2
    assert response["aiResponse"].startswith("SOURCE: Document Reference")


@pytest.mark.asyncio
async def test_pipeline_low_scores_never_reach_prompt(pipeline, ollama_client):
    await pipeline.ask("When must the tenant leave?")
    assert "Unrelated boilerplate." not in ollama_client.prompts[0]


@pytest.mark.asyncio
async def test_pipeline_without_matches(retriever, generator, vector_store):
    vector_store.matches = []
    pipeline = TutorPipeline(retriever=retriever, generator=generator)
    response = await pipeline.ask("Anything?")
    assert response["results"] == []
    assert response["hasContext"] is False
    assert response["aiResponse"].startswith("SOURCE: GENERATED - NO RELEVANT INFORMATION")
