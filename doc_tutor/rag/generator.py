"""
Generator - Produces grounded answers using an Ollama LLM.

This module handles the generation part of RAG:
1. Takes the question and the assembled context
2. Builds a strict prompt around the context
3. Sends it to Ollama
4. Makes sure the answer starts with a provenance tag

Key Concept:
Every answer begins with exactly one of

    SOURCE: Document Reference
    SOURCE: GENERATED - NO RELEVANT INFORMATION
    SOURCE: ERROR

so the UI can tell a document-backed answer from a refusal or a failure.
The generator never raises: failures become ERROR-tagged answers.
"""

import logging
import re

import ollama

from doc_tutor.config import (
    EMPTY_REPLY_MESSAGE,
    FAILED_REPLY_MESSAGE,
    NO_INFO_MESSAGE,
    OLLAMA_API_KEY,
    OLLAMA_BASE_URL,
    OLLAMA_MODEL,
    RAG_PROMPT_TEMPLATE,
    SOURCE_PREFIX,
    SYSTEM_PROMPT,
    TAG_DOCUMENT,
    TAG_ERROR,
    TAG_NO_INFO,
)
from doc_tutor.rag.context import assemble_context, format_result
from doc_tutor.rag.retriever import Retriever
from doc_tutor.rag.rules import QueryRuleBook

logger = logging.getLogger(__name__)

PROVENANCE_TAGS = (TAG_DOCUMENT, TAG_NO_INFO, TAG_ERROR)

# A "SOURCE: <tag>" line, possibly wrapped in brackets or markdown emphasis
_TAG_RE = re.compile(
    r"^[ \t>#*_\[]*SOURCE:[ \t*_]*("
    + "|".join(re.escape(t) for t in PROVENANCE_TAGS)
    + r")[ \t*_\]]*",
    re.IGNORECASE | re.MULTILINE,
)


def tagged(tag: str, body: str) -> str:
    """Prefix a body with its provenance tag line."""
    return f"{SOURCE_PREFIX}{tag}\n{body}"


def provenance_tag(answer: str) -> str | None:
    """Return the tag an answer starts with, or None."""
    for tag in PROVENANCE_TAGS:
        if answer.startswith(f"{SOURCE_PREFIX}{tag}"):
            return tag
    return None


def no_info_answer(query: str) -> str:
    return tagged(TAG_NO_INFO, NO_INFO_MESSAGE.format(query=query))


def normalize_reply(reply: str) -> str:
    """
    Put a model reply into canonical tagged form.

    The model is asked to tag its own output, but it may wrap the tag in
    brackets or bold, change its case, or put a short preamble before it.
    The first tag line wins and is moved to the top. A reply without a
    recognisable tag was produced from document context, so it is tagged
    as a document reference.
    """
    text = reply.strip()
    match = _TAG_RE.search(text)
    if match is None:
        return tagged(TAG_DOCUMENT, text)

    tag = next(t for t in PROVENANCE_TAGS if t.lower() == match.group(1).lower())
    parts = (text[:match.start()].strip(), text[match.end():].strip())
    return tagged(tag, "\n".join(part for part in parts if part))


class Generator:
    """
    Generates grounded answers with Ollama.

    Example:
        generator = Generator()
        answer = await generator.answer(
            "When must the tenant leave?",
            context="[Excerpt (Similarity: 0.8731)]\\nThe tenant shall vacate ...",
        )
        print(answer)
    """

    def __init__(
        self,
        model: str | None = None,
        client=None,
        rules: QueryRuleBook | None = None,
        system_prompt: str | None = None,
    ):
        """
        Args:
            model: Ollama model name (uses config default if not provided)
            client: ollama.AsyncClient or compatible object
            rules: Query overrides that may supply a canned answer
            system_prompt: Override the default system prompt
        """
        self.model = model or OLLAMA_MODEL
        self.client = client or ollama.AsyncClient(
            host=OLLAMA_BASE_URL,
            headers={"Authorization": f"Bearer {OLLAMA_API_KEY}"} if OLLAMA_API_KEY else None,
        )
        self.rules = rules if rules is not None else QueryRuleBook.load()
        self.system_prompt = system_prompt or SYSTEM_PROMPT

    def build_prompt(self, query: str, context: str) -> str:
        return RAG_PROMPT_TEMPLATE.format(
            query=query,
            context=context,
            no_info=NO_INFO_MESSAGE.format(query=query),
        )

    async def answer(self, query: str, context: str | None = None) -> str:
        """
        Answer a question from the given context.

        Args:
            query: The user's question
            context: Assembled excerpts, or None when nothing relevant was found

        Returns:
            The answer, always starting with a provenance tag
        """
        rule = self.rules.match(query)
        if rule is not None and rule.answer:
            logger.info("Answering from query rule: %s", rule.phrase)
            return tagged(TAG_DOCUMENT, rule.answer)

        if not context:
            logger.info("No context provided, returning default response")
            return no_info_answer(query)

        try:
            logger.info("Generating response with context...")
            reply = await self._generate_response(self.build_prompt(query, context))
        except Exception as e:
            logger.exception("Error generating response")
            return tagged(TAG_ERROR, FAILED_REPLY_MESSAGE.format(error=e))

        if not reply or not reply.strip():
            logger.warning("Empty response received, returning error message")
            return tagged(TAG_ERROR, EMPTY_REPLY_MESSAGE)

        return normalize_reply(reply)

    async def _generate_response(self, prompt: str) -> str:
        """Generate a complete response (non-streaming)."""
        response = await self.client.chat(
            model=self.model,
            messages=[
                {"role": "system", "content": self.system_prompt},
                {"role": "user", "content": prompt},
            ],
        )
        return response["message"]["content"]


class TutorPipeline:
    """
    Complete RAG pipeline: search, assemble context, answer.

    Example:
        pipeline = TutorPipeline()
        response = await pipeline.ask("What is the notice period?")
        print(response["aiResponse"])
    """

    def __init__(
        self,
        retriever: Retriever | None = None,
        generator: Generator | None = None,
        rules: QueryRuleBook | None = None,
    ):
        """
        Args:
            retriever: Retriever instance (built from config if not provided)
            generator: Generator instance (built from config if not provided)
            rules: Shared query rules for both stages
        """
        rules = rules if rules is not None else QueryRuleBook.load()
        self.retriever = retriever or Retriever(rules=rules)
        self.generator = generator or Generator(rules=rules)

    async def ask(self, query: str) -> dict:
        """
        Process a question through the full pipeline.

        Returns:
            Dict with ``results`` (display-formatted matches),
            ``aiResponse`` and ``hasContext``
        """
        matches = await self.retriever.search(query)
        context = assemble_context(matches)
        answer = await self.generator.answer(query, context)

        return {
            "results": [format_result(match) for match in matches],
            "aiResponse": answer,
            "hasContext": context is not None,
        }
