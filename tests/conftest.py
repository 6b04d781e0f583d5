"""Shared fixtures for the Document Tutor test suite."""

import pytest
from fastapi.testclient import TestClient

from doc_tutor.config import DEFAULT_QUERY_RULES
from doc_tutor.embeddings.namespace import ActiveNamespaceStore
from doc_tutor.errors import EmbeddingFailure, NamespaceQueryError
from doc_tutor.interfaces.rate_limit import RateLimiter
from doc_tutor.rag.generator import Generator, TutorPipeline
from doc_tutor.rag.retriever import Retriever
from doc_tutor.rag.rules import QueryRuleBook

# ---------------------------------------------------------------------------
# Canned index contents
# ---------------------------------------------------------------------------

FAKE_MATCHES = [
    {
        "id": "doc_0",
        "score": 0.91,
        "document": "ignored when metadata has text",
        "metadata": {"text": "The tenant must vacate within 30 days.", "chunk_number": 3},
    },
    {
        "id": "doc_1",
        "score": 0.72,
        "document": "Rent is due on the first of the month.",
        "metadata": {},
    },
    {
        "id": "doc_2",
        "score": 0.41,
        "document": "",
        "metadata": {"text": "Unrelated boilerplate.", "chunk_number": 9},
    },
]


# ---------------------------------------------------------------------------
# Fakes that never touch sentence-transformers, ChromaDB or Ollama
# ---------------------------------------------------------------------------


class FakeEmbedder:
    """Embedder returning a fixed vector, optionally failing."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls: list[str] = []

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        if self.fail:
            raise EmbeddingFailure("embedding model unavailable")
        return [0.1, 0.2, 0.3, 0.4]


class FakeVectorStore:
    """Index that returns canned matches and records every query."""

    def __init__(self, matches=None, failing_namespaces=(), error=None):
        self.matches = FAKE_MATCHES if matches is None else matches
        self.failing_namespaces = set(failing_namespaces)
        self.error = error
        self.calls: list[dict] = []

    def query(self, query_embedding, top_k=None, namespace=None):
        self.calls.append({"top_k": top_k, "namespace": namespace})
        if self.error is not None:
            raise self.error
        if namespace in self.failing_namespaces:
            raise NamespaceQueryError(namespace, "collection does not exist")
        return list(self.matches)[:top_k]


class FakeOllamaClient:
    """Stand-in for ollama.AsyncClient."""

    def __init__(self, reply: str = "SOURCE: Document Reference\nBased on the Document Reference: 30 days.", error=None):
        self.reply = reply
        self.error = error
        self.prompts: list[str] = []

    async def chat(self, model, messages, **_):
        self.prompts.append(messages[-1]["content"])
        if self.error is not None:
            raise self.error
        return {"message": {"content": self.reply}}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def rules():
    return QueryRuleBook.from_dicts(DEFAULT_QUERY_RULES)


@pytest.fixture()
def namespace_store(tmp_path):
    return ActiveNamespaceStore(tmp_path / "active-namespace.json")


@pytest.fixture()
def embedder():
    return FakeEmbedder()


@pytest.fixture()
def vector_store():
    return FakeVectorStore()


@pytest.fixture()
def ollama_client():
    return FakeOllamaClient()


@pytest.fixture()
def retriever(embedder, vector_store, namespace_store, rules):
    return Retriever(
        embedder=embedder,
        vector_store=vector_store,
        namespace_store=namespace_store,
        rules=rules,
        top_k=5,
        min_score=0.6,
    )


@pytest.fixture()
def generator(ollama_client, rules):
    return Generator(model="fake-model", client=ollama_client, rules=rules)


@pytest.fixture()
def pipeline(retriever, generator, rules):
    return TutorPipeline(retriever=retriever, generator=generator, rules=rules)


@pytest.fixture()
def test_client(pipeline, namespace_store):
    """
    TestClient wired to the fake pipeline.

    Heavy model loading (sentence-transformers, ChromaDB, Ollama) is
    completely bypassed so tests run in milliseconds without any external
    dependencies.
    """
    from doc_tutor.interfaces.web_app import create_app

    app = create_app(
        pipeline=pipeline,
        rate_limiter=RateLimiter(max_requests=10, window_seconds=60),
        namespace_store=namespace_store,
    )
    return TestClient(app)
