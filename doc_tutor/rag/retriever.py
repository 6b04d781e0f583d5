"""
Retriever - Finds relevant passages for a given query.

This module handles the retrieval part of RAG:
1. Looks up the active namespace
2. Converts the question to an embedding
3. Searches the index (namespace first, default collection as fallback)
4. Filters results by similarity score

Key Concept:
Retrieval never fails loudly. If embedding or the index query breaks,
the caller gets an empty list and the generator answers with the
"no relevant information" message instead of an error page.
"""

import asyncio
import logging
import math
from dataclasses import dataclass

from doc_tutor.config import MIN_SIMILARITY_SCORE, TOP_K_CHUNKS
from doc_tutor.embeddings.embedder import Embedder, get_embedder
from doc_tutor.embeddings.namespace import ActiveNamespaceStore
from doc_tutor.embeddings.vector_store import VectorStore
from doc_tutor.errors import EmbeddingFailure, NamespaceQueryError
from doc_tutor.rag.rules import QueryRuleBook

logger = logging.getLogger(__name__)


@dataclass
class SearchMatch:
    """
    A passage that passed the score filter.

    Attributes:
        text: The chunk text
        score: Similarity score (0 to 1)
        chunk_number: Chunk position in the source document, or "N/A"
    """

    text: str
    score: float
    chunk_number: str = "N/A"

    def to_dict(self) -> dict:
        return {"text": self.text, "score": self.score, "chunkNumber": self.chunk_number}


def _is_score(value) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and not math.isnan(value)
    )


def _to_match(raw: dict) -> SearchMatch:
    metadata = raw.get("metadata") or {}
    text = metadata.get("text")
    if text is None:
        text = raw.get("document") or ""
    chunk_number = metadata.get("chunk_number")
    return SearchMatch(
        text=str(text),
        score=float(raw["score"]),
        chunk_number=str(chunk_number) if chunk_number is not None else "N/A",
    )


class Retriever:
    """
    Retrieves relevant passages from the vector index.

    Example:
        retriever = Retriever()
        matches = await retriever.search("What is the notice period?")
        for match in matches:
            print(f"{match.score:.4f} {match.text[:60]}")
    """

    def __init__(
        self,
        embedder: Embedder | None = None,
        vector_store: VectorStore | None = None,
        namespace_store: ActiveNamespaceStore | None = None,
        rules: QueryRuleBook | None = None,
        top_k: int | None = None,
        min_score: float | None = None,
    ):
        """
        Args:
            embedder: Embedder instance (uses global if not provided)
            vector_store: VectorStore instance (creates new if not provided)
            namespace_store: Where the active namespace is read from
            rules: Query overrides (loaded from disk if not provided)
            top_k: Default number of passages to request
            min_score: Default minimum similarity score
        """
        self.embedder = embedder or get_embedder()
        self.vector_store = vector_store or VectorStore()
        self.namespace_store = namespace_store or ActiveNamespaceStore()
        self.rules = rules if rules is not None else QueryRuleBook.load()
        self.top_k = top_k or TOP_K_CHUNKS
        self.min_score = min_score if min_score is not None else MIN_SIMILARITY_SCORE

    async def search(
        self,
        query: str,
        top_k: int | None = None,
        min_score: float | None = None,
    ) -> list[SearchMatch]:
        """
        Find passages relevant to a query.

        Args:
            query: The user's question
            top_k: Override default number of results
            min_score: Override minimum score threshold

        Returns:
            Matches scoring at least ``min_score``, in the order the index
            returned them. Empty on any failure.
        """
        top_k = top_k or self.top_k
        min_score = min_score if min_score is not None else self.min_score

        try:
            namespace = await asyncio.to_thread(self.namespace_store.get_active_namespace)

            logger.info("Generating embedding for query...")
            embedding = await self.embedder.embed(query)

            top_k, min_score = self.rules.search_params(query, top_k, min_score)

            logger.info("Searching with namespace: %s", namespace or "none (default)")
            raw_matches = await self._query(embedding, top_k, namespace)
        except EmbeddingFailure as e:
            logger.error("Search aborted, embedding failed: %s", e)
            return []
        except Exception:
            logger.exception("Search error")
            return []

        if not raw_matches:
            logger.info("No matches found in query response")
            return []

        logger.debug("Raw matches before filtering: %d", len(raw_matches))
        results = [
            _to_match(raw)
            for raw in raw_matches
            if _is_score(raw.get("score")) and raw["score"] >= min_score
        ]
        logger.info(
            "Filtered results count: %d (minimum score %s)", len(results), min_score
        )
        return results

    async def _query(self, embedding: list[float], top_k: int, namespace: str | None) -> list[dict]:
        """
        Run the index query, scoped to the namespace when there is one.

        A failed scoped query is retried exactly once without the namespace.
        """
        if namespace:
            try:
                return await asyncio.to_thread(
                    self.vector_store.query, embedding, top_k, namespace
                )
            except NamespaceQueryError as e:
                logger.warning("Error querying with namespace, falling back to default: %s", e)

        return await asyncio.to_thread(self.vector_store.query, embedding, top_k, None)
