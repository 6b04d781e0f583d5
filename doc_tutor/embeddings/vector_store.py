"""
Vector Store - Similarity search over the document index using ChromaDB.

Key Concepts:
- Collections: Like tables in a database. The default collection
  (INDEX_NAME) holds documents indexed without a namespace.
- Namespaces: Each uploaded document collection lives in its own Chroma
  collection, named after the namespace.
- Metadata: Chunk text and chunk number are stored alongside each vector.

How it works:
    question embedding -> nearest stored embeddings -> raw matches

The store only returns raw matches. Filtering by score and the namespace
fallback policy live in the retriever.
"""

import logging
from pathlib import Path

import chromadb
import httpx
from chromadb.errors import ChromaError

from doc_tutor.config import (
    CHROMA_API_KEY,
    CHROMA_DB_DIR,
    CHROMA_HOST,
    CHROMA_PORT,
    INDEX_NAME,
    TOP_K_CHUNKS,
)
from doc_tutor.errors import NamespaceQueryError

logger = logging.getLogger(__name__)

# Missing collection (local or remote) or a transport failure talking to the server
_SCOPED_QUERY_ERRORS = (ChromaError, ValueError, httpx.HTTPError)


def _create_client(persist_directory: Path):
    """Connect to the remote Chroma server if configured, else the local DB."""
    if CHROMA_HOST:
        logger.info("Connecting to Chroma server at %s:%s", CHROMA_HOST, CHROMA_PORT)
        headers = {"x-chroma-token": CHROMA_API_KEY} if CHROMA_API_KEY else None
        return chromadb.HttpClient(host=CHROMA_HOST, port=CHROMA_PORT, headers=headers)

    persist_directory.mkdir(parents=True, exist_ok=True)
    return chromadb.PersistentClient(path=str(persist_directory))


class VectorStore:
    """
    ChromaDB-backed index client.

    Example:
        store = VectorStore()
        matches = store.query(query_embedding, top_k=5, namespace="docs1")
        for match in matches:
            print(match["score"], match["metadata"].get("chunk_number"))
    """

    def __init__(
        self,
        index_name: str | None = None,
        persist_directory: str | Path | None = None,
        client=None,
    ):
        """
        Args:
            index_name: Default (unscoped) collection name
            persist_directory: Where the local database lives
            client: Pre-built Chroma client (created from config if omitted)
        """
        self.index_name = index_name or INDEX_NAME
        self.persist_directory = Path(persist_directory or CHROMA_DB_DIR)
        self._client = client
        self._collection = None

    @property
    def client(self):
        if self._client is None:
            self._client = _create_client(self.persist_directory)
        return self._client

    @property
    def collection(self):
        """The default collection, created with cosine distance if missing."""
        if self._collection is None:
            logger.info("Connecting to index: %s", self.index_name)
            self._collection = self.client.get_or_create_collection(
                name=self.index_name,
                metadata={"hnsw:space": "cosine"},
            )
        return self._collection

    @property
    def count(self) -> int:
        """Number of vectors in the default collection."""
        return self.collection.count()

    def query(
        self,
        query_embedding: list[float],
        top_k: int | None = None,
        namespace: str | None = None,
    ) -> list[dict]:
        """
        Find the nearest stored chunks.

        Args:
            query_embedding: The embedding vector to search with
            top_k: Number of results to return
            namespace: Collection to scope the query to (default collection if None)

        Returns:
            Raw matches, most similar first. Each is a dict with
            ``id``, ``score``, ``document`` and ``metadata``.

        Raises:
            NamespaceQueryError: If the namespace collection is missing, the
                scoped query fails, or the Chroma server cannot be reached
        """
        top_k = top_k or TOP_K_CHUNKS

        if namespace is None:
            return self._run_query(self.collection, query_embedding, top_k)

        try:
            collection = self.client.get_collection(name=namespace)
            return self._run_query(collection, query_embedding, top_k)
        except _SCOPED_QUERY_ERRORS as e:
            raise NamespaceQueryError(namespace, str(e)) from e

    @staticmethod
    def _run_query(collection, query_embedding: list[float], top_k: int) -> list[dict]:
        results = collection.query(
            query_embeddings=[query_embedding],
            n_results=top_k,
            include=["documents", "metadatas", "distances"],
        )

        matches = []
        if not results or not results.get("ids") or not results["ids"][0]:
            return matches

        ids = results["ids"][0]
        documents = results["documents"][0] if results.get("documents") else [""] * len(ids)
        metadatas = results["metadatas"][0] if results.get("metadatas") else [{}] * len(ids)
        distances = results["distances"][0] if results.get("distances") else [None] * len(ids)

        for doc_id, doc, meta, dist in zip(ids, documents, metadatas, distances):
            # Cosine distance runs 0 (identical) to 2 (opposite).
            # 1 - distance, clamped to [0, 1], gives the similarity score.
            score = None if dist is None else min(1.0, max(0.0, 1.0 - float(dist)))
            matches.append({
                "id": doc_id,
                "score": score,
                "document": doc,
                "metadata": meta or {},
            })

        return matches

    def list_namespaces(self) -> list[str]:
        """Names of all collections other than the default one."""
        names = []
        for item in self.client.list_collections():
            # Older clients return Collection objects, newer ones plain names
            name = item if isinstance(item, str) else item.name
            if name != self.index_name:
                names.append(name)
        return sorted(names)

    def get_stats(self, namespace: str | None = None) -> dict:
        """Statistics about the default collection or a namespace."""
        if namespace:
            try:
                count = self.client.get_collection(name=namespace).count()
            except _SCOPED_QUERY_ERRORS:
                count = 0
        else:
            count = self.count

        return {
            "index_name": self.index_name,
            "namespace": namespace,
            "document_count": count,
            "namespaces": self.list_namespaces(),
            "location": f"{CHROMA_HOST}:{CHROMA_PORT}" if CHROMA_HOST else str(self.persist_directory),
        }
