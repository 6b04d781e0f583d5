"""
Embeddings module - Query embeddings, vector search and the active namespace.

This module is responsible for:
1. Converting queries to embeddings
2. Querying the ChromaDB index
3. Tracking which document collection is currently active
"""

from .embedder import Embedder, get_embedder, normalize_embedding
from .namespace import ActiveNamespaceStore, NamespacePointer
from .vector_store import VectorStore

__all__ = [
    "ActiveNamespaceStore",
    "Embedder",
    "NamespacePointer",
    "VectorStore",
    "get_embedder",
    "normalize_embedding",
]
