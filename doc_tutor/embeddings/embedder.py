"""
Embedder - Converts text to vector embeddings.

This module handles the conversion of a query into a numerical vector
using sentence-transformers. The same model MUST have been used to build
the index, otherwise similarity scores are meaningless.

The model call is retried with exponential backoff (1s, 2s, 4s, ...) and
runs in a worker thread so the web server's event loop is never blocked.

Example:
    embedder = Embedder()
    vector = await embedder.embed("Who signed the order?")
    print(len(vector))  # 384
"""

import asyncio
import logging
from collections.abc import Mapping, Sequence

import numpy as np
from sentence_transformers import SentenceTransformer

from doc_tutor.config import (
    EMBEDDING_DIMENSION,
    EMBEDDING_MODEL,
    EMBEDDING_MAX_RETRIES,
    EMBEDDING_RETRY_BASE_DELAY,
)
from doc_tutor.errors import EmbeddingFailure

logger = logging.getLogger(__name__)

# Keys that wrap the actual component list in mapping-shaped results
_WRAPPER_KEYS = ("values", "embedding")


def _is_index_key(key) -> bool:
    """True for 0, 1, 2, ... and their canonical string forms ("0", "12", not "01")."""
    if isinstance(key, bool):
        return False
    if isinstance(key, int):
        return key >= 0
    return (
        isinstance(key, str)
        and key.isascii()
        and key.isdigit()
        and (key == "0" or not key.startswith("0"))
    )


def normalize_embedding(raw) -> list[float]:
    """
    Turn a model result into a plain list of floats.

    Accepts a numpy array, any sequence of numbers, or a mapping. A mapping
    either wraps the sequence (``{"values": [...]}``) or holds the
    components keyed by index (``{"0": 0.1, "1": 0.2}``), read in index order.

    Raises:
        TypeError: If the result has none of these shapes
    """
    if isinstance(raw, np.ndarray):
        return [float(x) for x in raw.ravel()]

    if isinstance(raw, Mapping):
        for key in _WRAPPER_KEYS:
            if key in raw and not isinstance(raw[key], (int, float)):
                return normalize_embedding(raw[key])
        # Index keys come first in ascending order, other keys keep insertion order
        indexed = sorted((k for k in raw if _is_index_key(k)), key=int)
        named = [k for k in raw if not _is_index_key(k)]
        return [float(raw[k]) for k in indexed + named]

    if isinstance(raw, Sequence) and not isinstance(raw, (str, bytes)):
        return [float(x) for x in raw]

    raise TypeError(f"Unsupported embedding type: {type(raw).__name__}")


class Embedder:
    """
    Converts text to vector embeddings using sentence-transformers.

    The model is loaded lazily on first use, so creating an Embedder is
    cheap and the web app starts quickly.
    """

    def __init__(
        self,
        model_name: str | None = None,
        max_retries: int | None = None,
        base_delay: float | None = None,
    ):
        """
        Args:
            model_name: sentence-transformers model (config default if omitted)
            max_retries: Total attempts before EmbeddingFailure
            base_delay: First backoff delay in seconds
        """
        self.model_name = model_name or EMBEDDING_MODEL
        self.max_retries = max_retries if max_retries is not None else EMBEDDING_MAX_RETRIES
        self.base_delay = base_delay if base_delay is not None else EMBEDDING_RETRY_BASE_DELAY
        self._model = None  # Lazy loading

    @property
    def model(self) -> SentenceTransformer:
        """Lazy-load the model on first use."""
        if self._model is None:
            logger.info("Loading embedding model: %s", self.model_name)
            self._model = SentenceTransformer(self.model_name)
        return self._model

    def _encode(self, text: str):
        return self.model.encode(text, convert_to_numpy=True)

    async def embed(self, text: str) -> list[float]:
        """
        Convert a single text to an embedding vector.

        Args:
            text: The text to embed

        Returns:
            List of floats (the embedding vector)

        Raises:
            EmbeddingFailure: After ``max_retries`` failed attempts
        """
        if not text or not text.strip():
            # Return zero vector for empty text
            return [0.0] * EMBEDDING_DIMENSION

        last_error: Exception | None = None
        for attempt in range(self.max_retries):
            try:
                raw = await asyncio.to_thread(self._encode, text)
                return normalize_embedding(raw)
            except Exception as e:
                last_error = e
                logger.warning("Embedding attempt %d failed: %s", attempt + 1, e)
                if attempt < self.max_retries - 1:
                    await asyncio.sleep(self.base_delay * (2 ** attempt))

        raise EmbeddingFailure(
            f"Failed to generate embedding after {self.max_retries} attempts: {last_error}"
        )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

# Global embedder instance (singleton pattern)
_global_embedder: Embedder | None = None


def get_embedder() -> Embedder:
    """
    Get or create the global embedder instance.

    This ensures we only load the model once, saving memory.
    """
    global _global_embedder
    if _global_embedder is None:
        _global_embedder = Embedder()
    return _global_embedder
