"""
Document Tutor - Ask questions about an uploaded document.

This package provides:
- Query embedding with sentence-transformers
- Similarity search over a ChromaDB index, scoped to the active namespace
- Grounded, provenance-tagged answers from an Ollama model
- CLI and Web interfaces
"""

import logging

__version__ = "0.1.0"


def configure_logging(level: str | None = None) -> None:
    """Set up root logging for the CLI and the server."""
    from doc_tutor.config import LOG_LEVEL

    logging.basicConfig(
        level=(level or LOG_LEVEL).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
