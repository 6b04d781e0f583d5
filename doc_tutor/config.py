"""
Configuration settings for the Document Tutor application.

This file centralizes all configuration so you can easily adjust parameters.
Every setting can be overridden with a ``TUTOR_*`` environment variable,
which is how the server is configured in deployment.
"""

import os
from pathlib import Path


def _env(name: str, default: str) -> str:
    return os.getenv(f"TUTOR_{name}", default)


# =============================================================================
# PATH CONFIGURATION
# =============================================================================

# Base directory (where this project lives)
BASE_DIR = Path(__file__).parent.parent

# Data storage directory
DATA_DIR = Path(_env("DATA_DIR", str(BASE_DIR / "data")))

# Pointer to the document collection that is currently "active".
# Written by the upload/indexing flow, read on every search.
ACTIVE_NAMESPACE_FILE = DATA_DIR / "active-namespace.json"

# Optional override table for specific queries (see rag/rules.py)
QUERY_RULES_FILE = DATA_DIR / "query_rules.json"

# ChromaDB storage location (used when no remote host is configured)
CHROMA_DB_DIR = Path(_env("CHROMA_DB_DIR", str(DATA_DIR / "chroma_db")))

# =============================================================================
# EMBEDDING CONFIGURATION
# =============================================================================

# This model creates 384-dimensional vectors.
# The index MUST have been built with the same model!
EMBEDDING_MODEL = _env("EMBEDDING_MODEL", "all-MiniLM-L6-v2")
EMBEDDING_DIMENSION = int(_env("EMBEDDING_DIMENSION", "384"))

# Embedding attempts before giving up, and the first backoff delay in seconds.
# Delays double on each attempt: 1s, 2s, 4s, ...
EMBEDDING_MAX_RETRIES = int(_env("EMBEDDING_MAX_RETRIES", "3"))
EMBEDDING_RETRY_BASE_DELAY = float(_env("EMBEDDING_RETRY_BASE_DELAY", "1.0"))

# =============================================================================
# VECTOR INDEX CONFIGURATION
# =============================================================================

# Default collection, queried when no namespace is active or when the
# namespace-scoped query fails. Each namespace is its own collection.
INDEX_NAME = _env("INDEX_NAME", "tutor_documents")

# Remote Chroma server. Leave CHROMA_HOST empty to use the local persistent DB.
CHROMA_HOST = _env("CHROMA_HOST", "")
CHROMA_PORT = int(_env("CHROMA_PORT", "8000"))
CHROMA_API_KEY = _env("CHROMA_API_KEY", "")

# =============================================================================
# OLLAMA CONFIGURATION
# =============================================================================

OLLAMA_MODEL = _env("OLLAMA_MODEL", "llama3.2")
OLLAMA_BASE_URL = _env("OLLAMA_BASE_URL", "http://localhost:11434")

# Sent as a bearer token when talking to a hosted Ollama endpoint
OLLAMA_API_KEY = _env("OLLAMA_API_KEY", "")

# =============================================================================
# RAG CONFIGURATION
# =============================================================================

# Number of chunks requested from the index
TOP_K_CHUNKS = int(_env("TOP_K", "5"))

# Minimum similarity score to include a chunk (0.0 to 1.0)
MIN_SIMILARITY_SCORE = float(_env("MIN_SCORE", "0.6"))

# =============================================================================
# RATE LIMITING
# =============================================================================

RATE_LIMIT_WINDOW_SECONDS = float(_env("RATE_LIMIT_WINDOW", "60"))
RATE_LIMIT_MAX_REQUESTS = int(_env("RATE_LIMIT_MAX_REQUESTS", "10"))

# =============================================================================
# SERVER / LOGGING
# =============================================================================

SERVER_HOST = _env("HOST", "127.0.0.1")
SERVER_PORT = int(_env("PORT", "8000"))
LOG_LEVEL = _env("LOG_LEVEL", "INFO")

# Settings that must be non-empty before the search endpoint will run
REQUIRED_SETTINGS = ("OLLAMA_BASE_URL", "OLLAMA_MODEL", "EMBEDDING_MODEL", "INDEX_NAME")


def missing_settings() -> list[str]:
    """
    Return the names of required settings that are not configured.

    A remote Chroma host also needs an API key.
    """
    current = globals()
    missing = [name for name in REQUIRED_SETTINGS if not str(current[name]).strip()]
    if CHROMA_HOST.strip() and not CHROMA_API_KEY.strip():
        missing.append("CHROMA_API_KEY")
    return missing


# =============================================================================
# QUERY RULES
# =============================================================================

# Built-in override table, used when QUERY_RULES_FILE does not exist.
# Keys are matched against the normalized query (lower-case, single spaces).
DEFAULT_QUERY_RULES: list[dict] = [
    {
        "phrase": "who is asked to do what",
        "top_k": 10,
        "min_score": 0.5,
        "answer": (
            "Sri P. K. Hatibaruah, Ex-SIFCS (Retd) is directed to vacate the "
            "Government Quarter bearing Number-T-III/SP/18 immediately which is "
            "being allotted to PRO of the Hon'ble Minister (Agriculture, "
            "Horticulture, Animal Husbandry, Veterinary & Dairy Development, "
            "Fisheries, Food & Civil Supplies and Legal Metrology)."
        ),
    },
]

# =============================================================================
# RESPONSE TAGS
# =============================================================================
# Every answer starts with "SOURCE: <tag>". Clients key off these literals,
# so they must not change.

SOURCE_PREFIX = "SOURCE: "
TAG_DOCUMENT = "Document Reference"
TAG_NO_INFO = "GENERATED - NO RELEVANT INFORMATION"
TAG_ERROR = "ERROR"

# =============================================================================
# LLM PROMPT TEMPLATES
# =============================================================================

NO_INFO_MESSAGE = (
    "I'm designed to answer questions about the uploaded PDF document only. "
    "Please try asking questions related to the content of the uploaded document, "
    "or upload a different document with the information you're looking for "
    'about "{query}".'
)

EMPTY_REPLY_MESSAGE = (
    "Unable to generate a specific response. Please try reformulating your "
    "question or check other reference sources."
)

FAILED_REPLY_MESSAGE = (
    "Unable to generate a specific response due to a technical error.\n\n"
    "Technical error details: {error}"
)

SYSTEM_PROMPT = """You are an assistant for answering questions based on the provided document.
Use ONLY the document text you are given. Never invent facts that are not in it."""

RAG_PROMPT_TEMPLATE = """Use the specific text provided to answer the following query.

Query: {query}

Document Reference:
{context}

If the document reference contains information that answers the query, format your response EXACTLY as follows:
SOURCE: Document Reference
Based on the Document Reference: <write a comprehensive summary of the specific information from the provided text, maintaining accuracy and detail>

If the document reference does NOT contain information that answers the query, format your response EXACTLY as follows:
SOURCE: GENERATED - NO RELEVANT INFORMATION
{no_info}

Please note: This response is based on the information in the document. Always verify information from authoritative sources."""
