"""
RAG module - Retrieval-Augmented Generation pipeline.

This module is responsible for:
1. Retrieving relevant passages for a query
2. Assembling them into a context block
3. Generating provenance-tagged answers using Ollama
"""

from .context import assemble_context, parse_context
from .generator import Generator, TutorPipeline
from .retriever import Retriever, SearchMatch
from .rules import QueryRule, QueryRuleBook

__all__ = [
    "Generator",
    "QueryRule",
    "QueryRuleBook",
    "Retriever",
    "SearchMatch",
    "TutorPipeline",
    "assemble_context",
    "parse_context",
]
