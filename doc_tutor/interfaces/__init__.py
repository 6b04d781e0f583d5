"""
Interfaces module - User-facing interfaces for the Document Tutor.

This module provides:
1. CLI interface for command-line interaction
2. Web API using FastAPI
"""
