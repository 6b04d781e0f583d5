"""
Web Interface - FastAPI server for the Document Tutor.

Endpoints:
    POST /api/search   Ask a question about the active document
    GET  /health       Basic status, no upstream calls

Run with:
    python -m doc_tutor.interfaces.web_app
    # or, after installing: doc-tutor-server
"""

import asyncio
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from doc_tutor import configure_logging
from doc_tutor import config
from doc_tutor.embeddings.namespace import ActiveNamespaceStore
from doc_tutor.errors import ConfigurationError, RateLimitError, TutorError, ValidationError
from doc_tutor.interfaces.rate_limit import RateLimiter
from doc_tutor.rag.generator import TutorPipeline

logger = logging.getLogger(__name__)


# =============================================================================
# SCHEMAS
# =============================================================================


class SearchResult(BaseModel):
    text: str
    score: float
    chunkNumber: str


class SearchResponse(BaseModel):
    results: list[SearchResult]
    aiResponse: str
    hasContext: bool


class ErrorResponse(BaseModel):
    error: str


class HealthResponse(BaseModel):
    status: str
    generation_model: str
    embedding_model: str
    index_name: str
    active_namespace: str | None
    missing_settings: list[str]


# =============================================================================
# REQUEST HELPERS
# =============================================================================


def client_id(request: Request) -> str:
    """First X-Forwarded-For address, else the peer address, else 'unknown'."""
    forwarded = request.headers.get("x-forwarded-for", "")
    first = forwarded.split(",")[0].strip()
    if first:
        return first
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


async def read_query(request: Request) -> str:
    """
    Pull the query string out of the JSON body.

    Raises:
        ValidationError: Body is not a JSON object or query is missing/blank
    """
    try:
        body = await request.json()
    except ValueError as e:
        raise ValidationError("Query is required") from e

    query = body.get("query") if isinstance(body, dict) else None
    if not isinstance(query, str) or not query.strip():
        raise ValidationError("Query is required")
    return query


def error_response(error: TutorError) -> JSONResponse:
    return JSONResponse({"error": error.message}, status_code=error.status_code)


# =============================================================================
# APP FACTORY
# =============================================================================


def create_app(
    pipeline: TutorPipeline | None = None,
    rate_limiter: RateLimiter | None = None,
    namespace_store: ActiveNamespaceStore | None = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        pipeline: RAG pipeline (built from config if not provided)
        rate_limiter: Per-client limiter (fresh one if not provided)
        namespace_store: Used by /health to report the active namespace
    """
    app = FastAPI(title="Document Tutor", version="0.1.0")
    app.state.pipeline = pipeline or TutorPipeline()
    app.state.rate_limiter = rate_limiter if rate_limiter is not None else RateLimiter()
    app.state.namespace_store = namespace_store or ActiveNamespaceStore()

    @app.post(
        "/api/search",
        response_model=SearchResponse,
        responses={400: {"model": ErrorResponse}, 429: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    )
    async def search(request: Request):
        try:
            ip = client_id(request)
            if app.state.rate_limiter.is_limited(ip):
                logger.warning("Rate limit exceeded for %s", ip)
                raise RateLimitError("Too many requests. Please try again later.")

            query = await read_query(request)
            logger.info("Received search query: %s", query)

            missing = config.missing_settings()
            if missing:
                logger.error("Missing required settings: %s", ", ".join(missing))
                raise ConfigurationError("Server configuration error")

            return await app.state.pipeline.ask(query)
        except TutorError as e:
            return error_response(e)
        except Exception:
            logger.exception("Error in /api/search")
            return JSONResponse({"error": "Failed to process search query"}, status_code=500)

    @app.get("/health", response_model=HealthResponse)
    async def health():
        namespace = await asyncio.to_thread(app.state.namespace_store.get_active_namespace)
        return {
            "status": "ok",
            "generation_model": config.OLLAMA_MODEL,
            "embedding_model": config.EMBEDDING_MODEL,
            "index_name": config.INDEX_NAME,
            "active_namespace": namespace,
            "missing_settings": config.missing_settings(),
        }

    return app


def main():
    """Run the API server with uvicorn."""
    import uvicorn

    configure_logging()
    uvicorn.run(create_app(), host=config.SERVER_HOST, port=config.SERVER_PORT)


if __name__ == "__main__":
    main()
