"""
Error types for the Document Tutor.

Each error carries the HTTP status the web interface answers with.
Upstream failures are normally absorbed by the retriever and generator,
which degrade to an empty result or an ERROR-tagged answer instead.
"""


class TutorError(Exception):
    """Base class for all tutor errors."""

    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class ValidationError(TutorError):
    """Bad or missing input from the client."""

    status_code = 400


class RateLimitError(TutorError):
    """The client has used up its request allowance for this window."""

    status_code = 429


class ConfigurationError(TutorError):
    """A required setting (model, host, credential) is not configured."""

    status_code = 500


class UpstreamFailure(TutorError):
    """An embedding, vector index, or generation call failed."""

    status_code = 502


class EmbeddingFailure(UpstreamFailure):
    """The embedding model failed on every attempt."""


class NamespaceQueryError(UpstreamFailure):
    """A namespace-scoped index query could not be completed."""

    def __init__(self, namespace: str, message: str = ""):
        super().__init__(message or f"Query in namespace '{namespace}' failed")
        self.namespace = namespace


class InternalError(TutorError):
    """Anything unexpected while handling a request."""

    status_code = 500
