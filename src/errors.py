"""Error taxonomy shared by the API layer and services."""


class RecommenderError(Exception):
    """Base class for errors surfaced to API callers."""

    code: str = "error"
    status: int = 500

    def __init__(self, message: str = "", *, code: str | None = None, status: int | None = None):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__
        if code:
            self.code = code
        if status:
            self.status = status


class ValidationError(RecommenderError):
    """Malformed or out-of-bound request payload. Not retried."""

    code = "validation_error"
    status = 400

    def __init__(self, message: str = "Invalid input data", *, details: list | None = None):
        super().__init__(message)
        self.details = details or []


class AuthError(RecommenderError):
    """Missing or invalid credential on an operation requiring identity."""

    code = "unauthorized"
    status = 401


class NotFound(RecommenderError):
    code = "not_found"
    status = 404


class UpstreamUnavailable(RecommenderError):
    """The generative or embedding provider failed or is unreachable. Safe to retry."""

    code = "upstream_unavailable"
    status = 502


class MalformedResponse(RecommenderError):
    """The generative layer returned content that does not fit the expected shape."""

    code = "malformed_response"
    status = 500


class StorageError(RecommenderError):
    """Persistence read or write failure."""

    code = "storage_error"
    status = 500
