"""
Error taxonomy.

Every failure the engine reports is one of these. The tool layer turns
them into ActionResult(success=False) using the stable `code`.
"""


class MemoriaError(Exception):
    """Base class for all engine errors."""

    code = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(MemoriaError):
    """Malformed or out-of-range input."""

    code = "validation_error"


class NotFoundError(MemoriaError):
    """Missing id/key, or ownership mismatch."""

    code = "not_found"


class ExpiredNotFoundError(NotFoundError):
    """Ephemeral entry existed but its TTL had passed (it has been removed)."""

    code = "expired"


class ConflictError(MemoriaError):
    """Uniqueness constraint violated."""

    code = "conflict"


class ProviderError(MemoriaError):
    """Embedding generation failed or timed out."""

    code = "provider_error"


class StoreError(MemoriaError):
    """Underlying persistence failure."""

    code = "store_error"


class SearchUnavailableError(StoreError):
    """Similarity search backend cannot serve the query."""

    code = "search_unavailable"
