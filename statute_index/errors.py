"""Exception hierarchy for statute indexing and retrieval.

    StatuteIndexError
    +-- InputRejected       (document failed the size or binary-content guard)
    +-- ProviderError       (embedding or vector-index call failed)
    |   +-- UpsertAborted   (a batch upsert failed part-way through)
    +-- IndexUnavailable    (index never became ready within the poll budget)
    +-- ConfigurationError  (dimension mismatch, missing settings)

Empty results (no chunks after segmentation, no matches after filtering) are
not errors and are returned as empty lists.
"""

from __future__ import annotations


class StatuteIndexError(Exception):
    """Base exception carrying an optional provider name."""

    def __init__(self, message: str, provider_name: str | None = None) -> None:
        self.message = message
        self.provider_name = provider_name
        super().__init__(message)

    def __str__(self) -> str:
        if self.provider_name:
            return f"[{self.provider_name}] {self.message}"
        return self.message


class InputRejected(StatuteIndexError):
    """Raised when a document is too large or looks like binary data."""


class ProviderError(StatuteIndexError):
    """Raised when an embedding or vector-index call fails."""


class UpsertAborted(ProviderError):
    """Raised when an upsert batch fails; earlier batches stay committed."""

    def __init__(self, message: str, committed: int, provider_name: str | None = None) -> None:
        super().__init__(message, provider_name=provider_name)
        self.committed = committed


class IndexUnavailable(StatuteIndexError):
    """Raised when the vector index does not become ready in time."""


class ConfigurationError(StatuteIndexError):
    """Raised for fatal configuration problems such as a dimension mismatch."""
