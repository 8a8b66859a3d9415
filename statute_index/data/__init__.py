"""Statute ingestion, vector index access and retrieval."""

from .index_store import DeleteReport, IndexState, IndexStore
from .ingestion import Chunk, Document, EmbeddingClient, IngestionPipeline, Segmenter
from .rate_limiter import SlidingWindowRateLimiter
from .retrieval import RetrievalPipeline, RetrievedSection

__all__ = [
    "DeleteReport",
    "IndexState",
    "IndexStore",
    "Chunk",
    "Document",
    "EmbeddingClient",
    "IngestionPipeline",
    "Segmenter",
    "SlidingWindowRateLimiter",
    "RetrievalPipeline",
    "RetrievedSection",
]
