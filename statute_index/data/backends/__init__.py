"""Vector-index service adapters (Pinecone in production, FAISS locally)."""

from .base import Match, VectorIndexService
from .faiss_backend import FaissIndexService
from .pinecone_backend import PineconeIndexService

__all__ = [
    "Match",
    "VectorIndexService",
    "FaissIndexService",
    "PineconeIndexService",
]
