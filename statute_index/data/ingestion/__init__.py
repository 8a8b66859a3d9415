"""Statute ingestion: segmentation, embedding and index upserts."""

from .chunker import SEGMENTATION_STRATEGIES, Segmenter, build_chunks
from .embeddings import EmbeddingClient
from .loaders import load_statute_text
from .models import Chunk, Document, EmbeddingVector, IngestionResult, SegmenterConfig
from .pipeline import IngestionPipeline, check_document

__all__ = [
    "SEGMENTATION_STRATEGIES",
    "Segmenter",
    "build_chunks",
    "EmbeddingClient",
    "load_statute_text",
    "Chunk",
    "Document",
    "EmbeddingVector",
    "IngestionResult",
    "SegmenterConfig",
    "IngestionPipeline",
    "check_document",
]
