from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any

from statute_index.config import StatuteIndexConfig
from statute_index.data.backends import FaissIndexService, PineconeIndexService, VectorIndexService
from statute_index.data.index_store import DeleteReport, IndexStore
from statute_index.data.ingestion.chunker import Segmenter
from statute_index.data.ingestion.embeddings import EmbeddingClient
from statute_index.data.ingestion.local_embeddings import HashingEmbeddingClient, SentenceTransformerEmbeddingClient
from statute_index.data.ingestion.models import Document, IngestionResult, key_prefix
from statute_index.data.ingestion.pipeline import IngestionPipeline
from statute_index.data.rate_limiter import SlidingWindowRateLimiter
from statute_index.data.retrieval import DEFAULT_TOP_K, RetrievalPipeline, RetrievedSection
from statute_index.errors import ConfigurationError


logger = logging.getLogger(__name__)


class StatuteSearchService:
    """Application service for indexing statutes and retrieving their sections.

    This is the surface a request-routing layer or an answer-synthesis step
    calls. The shared ``rate_limiter`` paces every provider call made through
    this service and is exposed so collaborators can draw from the same budget.
    """

    def __init__(
        self,
        *,
        ingestion: IngestionPipeline,
        retrieval: RetrievalPipeline,
        index_store: IndexStore,
        rate_limiter: SlidingWindowRateLimiter | None = None,
        default_top_k: int = DEFAULT_TOP_K,
    ) -> None:
        self._ingestion = ingestion
        self._retrieval = retrieval
        self._index_store = index_store
        self.rate_limiter = rate_limiter
        self._default_top_k = default_top_k

    @classmethod
    def from_config(
        cls,
        config: StatuteIndexConfig,
        *,
        index_service: VectorIndexService | None = None,
        embedding_client: object | None = None,
    ) -> "StatuteSearchService":
        rate_limiter = SlidingWindowRateLimiter(config.tokens_per_minute)
        embeddings = EmbeddingClient(
            model=config.embedding_model,
            dimension=config.embedding_dimension,
            embedding_client=embedding_client or _build_embedding_client(config),
            rate_limiter=rate_limiter,
            pause_seconds=config.embedding_pause_seconds,
            max_workers=config.embedding_max_workers,
        )
        index_store = IndexStore(
            index_service or _build_index_service(config),
            dimension=config.embedding_dimension,
        )
        return cls(
            ingestion=IngestionPipeline(
                segmenter=Segmenter(),
                embedding_client=embeddings,
                index_store=index_store,
            ),
            retrieval=RetrievalPipeline(
                embedding_client=embeddings,
                index_store=index_store,
                server_side_filter=config.server_side_filter,
            ),
            index_store=index_store,
            rate_limiter=rate_limiter,
            default_top_k=config.retrieval_top_k,
        )

    def index_statute(self, entity_id: str, category_id: str, text: str) -> IngestionResult:
        return self._ingestion.index_document(Document(entity_id=entity_id, category_id=category_id, text=text))

    def delete_statute(self, entity_id: str, category_id: str) -> DeleteReport:
        prefix = key_prefix(entity_id, category_id)
        return self._index_store.delete_by_prefix(prefix, key_filter=lambda key: key[len(prefix) :].isdigit())

    def search_relevant_sections(
        self,
        entity_id: str,
        category_id: str,
        question: str,
        top_k: int | None = None,
        min_score: float | None = None,
    ) -> list[RetrievedSection]:
        return self._retrieval.retrieve(
            entity_id,
            category_id,
            question,
            top_k=self._default_top_k if top_k is None else top_k,
            min_score=min_score,
        )

    def get_index_stats(self) -> dict[str, Any] | None:
        try:
            return self._index_store.describe_stats()
        except Exception:
            logger.exception("Error getting index stats.")
            return None

    async def aindex_statute(self, entity_id: str, category_id: str, text: str) -> IngestionResult:
        return await asyncio.to_thread(self.index_statute, entity_id, category_id, text)

    async def asearch_relevant_sections(
        self,
        entity_id: str,
        category_id: str,
        question: str,
        top_k: int | None = None,
        min_score: float | None = None,
    ) -> list[RetrievedSection]:
        return await asyncio.to_thread(self.search_relevant_sections, entity_id, category_id, question, top_k, min_score)


def _build_index_service(config: StatuteIndexConfig) -> VectorIndexService:
    if config.index_backend == "faiss":
        return FaissIndexService(config.index_name, directory=Path(config.faiss_dir))
    if not config.pinecone_api_key:
        raise ConfigurationError("PINECONE_API_KEY is required for the Pinecone backend.")
    return PineconeIndexService(
        config.index_name,
        api_key=config.pinecone_api_key,
        cloud=config.pinecone_cloud,
        region=config.pinecone_region,
    )


def _build_embedding_client(config: StatuteIndexConfig) -> object | None:
    if config.embedding_backend == "hashing":
        return HashingEmbeddingClient(dimensions=config.embedding_dimension)
    if config.embedding_backend == "sentence-transformers":
        return SentenceTransformerEmbeddingClient()
    # EmbeddingClient builds an OpenAI client lazily from OPENAI_API_KEY.
    return None
