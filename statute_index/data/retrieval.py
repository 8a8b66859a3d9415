from __future__ import annotations

import logging
from dataclasses import dataclass

from .index_store import IndexStore
from .ingestion.embeddings import EmbeddingClient


logger = logging.getLogger(__name__)

DEFAULT_TOP_K = 8
OVERFETCH_FACTOR = 3


@dataclass(frozen=True)
class RetrievedSection:
    content: str
    score: float
    chunk_index: int
    section_label: str | None = None


class RetrievalPipeline:
    """Finds the chunks of one entity/category most relevant to a question.

    The index is shared by every entity and category, so by default the query
    over-fetches ``top_k * 3`` candidates and filters them here on exact
    metadata equality. With ``server_side_filter`` the filter is also sent to
    the provider and only ``top_k`` candidates are requested.
    """

    def __init__(
        self,
        *,
        embedding_client: EmbeddingClient,
        index_store: IndexStore,
        server_side_filter: bool = False,
        overfetch_factor: int = OVERFETCH_FACTOR,
    ) -> None:
        self._embedding_client = embedding_client
        self._index_store = index_store
        self._server_side_filter = server_side_filter
        self._overfetch_factor = overfetch_factor

    def retrieve(
        self,
        entity_id: str,
        category_id: str,
        question: str,
        top_k: int = DEFAULT_TOP_K,
        min_score: float | None = None,
    ) -> list[RetrievedSection]:
        if not question.strip():
            raise ValueError("question must not be empty.")
        if top_k <= 0:
            raise ValueError("top_k must be greater than zero.")

        vector = self._embedding_client.embed_one(question)

        if self._server_side_filter:
            matches = self._index_store.query(
                vector,
                top_k,
                filter={"entity_id": {"$eq": entity_id}, "category_id": {"$eq": category_id}},
            )
        else:
            matches = self._index_store.query(vector, top_k * self._overfetch_factor)

        filtered = [
            match
            for match in matches
            if match.metadata.get("entity_id") == entity_id and match.metadata.get("category_id") == category_id
        ]
        if min_score is not None:
            filtered = [match for match in filtered if match.score >= min_score]
        selected = filtered[:top_k]

        logger.info("Retrieval query for %s/%s: %s", entity_id, category_id, question)
        logger.info("Retrieved chunk ids: %s", [match.key for match in selected])
        logger.info("Similarity scores: %s", [round(match.score, 6) for match in selected])

        return [
            RetrievedSection(
                content=str(match.metadata.get("content", "")),
                score=float(match.score),
                chunk_index=int(match.metadata.get("chunk_index", 0)),
                section_label=str(match.metadata.get("section_label") or "") or None,
            )
            for match in selected
        ]
