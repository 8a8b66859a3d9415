from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ...errors import InputRejected, StatuteIndexError
from .chunker import Segmenter
from .embeddings import EmbeddingClient
from .models import MAX_DOCUMENT_CHARS, Document, EmbeddingVector, IngestionResult
from .text_processing import looks_binary

if TYPE_CHECKING:
    from ..index_store import IndexStore


logger = logging.getLogger(__name__)


def check_document(document: Document, max_chars: int = MAX_DOCUMENT_CHARS) -> None:
    if len(document.text) > max_chars:
        raise InputRejected(
            f"Document {document.entity_id}/{document.category_id} is too large "
            f"({len(document.text)} chars, limit {max_chars})."
        )
    if looks_binary(document.text):
        raise InputRejected(
            f"Document {document.entity_id}/{document.category_id} appears to contain binary data."
        )


class IngestionPipeline:
    """Re-indexes one document: delete prior chunks, segment, embed, upsert."""

    def __init__(
        self,
        *,
        segmenter: Segmenter,
        embedding_client: EmbeddingClient,
        index_store: IndexStore,
        max_document_chars: int = MAX_DOCUMENT_CHARS,
    ) -> None:
        self._segmenter = segmenter
        self._embedding_client = embedding_client
        self._index_store = index_store
        self._max_document_chars = max_document_chars

    def index_document(self, document: Document) -> IngestionResult:
        try:
            check_document(document, self._max_document_chars)
        except InputRejected as exc:
            logger.warning("Skipping document: %s", exc)
            raise

        result = IngestionResult(entity_id=document.entity_id, category_id=document.category_id)

        self._index_store.ensure_ready()

        prefix = document.key_prefix
        report = self._index_store.delete_by_prefix(prefix, key_filter=lambda key: key[len(prefix) :].isdigit())
        result.deleted = report.deleted
        if report.failed_keys:
            logger.warning("%d stale keys left behind for %s.", len(report.failed_keys), prefix)

        chunks = self._segmenter.segment(document.text, document.entity_id, document.category_id)
        result.chunk_count = len(chunks)
        if not chunks:
            logger.info("No valid chunks found for %s/%s.", document.entity_id, document.category_id)
            result.skipped_reason = "no chunks"
            return result

        logger.info("Processing %d chunks for %s/%s.", len(chunks), document.entity_id, document.category_id)
        embeddings = self._embedding_client.embed([chunk.content for chunk in chunks])
        if len(embeddings) != len(chunks):
            raise StatuteIndexError(
                f"Embedding count {len(embeddings)} does not match chunk count {len(chunks)}."
            )

        vectors = [EmbeddingVector.from_chunk(chunk, values) for chunk, values in zip(chunks, embeddings)]
        result.upserted = self._index_store.upsert_batch(vectors)
        logger.info("Indexed %d vectors for %s.", result.upserted, prefix)
        return result
