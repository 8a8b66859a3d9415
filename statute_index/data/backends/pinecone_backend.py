from __future__ import annotations

import logging
from typing import Any

from .base import Match


logger = logging.getLogger(__name__)


def _get_pinecone_module():
    try:
        import pinecone
    except ImportError as exc:  # pragma: no cover - dependency wiring is environment-specific.
        raise RuntimeError("pinecone is required for the Pinecone index backend. Install pinecone.") from exc
    return pinecone


class PineconeIndexService:
    """Serverless Pinecone index addressed by name."""

    def __init__(
        self,
        name: str,
        *,
        api_key: str | None = None,
        cloud: str = "aws",
        region: str = "us-east-1",
        client: Any | None = None,
    ) -> None:
        self.name = name
        self._cloud = cloud
        self._region = region
        if client is None:
            client = _get_pinecone_module().Pinecone(api_key=api_key)
        self._client = client
        self._index: Any | None = None

    @property
    def index(self) -> Any:
        if self._index is None:
            self._index = self._client.Index(self.name)
        return self._index

    def has_index(self) -> bool:
        return self.name in self._client.list_indexes().names()

    def create_index(self, dimension: int, metric: str) -> None:
        spec = _get_pinecone_module().ServerlessSpec(cloud=self._cloud, region=self._region)
        logger.info("Creating Pinecone index %s (dimension=%d, metric=%s).", self.name, dimension, metric)
        self._client.create_index(name=self.name, dimension=dimension, metric=metric, spec=spec)

    def index_dimension(self) -> int | None:
        description = self._client.describe_index(self.name)
        dimension = getattr(description, "dimension", None)
        return int(dimension) if dimension is not None else None

    def describe_index_stats(self) -> dict[str, Any]:
        stats = self.index.describe_index_stats()
        return stats.to_dict() if hasattr(stats, "to_dict") else dict(stats)

    def list_keys(self, prefix: str) -> list[str]:
        keys: list[str] = []
        for page in self.index.list(prefix=prefix):
            keys.extend(page)
        return keys

    def upsert(self, records: list[dict[str, object]]) -> None:
        self.index.upsert(vectors=records)

    def delete(self, keys: list[str]) -> None:
        self.index.delete(ids=keys)

    def query(
        self,
        vector: list[float],
        top_k: int,
        *,
        include_metadata: bool = True,
        filter: dict[str, Any] | None = None,
    ) -> list[Match]:
        kwargs: dict[str, Any] = {"vector": vector, "top_k": top_k, "include_metadata": include_metadata}
        if filter:
            kwargs["filter"] = filter
        response = self.index.query(**kwargs)
        return [
            Match(key=match.id, score=float(match.score or 0.0), metadata=dict(match.metadata or {}))
            for match in (response.matches or [])
        ]
