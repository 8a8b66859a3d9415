from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol


@dataclass(slots=True)
class Match:
    key: str
    score: float
    metadata: dict[str, Any] = field(default_factory=dict)


class VectorIndexService(Protocol):
    """Operations the index store needs from an external vector index."""

    name: str

    def has_index(self) -> bool: ...

    def create_index(self, dimension: int, metric: str) -> None: ...

    def index_dimension(self) -> int | None: ...

    def describe_index_stats(self) -> dict[str, Any]: ...

    def list_keys(self, prefix: str) -> list[str]: ...

    def upsert(self, records: list[dict[str, object]]) -> None: ...

    def delete(self, keys: list[str]) -> None: ...

    def query(
        self,
        vector: list[float],
        top_k: int,
        *,
        include_metadata: bool = True,
        filter: dict[str, Any] | None = None,
    ) -> list[Match]: ...
