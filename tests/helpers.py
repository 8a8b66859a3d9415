from __future__ import annotations

import math

from statute_index.data.backends.base import Match


def _cosine(a: list[float], b: list[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    return dot / norm if norm else 0.0


class InMemoryIndexService:
    """Vector-index service double with switchable failure modes."""

    def __init__(self, name: str = "test-index", *, exists: bool = True, dimension: int = 2) -> None:
        self.name = name
        self.exists = exists
        self.dimension = dimension
        self.records: dict[str, dict[str, object]] = {}
        self.calls: list[tuple[str, object]] = []
        self.created_with: tuple[int, str] | None = None
        self.not_ready_polls = 0
        self.fail_listing = False
        self.fail_batch_delete = False
        self.undeletable: set[str] = set()
        self.fail_upsert_call: int | None = None
        self.fail_query = False
        self.query_results: list[Match] | None = None
        self._upsert_calls = 0

    def has_index(self) -> bool:
        self.calls.append(("has_index", None))
        return self.exists

    def create_index(self, dimension: int, metric: str) -> None:
        self.calls.append(("create_index", (dimension, metric)))
        self.created_with = (dimension, metric)
        self.exists = True
        self.dimension = dimension

    def index_dimension(self) -> int | None:
        return self.dimension if self.exists else None

    def describe_index_stats(self) -> dict[str, object]:
        self.calls.append(("describe_index_stats", None))
        if self.not_ready_polls > 0:
            self.not_ready_polls -= 1
            raise RuntimeError("index not ready")
        return {"dimension": self.dimension, "total_vector_count": len(self.records)}

    def list_keys(self, prefix: str) -> list[str]:
        self.calls.append(("list_keys", prefix))
        if self.fail_listing:
            raise RuntimeError("namespace not found")
        return sorted(key for key in self.records if key.startswith(prefix))

    def upsert(self, records: list[dict[str, object]]) -> None:
        self._upsert_calls += 1
        self.calls.append(("upsert", len(records)))
        if self.fail_upsert_call == self._upsert_calls:
            raise RuntimeError("payload rejected")
        for record in records:
            self.records[str(record["id"])] = record

    def delete(self, keys: list[str]) -> None:
        self.calls.append(("delete", list(keys)))
        if self.fail_batch_delete and len(keys) > 1:
            raise RuntimeError("batch delete failed")
        if any(key in self.undeletable for key in keys):
            raise RuntimeError("inconsistent key state")
        for key in keys:
            self.records.pop(key, None)

    def query(self, vector, top_k, *, include_metadata=True, filter=None) -> list[Match]:
        self.calls.append(("query", {"top_k": top_k, "filter": filter}))
        if self.fail_query:
            raise RuntimeError("query timed out")
        if self.query_results is not None:
            return self.query_results[:top_k]

        matches = []
        for key, record in self.records.items():
            metadata = dict(record["metadata"])
            if filter and any(metadata.get(name) != cond["$eq"] for name, cond in filter.items()):
                continue
            matches.append(Match(key=key, score=_cosine(vector, list(record["values"])), metadata=metadata))
        matches.sort(key=lambda match: (-match.score, match.key))
        return matches[:top_k]


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def padded(text: str, length: int = 450) -> str:
    """Pad a provision with filler words until it reaches ``length`` chars."""
    filler = " and applies to every lot within the village"
    while len(text) < length:
        text += filler
    return text
