from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import numpy as np

from .base import Match


logger = logging.getLogger(__name__)


def _get_faiss_module():
    try:
        import faiss
    except ImportError as exc:  # pragma: no cover - dependency wiring is environment-specific.
        raise RuntimeError("faiss is required for the local index backend. Install faiss-cpu/faiss-gpu.") from exc
    return faiss


class FaissIndexService:
    """Local cosine-similarity index with string keys and JSON metadata.

    Vectors are L2-normalised and stored in an inner-product index, so scores
    are cosine similarities. When ``directory`` is given the index and its
    metadata are written after every mutation and reloaded on construction.
    """

    def __init__(self, name: str, directory: str | Path | None = None) -> None:
        self.name = name
        self._directory = Path(directory) if directory is not None else None
        self._index: Any | None = None
        self._dimension: int | None = None
        self._key_to_id: dict[str, int] = {}
        self._records: dict[str, dict[str, Any]] = {}
        self._next_id = 0

        if self._directory is not None and self.index_path.exists() and self.metadata_path.exists():
            self._load()

    @property
    def index_path(self) -> Path:
        return self._require_directory() / f"{self.name}.index"

    @property
    def metadata_path(self) -> Path:
        return self._require_directory() / f"{self.name}_metadata.json"

    def has_index(self) -> bool:
        return self._index is not None

    def create_index(self, dimension: int, metric: str) -> None:
        if metric != "cosine":
            raise ValueError(f"Unsupported metric for the local index: {metric}")
        faiss = _get_faiss_module()
        self._index = faiss.IndexIDMap2(faiss.IndexFlatIP(dimension))
        self._dimension = dimension
        self._key_to_id.clear()
        self._records.clear()
        self._next_id = 0
        logger.info("Created local index %s (dimension=%d).", self.name, dimension)
        self._save()

    def index_dimension(self) -> int | None:
        return self._dimension

    def describe_index_stats(self) -> dict[str, Any]:
        index = self._require_index()
        return {
            "dimension": self._dimension,
            "metric": "cosine",
            "total_vector_count": int(index.ntotal),
        }

    def list_keys(self, prefix: str) -> list[str]:
        self._require_index()
        return sorted(key for key in self._key_to_id if key.startswith(prefix))

    def upsert(self, records: list[dict[str, object]]) -> None:
        index = self._require_index()
        if not records:
            return

        keys = [str(record["id"]) for record in records]
        stale = [key for key in keys if key in self._key_to_id]
        if stale:
            self._remove(stale)

        vectors = self._normalized([list(record["values"]) for record in records])
        ids = np.arange(self._next_id, self._next_id + len(records), dtype=np.int64)
        self._next_id += len(records)
        index.add_with_ids(vectors, ids)

        for key, vector_id, record in zip(keys, ids.tolist(), records):
            self._key_to_id[key] = vector_id
            self._records[key] = dict(record.get("metadata") or {})
        self._save()

    def delete(self, keys: list[str]) -> None:
        self._require_index()
        self._remove([key for key in keys if key in self._key_to_id])
        self._save()

    def query(
        self,
        vector: list[float],
        top_k: int,
        *,
        include_metadata: bool = True,
        filter: dict[str, Any] | None = None,
    ) -> list[Match]:
        index = self._require_index()
        if index.ntotal == 0 or top_k <= 0:
            return []

        # Filters are applied after the search, so search everything when one is set.
        requested_k = int(index.ntotal) if filter else min(top_k, int(index.ntotal))
        scores, ids = index.search(self._normalized([vector]), requested_k)

        id_to_key = {vector_id: key for key, vector_id in self._key_to_id.items()}
        matches: list[Match] = []
        for score, vector_id in zip(scores[0].tolist(), ids[0].tolist()):
            key = id_to_key.get(vector_id)
            if key is None:
                continue
            metadata = self._records.get(key, {})
            if filter and not _matches_filter(metadata, filter):
                continue
            matches.append(Match(key=key, score=float(score), metadata=dict(metadata) if include_metadata else {}))
            if len(matches) >= top_k:
                break
        return matches

    def _remove(self, keys: list[str]) -> None:
        if not keys:
            return
        ids = np.asarray([self._key_to_id.pop(key) for key in keys], dtype=np.int64)
        for key in keys:
            self._records.pop(key, None)
        self._require_index().remove_ids(ids)

    def _normalized(self, rows: list[list[float]]) -> np.ndarray:
        vectors = np.asarray(rows, dtype=np.float32)
        if vectors.ndim != 2 or vectors.shape[1] != self._dimension:
            raise ValueError(f"Expected vectors of dimension {self._dimension}, got shape {vectors.shape}.")
        _get_faiss_module().normalize_L2(vectors)
        return vectors

    def _require_index(self) -> Any:
        if self._index is None:
            raise RuntimeError(f"Local index {self.name!r} does not exist.")
        return self._index

    def _require_directory(self) -> Path:
        if self._directory is None:
            raise RuntimeError("Local index has no storage directory.")
        return self._directory

    def _save(self) -> None:
        if self._directory is None or self._index is None:
            return
        self._directory.mkdir(parents=True, exist_ok=True)
        _get_faiss_module().write_index(self._index, str(self.index_path))
        self.metadata_path.write_text(
            json.dumps(
                {
                    "dimension": self._dimension,
                    "next_id": self._next_id,
                    "records": [
                        {"id": key, "vector_id": vector_id, "metadata": self._records.get(key, {})}
                        for key, vector_id in self._key_to_id.items()
                    ],
                },
                ensure_ascii=False,
                indent=2,
            ),
            encoding="utf-8",
        )

    def _load(self) -> None:
        faiss = _get_faiss_module()
        self._index = faiss.read_index(str(self.index_path))
        payload = json.loads(self.metadata_path.read_text(encoding="utf-8"))
        self._dimension = int(payload["dimension"])
        self._next_id = int(payload.get("next_id", 0))
        for record in payload.get("records", []):
            self._key_to_id[record["id"]] = int(record["vector_id"])
            self._records[record["id"]] = record.get("metadata", {})


def _matches_filter(metadata: dict[str, Any], filter: dict[str, Any]) -> bool:
    for field_name, condition in filter.items():
        expected = condition.get("$eq") if isinstance(condition, dict) else condition
        if metadata.get(field_name) != expected:
            return False
    return True
