from __future__ import annotations

import hashlib
import importlib
import math
from dataclasses import dataclass, field
from typing import Sequence


@dataclass
class EmbeddingItem:
    embedding: list[float]


@dataclass
class EmbeddingUsage:
    total_tokens: int


@dataclass
class EmbeddingResponse:
    data: list[EmbeddingItem]
    usage: EmbeddingUsage | None = field(default=None)


class _SentenceTransformerEmbeddingsAPI:
    def __init__(self) -> None:
        self._models: dict[str, object] = {}

    def _load_model(self, model: str) -> object:
        if model not in self._models:
            sentence_transformers = importlib.import_module("sentence_transformers")
            self._models[model] = sentence_transformers.SentenceTransformer(model)
        return self._models[model]

    def create(self, model: str, input: Sequence[str]) -> EmbeddingResponse:
        transformer = self._load_model(model)
        vectors = transformer.encode(list(input), normalize_embeddings=True)
        rows = vectors.tolist() if hasattr(vectors, "tolist") else vectors
        return EmbeddingResponse(data=[EmbeddingItem(embedding=[float(v) for v in row]) for row in rows])


class SentenceTransformerEmbeddingClient:
    """OpenAI-compatible local embeddings client backed by sentence-transformers."""

    def __init__(self) -> None:
        self.embeddings = _SentenceTransformerEmbeddingsAPI()


class _HashingEmbeddingsAPI:
    def __init__(self, dimensions: int) -> None:
        self.dimensions = dimensions

    def create(self, model: str, input: Sequence[str]) -> EmbeddingResponse:  # noqa: ARG002
        tokens = sum(len(text.split()) for text in input)
        return EmbeddingResponse(
            data=[EmbeddingItem(embedding=self._to_vector(text)) for text in input],
            usage=EmbeddingUsage(total_tokens=tokens),
        )

    def _to_vector(self, text: str) -> list[float]:
        vector = [0.0] * self.dimensions
        for token in text.lower().split():
            digest = hashlib.sha256(token.encode("utf-8")).hexdigest()
            index = int(digest[:8], 16) % self.dimensions
            sign = 1.0 if int(digest[8:10], 16) % 2 == 0 else -1.0
            vector[index] += sign

        norm = math.sqrt(sum(value * value for value in vector)) or 1.0
        return [value / norm for value in vector]


class HashingEmbeddingClient:
    """Deterministic bag-of-words embeddings for offline indexing and tests."""

    def __init__(self, dimensions: int = 256) -> None:
        self.embeddings = _HashingEmbeddingsAPI(dimensions=dimensions)
