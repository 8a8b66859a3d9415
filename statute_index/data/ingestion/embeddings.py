from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Sequence

try:
    from openai import OpenAI
except ImportError:  # pragma: no cover - dependency wiring is environment-specific.
    OpenAI = None

from ...errors import ConfigurationError, ProviderError
from ..rate_limiter import SlidingWindowRateLimiter
from .text_processing import estimate_tokens


logger = logging.getLogger(__name__)

DEFAULT_EMBEDDING_MODEL = "text-embedding-3-small"
DEFAULT_EMBEDDING_DIMENSION = 1536
MAX_EMBEDDING_INPUT_CHARS = 8000
DEFAULT_PAUSE_SECONDS = 0.1


class EmbeddingClient:
    """Embeds texts one request at a time against an OpenAI-compatible client.

    Each text is sent as its own single-input request. Inputs longer than
    ``max_input_chars`` are truncated, a fixed pause separates successive
    calls, and any failure aborts the whole batch.
    """

    def __init__(
        self,
        *,
        model: str = DEFAULT_EMBEDDING_MODEL,
        dimension: int = DEFAULT_EMBEDDING_DIMENSION,
        embedding_client: OpenAI | object | None = None,
        rate_limiter: SlidingWindowRateLimiter | None = None,
        max_input_chars: int = MAX_EMBEDDING_INPUT_CHARS,
        pause_seconds: float = DEFAULT_PAUSE_SECONDS,
        max_workers: int = 1,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1.")
        self.model = model
        self.dimension = dimension
        self._client = embedding_client
        self._rate_limiter = rate_limiter
        self._max_input_chars = max_input_chars
        self._pause_seconds = pause_seconds
        self._max_workers = max_workers
        self._sleep = sleep

    @property
    def client(self) -> object:
        if self._client is None:
            if OpenAI is None:
                raise RuntimeError("openai package is required for embedding generation.")
            self._client = OpenAI()
        return self._client

    def embed(self, texts: Sequence[str]) -> list[list[float]]:
        if not texts:
            return []

        logger.info("Building embeddings for %d chunks.", len(texts))
        started_at = time.perf_counter()

        if self._max_workers == 1:
            vectors: list[list[float]] = []
            for position, text in enumerate(texts):
                if position:
                    self._sleep(self._pause_seconds)
                vectors.append(self._embed_single(text))
        else:
            # map() yields results in input order, keeping the chunk/vector zip intact.
            with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
                vectors = list(pool.map(self._embed_paced, texts))

        elapsed = time.perf_counter() - started_at
        logger.info("Embedding generation completed in %.3f seconds.", elapsed)
        return vectors

    def embed_one(self, text: str) -> list[float]:
        return self._embed_single(text)

    def _embed_paced(self, text: str) -> list[float]:
        vector = self._embed_single(text)
        self._sleep(self._pause_seconds)
        return vector

    def _embed_single(self, text: str) -> list[float]:
        if len(text) > self._max_input_chars:
            logger.info("Truncating text from %d to %d chars.", len(text), self._max_input_chars)
            text = text[: self._max_input_chars]

        estimated = estimate_tokens(text)
        reservation = self._rate_limiter.reserve(estimated) if self._rate_limiter else None

        try:
            response = self.client.embeddings.create(model=self.model, input=[text])
            vector = [float(value) for value in response.data[0].embedding]
        except Exception as exc:
            raise ProviderError(f"Embedding request failed: {exc}", provider_name="embeddings") from exc

        if reservation is not None:
            self._rate_limiter.reconcile(reservation, _reported_tokens(response, estimated))

        if len(vector) != self.dimension:
            raise ConfigurationError(
                f"Embedding model {self.model!r} returned {len(vector)} dimensions, "
                f"expected {self.dimension}."
            )
        return vector


def _reported_tokens(response: object, fallback: int) -> int:
    usage = getattr(response, "usage", None)
    total = getattr(usage, "total_tokens", None)
    return total if isinstance(total, int) else fallback
