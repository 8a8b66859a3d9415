from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Sequence

from ..errors import ConfigurationError, IndexUnavailable, ProviderError, UpsertAborted
from .backends.base import Match, VectorIndexService
from .ingestion.models import EmbeddingVector


logger = logging.getLogger(__name__)

UPSERT_BATCH_SIZE = 100
DELETE_BATCH_SIZE = 10
POLL_INTERVAL_SECONDS = 2.0
READY_TIMEOUT_SECONDS = 60.0


class IndexState(str, enum.Enum):
    UNKNOWN = "unknown"
    CREATING = "creating"
    POLLING = "polling"
    READY = "ready"
    FAILED = "failed"


@dataclass(slots=True)
class DeleteReport:
    prefix: str
    listed: int = 0
    deleted: int = 0
    failed_keys: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    listing_error: str | None = None

    @property
    def ok(self) -> bool:
        return not self.failed_keys and self.listing_error is None


class IndexStore:
    """Facade over a vector-index service: lifecycle, batching and cleanup."""

    def __init__(
        self,
        service: VectorIndexService,
        *,
        dimension: int,
        metric: str = "cosine",
        upsert_batch_size: int = UPSERT_BATCH_SIZE,
        delete_batch_size: int = DELETE_BATCH_SIZE,
        poll_interval_seconds: float = POLL_INTERVAL_SECONDS,
        ready_timeout_seconds: float = READY_TIMEOUT_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._service = service
        self.dimension = dimension
        self.metric = metric
        self._upsert_batch_size = upsert_batch_size
        self._delete_batch_size = delete_batch_size
        self._poll_interval = poll_interval_seconds
        self._ready_timeout = ready_timeout_seconds
        self._clock = clock
        self._sleep = sleep
        self.state = IndexState.UNKNOWN

    @property
    def name(self) -> str:
        return self._service.name

    def ensure_ready(self) -> None:
        if self.state is IndexState.READY:
            return

        try:
            exists = self._service.has_index()
        except Exception as exc:
            raise ProviderError(f"Could not list indexes: {exc}", provider_name=self.name) from exc

        if exists:
            self._check_dimension()
        else:
            self.state = IndexState.CREATING
            logger.info("Creating index %s.", self.name)
            try:
                self._service.create_index(dimension=self.dimension, metric=self.metric)
            except Exception as exc:
                self.state = IndexState.FAILED
                raise ProviderError(f"Could not create index: {exc}", provider_name=self.name) from exc
            self._wait_until_ready()

        self.state = IndexState.READY
        logger.info("Index %s is ready.", self.name)

    def upsert_batch(self, vectors: Sequence[EmbeddingVector]) -> int:
        for vector in vectors:
            if len(vector.values) != self.dimension:
                raise ConfigurationError(
                    f"Vector {vector.key} has {len(vector.values)} dimensions, "
                    f"index {self.name} expects {self.dimension}."
                )

        committed = 0
        for start in range(0, len(vectors), self._upsert_batch_size):
            batch = vectors[start : start + self._upsert_batch_size]
            try:
                self._service.upsert([vector.as_record() for vector in batch])
            except Exception as exc:
                raise UpsertAborted(
                    f"Upsert failed for batch starting at {start}: {exc}",
                    committed=committed,
                    provider_name=self.name,
                ) from exc
            committed += len(batch)
            logger.debug("Upserted %d/%d vectors into %s.", committed, len(vectors), self.name)
        return committed

    def delete_by_prefix(
        self,
        prefix: str,
        key_filter: Callable[[str], bool] | None = None,
    ) -> DeleteReport:
        """Best-effort delete of every key starting with ``prefix``.

        Never raises. Failures are collected on the returned report.
        """
        report = DeleteReport(prefix=prefix)
        try:
            keys = self._service.list_keys(prefix)
        except Exception as exc:
            logger.info("Nothing deleted for prefix %s: %s", prefix, exc)
            report.listing_error = str(exc)
            return report

        if key_filter is not None:
            keys = [key for key in keys if key_filter(key)]
        report.listed = len(keys)

        for start in range(0, len(keys), self._delete_batch_size):
            batch = keys[start : start + self._delete_batch_size]
            try:
                self._service.delete(batch)
            except Exception as exc:
                logger.warning("Batch delete of %d keys failed (%s), retrying one by one.", len(batch), exc)
                self._delete_individually(batch, report)
            else:
                report.deleted += len(batch)

        if report.listed:
            logger.info("Deleted %d/%d keys for prefix %s.", report.deleted, report.listed, prefix)
        return report

    def query(
        self,
        vector: list[float],
        top_k: int,
        filter: dict[str, Any] | None = None,
    ) -> list[Match]:
        try:
            return self._service.query(vector, top_k, include_metadata=True, filter=filter)
        except Exception as exc:
            raise ProviderError(f"Query failed: {exc}", provider_name=self.name) from exc

    def describe_stats(self) -> dict[str, Any]:
        try:
            return self._service.describe_index_stats()
        except Exception as exc:
            raise ProviderError(f"Could not describe index: {exc}", provider_name=self.name) from exc

    def _delete_individually(self, batch: list[str], report: DeleteReport) -> None:
        for key in batch:
            try:
                self._service.delete([key])
            except Exception as exc:
                logger.warning("Skipping key %s that could not be deleted: %s", key, exc)
                report.failed_keys.append(key)
                report.errors.append(str(exc))
            else:
                report.deleted += 1

    def _check_dimension(self) -> None:
        try:
            actual = self._service.index_dimension()
        except Exception as exc:
            raise ProviderError(f"Could not describe index: {exc}", provider_name=self.name) from exc
        if actual is not None and actual != self.dimension:
            self.state = IndexState.FAILED
            raise ConfigurationError(
                f"Index {self.name} has dimension {actual}, embeddings have {self.dimension}."
            )

    def _wait_until_ready(self) -> None:
        self.state = IndexState.POLLING
        deadline = self._clock() + self._ready_timeout
        while self._clock() < deadline:
            try:
                self._service.describe_index_stats()
            except Exception as exc:
                logger.debug("Index %s not ready yet: %s", self.name, exc)
            else:
                return
            self._sleep(self._poll_interval)

        self.state = IndexState.FAILED
        raise IndexUnavailable(
            f"Index did not become ready within {self._ready_timeout:.0f} seconds.",
            provider_name=self.name,
        )
