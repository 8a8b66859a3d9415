from __future__ import annotations

import pytest

from helpers import FakeClock, InMemoryIndexService

from statute_index.data.index_store import IndexState, IndexStore
from statute_index.data.ingestion.models import EmbeddingVector
from statute_index.errors import ConfigurationError, IndexUnavailable, ProviderError, UpsertAborted


def _store(service: InMemoryIndexService, clock: FakeClock, **kwargs) -> IndexStore:
    return IndexStore(service, dimension=2, clock=clock, sleep=clock.sleep, **kwargs)


def _vectors(count: int, prefix: str = "X-fees-") -> list[EmbeddingVector]:
    return [
        EmbeddingVector(key=f"{prefix}{i}", values=[1.0, float(i)], metadata={"chunk_index": i})
        for i in range(count)
    ]


def test_existing_index_is_ready_without_creation(index_service: InMemoryIndexService, clock: FakeClock) -> None:
    store = _store(index_service, clock)

    store.ensure_ready()
    store.ensure_ready()

    assert store.state is IndexState.READY
    assert index_service.created_with is None
    assert [name for name, _ in index_service.calls] == ["has_index"]


def test_missing_index_is_created_and_polled_until_ready(clock: FakeClock, caplog) -> None:
    service = InMemoryIndexService(exists=False)
    service.not_ready_polls = 2
    store = _store(service, clock)
    caplog.set_level("INFO")

    store.ensure_ready()

    assert service.created_with == (2, "cosine")
    assert clock.sleeps == [2.0, 2.0]
    assert store.state is IndexState.READY
    assert "Index test-index is ready." in caplog.text


def test_polling_gives_up_after_the_timeout(clock: FakeClock) -> None:
    service = InMemoryIndexService(exists=False)
    service.not_ready_polls = 1_000
    store = _store(service, clock)

    with pytest.raises(IndexUnavailable, match="within 60 seconds"):
        store.ensure_ready()

    assert store.state is IndexState.FAILED
    assert len(clock.sleeps) == 30
    assert sum(clock.sleeps) == 60.0


def test_existing_index_with_other_dimension_is_fatal(clock: FakeClock) -> None:
    service = InMemoryIndexService(dimension=1536)
    store = _store(service, clock)

    with pytest.raises(ConfigurationError, match="dimension 1536"):
        store.ensure_ready()

    assert store.state is IndexState.FAILED


def test_index_creation_failure_is_a_provider_error(clock: FakeClock) -> None:
    service = InMemoryIndexService(exists=False)

    def fail(dimension: int, metric: str) -> None:
        raise RuntimeError("quota exceeded")

    service.create_index = fail
    store = _store(service, clock)

    with pytest.raises(ProviderError, match="quota exceeded"):
        store.ensure_ready()


def test_upsert_is_split_into_sequential_batches(index_service: InMemoryIndexService, clock: FakeClock) -> None:
    store = _store(index_service, clock)

    committed = store.upsert_batch(_vectors(250))

    assert committed == 250
    assert [arg for name, arg in index_service.calls if name == "upsert"] == [100, 100, 50]
    assert index_service.records["X-fees-249"]["metadata"] == {"chunk_index": 249}


def test_failed_upsert_batch_aborts_remaining_batches(index_service: InMemoryIndexService, clock: FakeClock) -> None:
    index_service.fail_upsert_call = 2
    store = _store(index_service, clock)

    with pytest.raises(UpsertAborted) as excinfo:
        store.upsert_batch(_vectors(250))

    assert excinfo.value.committed == 100
    assert [arg for name, arg in index_service.calls if name == "upsert"] == [100, 100]
    assert len(index_service.records) == 100


def test_upsert_rejects_vectors_of_the_wrong_dimension(index_service: InMemoryIndexService, clock: FakeClock) -> None:
    store = _store(index_service, clock)
    vectors = _vectors(3) + [EmbeddingVector(key="X-fees-3", values=[1.0, 2.0, 3.0])]

    with pytest.raises(ConfigurationError):
        store.upsert_batch(vectors)

    assert index_service.records == {}


def test_delete_by_prefix_uses_small_batches(index_service: InMemoryIndexService, clock: FakeClock) -> None:
    store = _store(index_service, clock)
    store.upsert_batch(_vectors(25) + _vectors(2, prefix="Y-fees-"))

    report = store.delete_by_prefix("X-fees-")

    assert [len(arg) for name, arg in index_service.calls if name == "delete"] == [10, 10, 5]
    assert report.listed == 25
    assert report.deleted == 25
    assert report.ok
    assert sorted(index_service.records) == ["Y-fees-0", "Y-fees-1"]


def test_failed_batch_delete_falls_back_to_single_keys(
    index_service: InMemoryIndexService, clock: FakeClock, caplog
) -> None:
    store = _store(index_service, clock)
    store.upsert_batch(_vectors(12))
    index_service.fail_batch_delete = True
    index_service.undeletable = {"X-fees-3"}

    report = store.delete_by_prefix("X-fees-")

    assert report.deleted == 11
    assert report.failed_keys == ["X-fees-3"]
    assert report.errors == ["inconsistent key state"]
    assert not report.ok
    assert list(index_service.records) == ["X-fees-3"]
    assert "retrying one by one" in caplog.text
    assert "Skipping key X-fees-3" in caplog.text


def test_listing_failure_means_nothing_to_delete(index_service: InMemoryIndexService, clock: FakeClock) -> None:
    index_service.fail_listing = True
    store = _store(index_service, clock)

    report = store.delete_by_prefix("X-fees-")

    assert report.listing_error == "namespace not found"
    assert report.deleted == 0
    assert not any(name == "delete" for name, _ in index_service.calls)


def test_key_filter_limits_what_is_deleted(index_service: InMemoryIndexService, clock: FakeClock) -> None:
    store = _store(index_service, clock)
    store.upsert_batch(_vectors(2) + _vectors(2, prefix="X-fees-extra-"))

    prefix = "X-fees-"
    report = store.delete_by_prefix(prefix, key_filter=lambda key: key[len(prefix) :].isdigit())

    assert report.deleted == 2
    assert sorted(index_service.records) == ["X-fees-extra-0", "X-fees-extra-1"]


def test_query_failure_is_a_provider_error(index_service: InMemoryIndexService, clock: FakeClock) -> None:
    index_service.fail_query = True
    store = _store(index_service, clock)

    with pytest.raises(ProviderError, match=r"\[test-index\] Query failed"):
        store.query([1.0, 0.0], 5)


def test_describe_stats_passes_through(index_service: InMemoryIndexService, clock: FakeClock) -> None:
    store = _store(index_service, clock)
    store.upsert_batch(_vectors(3))

    assert store.describe_stats() == {"dimension": 2, "total_vector_count": 3}
