from __future__ import annotations

from pathlib import Path

import pytest

from helpers import padded

from statute_index.config import StatuteIndexConfig
from statute_index.data.backends.faiss_backend import FaissIndexService
from statute_index.services import StatuteSearchService

DIMENSION = 64

_PROVISIONS = [
    "Section 5-1 Noise. Amplified sound is prohibited after ten at night",
    "Section 5-2 Exemptions. Municipal works are exempt from the noise limits",
    "Section 5-3 Penalties. Each violation is fined one hundred dollars",
]


def _text() -> str:
    return "\n\n".join(padded(provision) + "." for provision in _PROVISIONS)


def _service(directory: Path) -> StatuteSearchService:
    config = StatuteIndexConfig(
        index_backend="faiss",
        index_name="statutes",
        faiss_dir=str(directory),
        embedding_backend="hashing",
        embedding_dimension=DIMENSION,
        embedding_pause_seconds=0.0,
    )
    return StatuteSearchService.from_config(config)


@pytest.mark.integration
def test_statute_round_trip_with_real_faiss(tmp_path: Path) -> None:
    pytest.importorskip("faiss")

    service = _service(tmp_path)
    result = service.index_statute("springfield", "noise", _text())
    service.index_statute("shelbyville", "noise", _text())

    assert result.upserted == 3
    assert (tmp_path / "statutes.index").exists()
    assert (tmp_path / "statutes_metadata.json").exists()

    sections = service.search_relevant_sections("springfield", "noise", padded(_PROVISIONS[2]) + ".", top_k=2)
    assert sections[0].chunk_index == 2
    assert sections[0].section_label == "5-3"
    assert sections[0].score > 0.99
    assert len(sections) == 2

    # A fresh service reads the persisted index back from disk.
    reloaded = _service(tmp_path)
    assert reloaded.get_index_stats()["total_vector_count"] == 6

    report = reloaded.delete_statute("springfield", "noise")
    assert report.deleted == 3
    assert reloaded.search_relevant_sections("springfield", "noise", "noise after ten") == []
    assert len(reloaded.search_relevant_sections("shelbyville", "noise", "noise after ten")) == 3


@pytest.mark.integration
def test_local_index_applies_equality_filters(tmp_path: Path) -> None:
    pytest.importorskip("faiss")

    index = FaissIndexService("filtered", directory=tmp_path)
    index.create_index(2, "cosine")
    index.upsert(
        [
            {"id": "A-x-0", "values": [1.0, 0.0], "metadata": {"entity_id": "A"}},
            {"id": "B-x-0", "values": [0.9, 0.1], "metadata": {"entity_id": "B"}},
        ]
    )

    matches = index.query([1.0, 0.0], 1, filter={"entity_id": {"$eq": "B"}})

    assert [match.key for match in matches] == ["B-x-0"]
