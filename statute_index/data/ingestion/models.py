from __future__ import annotations

from dataclasses import dataclass, field

MAX_DOCUMENT_CHARS = 5_000_000
MAX_METADATA_CONTENT_CHARS = 40_000


@dataclass(slots=True)
class SegmenterConfig:
    max_section_chars: int = 3000
    target_chunk_chars: int = 1200
    min_chunk_chars: int = 400


@dataclass(slots=True)
class Document:
    entity_id: str
    category_id: str
    text: str

    @property
    def key_prefix(self) -> str:
        return key_prefix(self.entity_id, self.category_id)


@dataclass(slots=True)
class Chunk:
    content: str
    entity_id: str
    category_id: str
    chunk_index: int
    section_label: str | None = None

    @property
    def key(self) -> str:
        return f"{key_prefix(self.entity_id, self.category_id)}{self.chunk_index}"

    def metadata(self) -> dict[str, str | int]:
        return {
            "entity_id": self.entity_id,
            "category_id": self.category_id,
            "chunk_index": self.chunk_index,
            "section_label": self.section_label or "",
            "content": self.content[:MAX_METADATA_CONTENT_CHARS],
        }


@dataclass(slots=True)
class EmbeddingVector:
    key: str
    values: list[float]
    metadata: dict[str, str | int] = field(default_factory=dict)

    @classmethod
    def from_chunk(cls, chunk: Chunk, values: list[float]) -> "EmbeddingVector":
        return cls(key=chunk.key, values=list(values), metadata=chunk.metadata())

    def as_record(self) -> dict[str, object]:
        return {
            "id": self.key,
            "values": self.values,
            "metadata": self.metadata,
        }


@dataclass(slots=True)
class IngestionResult:
    entity_id: str
    category_id: str
    chunk_count: int = 0
    upserted: int = 0
    deleted: int = 0
    skipped_reason: str | None = None


def key_prefix(entity_id: str, category_id: str) -> str:
    return f"{entity_id}-{category_id}-"
