from __future__ import annotations

from typing import Callable, Sequence

from .models import Chunk, SegmenterConfig
from .text_processing import (
    BLANK_LINE_RE,
    PERIOD_BLANK_LINE_RE,
    PERIOD_NEWLINE_RE,
    SECTION_MARKER_RE,
    extract_section_label,
    normalize_newlines,
    split_sentences,
)

SegmentationStrategy = Callable[[str], "list[str] | None"]


def split_on_period_blank_line(text: str) -> list[str] | None:
    return _split_restoring_periods(text, PERIOD_BLANK_LINE_RE.split(text))


def split_on_period_newline(text: str) -> list[str] | None:
    return _split_restoring_periods(text, PERIOD_NEWLINE_RE.split(text))


def split_on_blank_lines(text: str) -> list[str] | None:
    segments = [s for s in BLANK_LINE_RE.split(text) if s.strip()]
    return segments if len(segments) > 1 else None


def split_before_section_markers(text: str) -> list[str] | None:
    segments = [s for s in SECTION_MARKER_RE.split(text) if s.strip()]
    return segments or None


# Tried in order; the first strategy yielding more than one segment wins. The
# section-marker split is last because it fragments closely related provisions.
SEGMENTATION_STRATEGIES: tuple[SegmentationStrategy, ...] = (
    split_on_period_blank_line,
    split_on_period_newline,
    split_on_blank_lines,
    split_before_section_markers,
)


def _split_restoring_periods(text: str, pieces: list[str]) -> list[str] | None:
    segments = [s for s in pieces if s.strip()]
    if len(segments) <= 1:
        return None
    last = len(segments) - 1
    return [s + "." if i < last and not s.endswith(".") else s for i, s in enumerate(segments)]


def initial_segments(
    text: str,
    strategies: Sequence[SegmentationStrategy] = SEGMENTATION_STRATEGIES,
) -> list[str]:
    fallback: list[str] | None = None
    for strategy in strategies:
        segments = strategy(text)
        if segments and len(segments) > 1:
            return segments
        if segments:
            fallback = segments
    return fallback or [text]


def pack_sentences(section: str, target_chars: int) -> list[str]:
    """Greedily pack whole sentences into pieces of at most ``target_chars``.

    A single sentence longer than the target becomes its own piece.
    """
    pieces: list[str] = []
    current = ""
    for sentence in split_sentences(section):
        if current and len(current) + 1 + len(sentence) > target_chars:
            pieces.append(current.strip())
            current = sentence
        else:
            current = f"{current} {sentence}" if current else sentence

    if current.strip():
        pieces.append(current.strip())
    return pieces


def split_oversized(segments: list[str], config: SegmenterConfig) -> list[str]:
    if all(len(s) <= config.max_section_chars for s in segments):
        return segments

    resized: list[str] = []
    for segment in segments:
        if len(segment) <= config.max_section_chars:
            resized.append(segment)
        else:
            resized.extend(pack_sentences(segment, config.target_chunk_chars))
    return resized


class Segmenter:
    """Splits statute text into retrievable, section-labelled chunks."""

    def __init__(
        self,
        config: SegmenterConfig | None = None,
        strategies: Sequence[SegmentationStrategy] = SEGMENTATION_STRATEGIES,
    ) -> None:
        self._config = config or SegmenterConfig()
        self._strategies = tuple(strategies)

    @property
    def config(self) -> SegmenterConfig:
        return self._config

    def segment(self, text: str, entity_id: str, category_id: str) -> list[Chunk]:
        text = normalize_newlines(text)
        if not text.strip():
            return []

        segments = split_oversized(initial_segments(text, self._strategies), self._config)

        chunks: list[Chunk] = []
        for segment in segments:
            content = segment.strip()
            if len(content) < self._config.min_chunk_chars:
                continue
            chunks.append(
                Chunk(
                    content=content,
                    entity_id=entity_id,
                    category_id=category_id,
                    chunk_index=len(chunks),
                    section_label=extract_section_label(content),
                )
            )
        return chunks


def build_chunks(
    text: str,
    entity_id: str,
    category_id: str,
    config: SegmenterConfig | None = None,
) -> list[Chunk]:
    return Segmenter(config).segment(text, entity_id, category_id)
