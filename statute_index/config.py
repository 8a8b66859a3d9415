from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

from .data.ingestion.embeddings import (
    DEFAULT_EMBEDDING_DIMENSION,
    DEFAULT_EMBEDDING_MODEL,
    DEFAULT_PAUSE_SECONDS,
)
from .data.rate_limiter import tokens_per_minute_for


logger = logging.getLogger(__name__)

INDEX_BACKENDS = {"pinecone", "faiss"}
EMBEDDING_BACKENDS = {"openai", "sentence-transformers", "hashing"}


@dataclass(frozen=True)
class StatuteIndexConfig:
    index_backend: str = "pinecone"
    index_name: str = "statute-sections"
    faiss_dir: str = "var/faiss"
    pinecone_api_key: str | None = None
    pinecone_cloud: str = "aws"
    pinecone_region: str = "us-east-1"
    embedding_backend: str = "openai"
    embedding_model: str = DEFAULT_EMBEDDING_MODEL
    embedding_dimension: int = DEFAULT_EMBEDDING_DIMENSION
    embedding_pause_seconds: float = DEFAULT_PAUSE_SECONDS
    embedding_max_workers: int = 1
    tokens_per_minute: int = 30_000
    retrieval_top_k: int = 8
    server_side_filter: bool = False
    log_level: str = "INFO"


def _parse_float(name: str, default: float, minimum: float, maximum: float) -> float:
    raw_value = os.getenv(name, str(default)).strip()
    try:
        value = float(raw_value)
    except ValueError:
        logger.warning("Invalid %s=%r. Falling back to %s.", name, raw_value, default)
        return default

    if value < minimum or value > maximum:
        logger.warning(
            "%s=%s out of range [%s, %s]. Falling back to %s.",
            name,
            value,
            minimum,
            maximum,
            default,
        )
        return default
    return value


def _parse_int(name: str, default: int, minimum: int, maximum: int) -> int:
    raw_value = os.getenv(name, "").strip()
    if not raw_value:
        return default
    try:
        value = int(raw_value)
    except ValueError:
        logger.warning("Invalid %s=%r. Falling back to %s.", name, raw_value, default)
        return default

    if value < minimum or value > maximum:
        logger.warning("%s=%s out of range [%s, %s]. Falling back to %s.", name, value, minimum, maximum, default)
        return default
    return value


def _parse_bool(name: str, default: bool) -> bool:
    raw_value = os.getenv(name, "").strip().lower()
    if not raw_value:
        return default
    return raw_value in {"1", "true", "yes", "on"}


def _parse_choice(name: str, default: str, choices: set[str]) -> str:
    value = os.getenv(name, default).strip().lower()
    if value not in choices:
        logger.warning("Invalid %s=%r. Falling back to %s.", name, value, default)
        return default
    return value


def _parse_log_level() -> str:
    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR"}
    if log_level not in valid_levels:
        logger.warning("Invalid LOG_LEVEL=%r. Falling back to INFO.", log_level)
        return "INFO"
    return log_level


def load_config_from_env() -> StatuteIndexConfig:
    load_dotenv()

    embedding_model = os.getenv("EMBEDDING_MODEL", DEFAULT_EMBEDDING_MODEL).strip() or DEFAULT_EMBEDDING_MODEL
    models_path = os.getenv("AI_MODELS_PATH", "").strip() or None
    default_tpm = tokens_per_minute_for(os.getenv("SYNTHESIS_MODEL", "gpt-4o-mini").strip(), models_path)

    return StatuteIndexConfig(
        index_backend=_parse_choice("STATUTE_INDEX_BACKEND", "pinecone", INDEX_BACKENDS),
        index_name=os.getenv("STATUTE_INDEX_NAME", "statute-sections").strip(),
        faiss_dir=os.getenv("STATUTE_FAISS_DIR", "var/faiss").strip(),
        pinecone_api_key=os.getenv("PINECONE_API_KEY", "").strip() or None,
        pinecone_cloud=os.getenv("PINECONE_CLOUD", "aws").strip(),
        pinecone_region=os.getenv("PINECONE_REGION", "us-east-1").strip(),
        embedding_backend=_parse_choice("EMBEDDING_BACKEND", "openai", EMBEDDING_BACKENDS),
        embedding_model=embedding_model,
        embedding_dimension=_parse_int("EMBEDDING_DIMENSION", DEFAULT_EMBEDDING_DIMENSION, 2, 20_000),
        embedding_pause_seconds=_parse_float("EMBEDDING_PAUSE_SECONDS", DEFAULT_PAUSE_SECONDS, 0.0, 10.0),
        embedding_max_workers=_parse_int("EMBEDDING_MAX_WORKERS", 1, 1, 16),
        tokens_per_minute=_parse_int("TOKENS_PER_MINUTE", default_tpm, 1, 100_000_000),
        retrieval_top_k=_parse_int("RETRIEVAL_TOP_K", 8, 1, 100),
        server_side_filter=_parse_bool("RETRIEVAL_SERVER_SIDE_FILTER", False),
        log_level=_parse_log_level(),
    )
