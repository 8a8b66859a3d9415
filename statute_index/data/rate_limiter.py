from __future__ import annotations

import json
import logging
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

logger = logging.getLogger(__name__)

WINDOW_SECONDS = 60.0
DEFAULT_TOKENS_PER_MINUTE = 30_000
MODEL_TOKENS_PER_MINUTE: dict[str, int] = {
    "gpt-4o": 30_000,
    "gpt-4o-mini": 200_000,
    "gpt-5": 30_000,
    "gpt-5-mini": 200_000,
    "gpt-4-turbo": 30_000,
}


@dataclass(slots=True, eq=False)
class WindowEntry:
    timestamp: float
    cost: int


class SlidingWindowRateLimiter:
    """Blocks callers until a trailing 60-second cost budget has room.

    One limiter is meant to be shared per process (or per job) by every
    component calling the same provider quota. Window state is guarded by a
    lock, and a caller that has to wait keeps the lock while sleeping so
    reservations complete in arrival order.
    """

    def __init__(
        self,
        limit_per_minute: int = DEFAULT_TOKENS_PER_MINUTE,
        *,
        window_seconds: float = WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if limit_per_minute <= 0:
            raise ValueError("limit_per_minute must be greater than zero.")
        self.limit_per_minute = limit_per_minute
        self._window_seconds = window_seconds
        self._clock = clock
        self._sleep = sleep
        self._entries: list[WindowEntry] = []
        self._lock = threading.Lock()

    @classmethod
    def for_model(
        cls,
        model: str,
        *,
        models_path: str | Path | None = None,
        **kwargs: object,
    ) -> "SlidingWindowRateLimiter":
        return cls(tokens_per_minute_for(model, models_path=models_path), **kwargs)

    def reserve(self, estimated_cost: int) -> WindowEntry:
        """Wait until ``estimated_cost`` fits in the window, then record it."""
        with self._lock:
            now = self._trim()
            used = self._usage()
            while self._entries and used + estimated_cost > self.limit_per_minute:
                wait = self._entries[0].timestamp + self._window_seconds - now
                logger.info(
                    "Rate limit approached. Used: %d, Estimated: %d, Limit: %d",
                    used,
                    estimated_cost,
                    self.limit_per_minute,
                )
                logger.info("Waiting %.1fs before next provider call.", max(wait, 0.0))
                if wait > 0:
                    self._sleep(wait)
                now = self._trim()
                used = self._usage()

            if used + estimated_cost > self.limit_per_minute:
                logger.warning(
                    "Cost %d exceeds the per-minute limit %d on its own; proceeding with an empty window.",
                    estimated_cost,
                    self.limit_per_minute,
                )

            entry = WindowEntry(timestamp=now, cost=estimated_cost)
            self._entries.append(entry)
            return entry

    def record(self, cost: int) -> WindowEntry:
        with self._lock:
            entry = WindowEntry(timestamp=self._clock(), cost=cost)
            self._entries.append(entry)
            return entry

    def reconcile(self, reservation: WindowEntry, actual_cost: int) -> WindowEntry:
        """Replace an estimated reservation with the realised cost."""
        with self._lock:
            try:
                self._entries.remove(reservation)
            except ValueError:
                # Already aged out of the window.
                pass
            entry = WindowEntry(timestamp=self._clock(), cost=actual_cost)
            self._entries.append(entry)
            return entry

    def current_usage(self) -> int:
        with self._lock:
            self._trim()
            return self._usage()

    def _trim(self) -> float:
        now = self._clock()
        cutoff = now - self._window_seconds
        self._entries = [entry for entry in self._entries if entry.timestamp > cutoff]
        return now

    def _usage(self) -> int:
        return sum(entry.cost for entry in self._entries)


def load_model_rate_limits(path: str | Path | None = None) -> dict[str, int]:
    limits = dict(MODEL_TOKENS_PER_MINUTE)
    if path is None:
        return limits

    try:
        payload = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, ValueError):
        logger.warning("Could not load model rate limits from %s, using defaults.", path)
        return limits

    models = payload.get("models") if isinstance(payload, dict) else None
    for name, settings in (models or {}).items():
        if isinstance(settings, dict) and isinstance(settings.get("tokensPerMinute"), int):
            limits[name] = settings["tokensPerMinute"]
    return limits


def tokens_per_minute_for(model: str, models_path: str | Path | None = None) -> int:
    return load_model_rate_limits(models_path).get(model, DEFAULT_TOKENS_PER_MINUTE)
