from __future__ import annotations

import pytest

from helpers import FakeClock, InMemoryIndexService


@pytest.fixture
def index_service() -> InMemoryIndexService:
    return InMemoryIndexService()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
