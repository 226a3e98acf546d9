from __future__ import annotations

from datetime import datetime, timezone

import pytest

from fixwatch.service.config import FixwatchConfig


@pytest.fixture(scope="session")
def config() -> FixwatchConfig:
    return FixwatchConfig.from_yaml()


@pytest.fixture(scope="session")
def engine(config):
    return config.build_engine()


@pytest.fixture
def noon() -> datetime:
    return datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)
