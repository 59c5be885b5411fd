"""Shared fixtures for cycle tracking tests."""

from __future__ import annotations

import pytest

from luna.storage.kv_store import InMemoryStore
from luna.storage.repository import CycleRepository
from luna.tracking.config_loader import TrackingConfig, load_tracking_config
from luna.tracking.tracker import PeriodTracker


@pytest.fixture
def tracking_config() -> TrackingConfig:
    """Load the bundled tracking config."""
    return load_tracking_config()


@pytest.fixture
def repository(tracking_config: TrackingConfig) -> CycleRepository:
    return CycleRepository(InMemoryStore(), config=tracking_config)


@pytest.fixture
def tracker(repository: CycleRepository) -> PeriodTracker:
    return PeriodTracker(repository)
