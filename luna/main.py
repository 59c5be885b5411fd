"""Luna application wiring.

Builds the store, repository, tracker and advice gateway from ``Settings``::

    from luna.main import create_app

    app = create_app()
    app.tracker.onboard("Mai", last_period_start=date(2024, 1, 1))
    advice = await app.advice.fetch_daily_advice(3, True, "Mai")
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass

from luna.advice.gateway import AdviceGateway
from luna.advice.provider import AdviceProvider, GeminiAdviceProvider
from luna.config import Settings, get_settings
from luna.storage.kv_store import JsonFileStore, KeyValueStore
from luna.storage.repository import CycleRepository
from luna.tracking.config_loader import get_tracking_config
from luna.tracking.tracker import PeriodTracker

logger = logging.getLogger("luna")


def configure_logging(settings: Settings | None = None) -> None:
    s = settings or get_settings()
    logging.basicConfig(
        level=logging.DEBUG if s.debug else s.log_level.upper(),
        format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
    )


@dataclass
class LunaApp:
    """The assembled services a view layer works with."""

    settings: Settings
    repository: CycleRepository
    tracker: PeriodTracker
    advice: AdviceGateway


def create_app(
    settings: Settings | None = None,
    store: KeyValueStore | None = None,
    provider: AdviceProvider | None = None,
) -> LunaApp:
    """Assemble Luna from settings.

    Args:
        settings: Settings override (defaults to the cached environment settings).
        store:    Store override; defaults to a JSON file at ``settings.storage_path``.
        provider: Advice provider override; defaults to Gemini.
    """
    s = settings or get_settings()
    configure_logging(s)

    if store is None:
        store = JsonFileStore(s.storage_path, max_bytes=s.storage_max_bytes)
    repository = CycleRepository(
        store,
        key_prefix=s.storage_key_prefix,
        advice_retention_days=s.advice_retention_days,
        config=get_tracking_config(),
    )
    gateway = AdviceGateway(repository, provider or GeminiAdviceProvider(settings=s))

    logger.info("Starting %s v%s [%s]", s.app_name, s.app_version, s.environment)
    return LunaApp(
        settings=s,
        repository=repository,
        tracker=PeriodTracker(repository),
        advice=gateway,
    )
