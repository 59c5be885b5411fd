"""Per-day advice cache in front of a remote ``AdviceProvider``.

At most one successful remote fetch is made per calendar day; later requests
for the same day are served from the repository's advice cache.  A
menu-only refresh asks the provider again but keeps the day's mood and
activities.

Per-day state::

    NO_ADVICE → FETCHING → CACHED
    CACHED → REFRESHING_MENU → CACHED

A failed fetch falls back to NO_ADVICE; there is no retry and no fallback
content.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from datetime import date
from enum import Enum
from typing import AsyncIterator

from luna.advice.provider import AdviceProvider
from luna.models.tracking import DailyAdvice
from luna.storage.repository import CycleRepository, advice_date_key

logger = logging.getLogger("luna.advice.gateway")


class AdviceState(str, Enum):
    no_advice = "no_advice"
    fetching = "fetching"
    cached = "cached"
    refreshing_menu = "refreshing_menu"


class AdviceGateway:
    """Memoize one provider call per calendar day.

    Concurrent calls for the same day are serialised, so the second caller
    sees the entry the first one cached instead of fetching again.

    Usage::

        gateway = AdviceGateway(repository, GeminiAdviceProvider())
        advice = await gateway.fetch_daily_advice(3, True, "Mai")
    """

    def __init__(self, repository: CycleRepository, provider: AdviceProvider) -> None:
        self._repo = repository
        self._provider = provider
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}
        self._in_flight: dict[str, AdviceState] = {}

    def state(self, today: date | None = None) -> AdviceState:
        """Return the advice state for ``today``."""
        key = advice_date_key(today or date.today())
        if key in self._in_flight:
            return self._in_flight[key]
        if self._repo.get_advice(key) is not None:
            return AdviceState.cached
        return AdviceState.no_advice

    async def fetch_daily_advice(
        self,
        day_of_cycle: int,
        is_period: bool,
        user_name: str,
        today: date | None = None,
    ) -> DailyAdvice | None:
        """Return today's advice, calling the provider only on a cache miss.

        Returns:
            The cached or freshly fetched advice, or None if the provider failed.
        """
        today = today or date.today()
        key = advice_date_key(today)
        async with self._day_lock(key):
            cached = self._repo.get_advice(key)
            if cached is not None:
                logger.debug("Advice cache hit for %s", key)
                return cached

            self._in_flight[key] = AdviceState.fetching
            try:
                advice = await self._call_provider(key, day_of_cycle, is_period, user_name)
            finally:
                self._in_flight.pop(key, None)

            if advice is None:
                logger.info("No advice available for %s", key)
                return None

            advice = advice.model_copy(update={"date": today})
            if not self._repo.save_advice(key, advice):
                logger.warning("Advice for %s shown but not cached", key)
            return advice

    async def refresh_menu_only(
        self,
        day_of_cycle: int,
        is_period: bool,
        user_name: str,
        today: date | None = None,
    ) -> DailyAdvice | None:
        """Replace today's menu with a fresh one, keeping mood and activities.

        If nothing is cached yet the fresh advice is stored whole.  If the
        provider fails, the cached entry is returned unchanged.
        """
        today = today or date.today()
        key = advice_date_key(today)
        async with self._day_lock(key):
            cached = self._repo.get_advice(key)
            self._in_flight[key] = (
                AdviceState.refreshing_menu if cached is not None else AdviceState.fetching
            )
            try:
                fresh = await self._call_provider(key, day_of_cycle, is_period, user_name)
            finally:
                self._in_flight.pop(key, None)

            if fresh is None:
                logger.info("Menu refresh for %s failed; keeping cached advice", key)
                return cached

            if cached is None:
                merged = fresh.model_copy(update={"date": today})
            else:
                merged = cached.model_copy(update={"menu": fresh.menu})
            self._repo.save_advice(key, merged)
            return merged

    async def _call_provider(
        self, key: str, day_of_cycle: int, is_period: bool, user_name: str
    ) -> DailyAdvice | None:
        try:
            return await self._provider.get_advice(day_of_cycle, is_period, user_name)
        except Exception:
            logger.exception("Advice provider failed for %s", key)
            return None

    @contextlib.asynccontextmanager
    async def _day_lock(self, key: str) -> AsyncIterator[None]:
        """Hold the lock for ``key``; the lock is dropped once no caller holds or awaits it."""
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[key] -= 1
            if not self._lock_users[key]:
                del self._lock_users[key]
                self._locks.pop(key, None)
