"""Typed persistence for profile, cycles and the daily advice cache.

``CycleRepository`` is the only component that reads or writes the key-value
store.  Every write is persisted immediately; there is no staging and no
transaction spanning several keys, so a crash between ``save_cycles`` and
``recalculate_and_save_profile`` leaves the profile averages stale until the
next recalculation.

Key layout (``prefix`` defaults to ``luna``)::

    {prefix}_profile                  — Profile JSON
    {prefix}_cycles                   — Cycle list JSON, newest start first
    {prefix}_advice_cache_YYYY-MM-DD  — one DailyAdvice JSON per calendar day
"""

from __future__ import annotations

import json
import logging
from datetime import date
from typing import Any, Iterable

from pydantic import ValidationError

from luna.models.tracking import Cycle, DailyAdvice, Profile
from luna.storage.kv_store import KeyValueStore, StorageError, StorageQuotaError
from luna.tracking.config_loader import TrackingConfig, get_tracking_config
from luna.tracking.cycle_stats import recompute_profile, sort_newest_first

logger = logging.getLogger("luna.storage.repository")

DEFAULT_ADVICE_RETENTION_DAYS = 30


class RecordDecodeError(StorageError):
    """Raised when a stored profile or cycle list cannot be decoded."""


def advice_date_key(day: date) -> str:
    """Return the cache date key for a calendar day (``YYYY-MM-DD``)."""
    return day.isoformat()


class CycleRepository:
    """Profile / cycle / advice persistence over an injected key-value store.

    Usage::

        repo = CycleRepository(InMemoryStore())
        repo.save_profile(Profile(name="Mai"))
        repo.add_cycle(Cycle(id="c1", start_date=date(2024, 1, 1)))
        repo.recalculate_and_save_profile()
    """

    def __init__(
        self,
        store: KeyValueStore,
        key_prefix: str = "luna",
        advice_retention_days: int = DEFAULT_ADVICE_RETENTION_DAYS,
        config: TrackingConfig | None = None,
    ) -> None:
        self._store = store
        self._config = config or get_tracking_config()
        self._retention_days = advice_retention_days
        self.profile_key = f"{key_prefix}_profile"
        self.cycles_key = f"{key_prefix}_cycles"
        self.advice_prefix = f"{key_prefix}_advice_cache_"

    @property
    def config(self) -> TrackingConfig:
        return self._config

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------

    def get_profile(self) -> Profile | None:
        raw = self._read_json(self.profile_key)
        if raw is None:
            return None
        try:
            return Profile.model_validate(raw)
        except ValidationError as exc:
            raise RecordDecodeError(f"Stored profile is invalid: {exc}") from exc

    def save_profile(self, profile: Profile) -> None:
        """Overwrite the stored profile (no merge)."""
        self._write_json(self.profile_key, profile.to_record())

    # ------------------------------------------------------------------
    # Cycles
    # ------------------------------------------------------------------

    def get_cycles(self) -> list[Cycle]:
        raw = self._read_json(self.cycles_key)
        if raw is None:
            return []
        if not isinstance(raw, list):
            raise RecordDecodeError(f"{self.cycles_key} must hold a JSON list")
        try:
            return [Cycle.model_validate(item) for item in raw]
        except ValidationError as exc:
            raise RecordDecodeError(f"Stored cycle is invalid: {exc}") from exc

    def save_cycles(self, cycles: Iterable[Cycle]) -> list[Cycle]:
        """Replace the whole cycle collection, sorted newest start first."""
        ordered = sort_newest_first(cycles)
        self._write_json(self.cycles_key, [c.to_record() for c in ordered])
        return ordered

    def add_cycle(self, cycle: Cycle) -> list[Cycle]:
        """Insert ``cycle`` and return the re-sorted collection.

        A cycle whose id is already stored is not inserted; the existing
        collection is returned unchanged.
        """
        cycles = self.get_cycles()
        if any(c.id == cycle.id for c in cycles):
            logger.warning("Cycle id %s already exists; add ignored", cycle.id)
            return cycles
        return self.save_cycles([cycle, *cycles])

    def update_cycle(self, cycle: Cycle) -> list[Cycle]:
        """Replace the stored cycle with the same id.  Unknown ids change nothing."""
        cycles = self.get_cycles()
        if not any(c.id == cycle.id for c in cycles):
            logger.debug("Update for unknown cycle id %s ignored", cycle.id)
        return self.save_cycles(cycle if c.id == cycle.id else c for c in cycles)

    def delete_cycle(self, cycle_id: str) -> list[Cycle]:
        """Remove the cycle with ``cycle_id``.  Unknown ids change nothing."""
        cycles = self.get_cycles()
        return self.save_cycles(c for c in cycles if c.id != cycle_id)

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def recalculate_and_save_profile(self) -> Profile | None:
        """Recompute the profile averages from the stored cycles.

        Averages with no qualifying samples keep their previous value.

        Returns:
            The saved profile, or None if no profile exists yet.
        """
        profile = self.get_profile()
        if profile is None:
            logger.debug("No profile stored; skipping recalculation")
            return None
        updated = recompute_profile(profile, self.get_cycles(), self._config)
        if updated != profile:
            logger.info(
                "Profile averages updated: cycle %d→%d days, period %d→%d days",
                profile.average_cycle_length,
                updated.average_cycle_length,
                profile.average_period_duration,
                updated.average_period_duration,
            )
        self.save_profile(updated)
        return updated

    # ------------------------------------------------------------------
    # Advice cache
    # ------------------------------------------------------------------

    def get_advice(self, date_key: str) -> DailyAdvice | None:
        """Return the cached advice for ``date_key``.

        A corrupt entry is logged and treated as a cache miss.
        """
        key = self.advice_prefix + date_key
        try:
            raw = self._read_json(key)
            if raw is None:
                return None
            return DailyAdvice.model_validate(raw)
        except (RecordDecodeError, ValidationError) as exc:
            logger.warning("Discarding unreadable advice entry %s: %s", key, exc)
            return None

    def save_advice(self, date_key: str, advice: DailyAdvice) -> bool:
        """Cache ``advice`` under ``date_key``.  Best effort: never raises.

        Old entries beyond the retention window are evicted after a
        successful write; a date that would itself fall outside the window is
        not written.  On a quota failure every other advice entry is evicted
        and the write is retried once.

        Returns:
            True if the entry was persisted and is still cached.
        """
        if not self._within_retention(date_key):
            logger.info("Advice for %s is older than the retained window; not cached", date_key)
            return False

        key = self.advice_prefix + date_key
        payload = json.dumps(advice.to_record(), ensure_ascii=False)
        try:
            self._store.set(key, payload)
        except OSError as exc:
            logger.warning("Could not write advice for %s: %s", date_key, exc)
            return False
        except StorageQuotaError as exc:
            logger.warning("Storage full while caching advice for %s: %s", date_key, exc)
            try:
                evicted = self.evict_advice(keep=[date_key])
                if not evicted:
                    return False
                self._store.set(key, payload)
            except (StorageQuotaError, OSError) as retry_exc:
                logger.warning("Advice for %s not cached after eviction: %s", date_key, retry_exc)
                return False
        try:
            self._prune_advice()
        except OSError as exc:
            logger.warning("Could not prune old advice entries: %s", exc)
        return True

    def advice_keys(self) -> list[str]:
        """Return cached advice date keys, oldest first."""
        n = len(self.advice_prefix)
        return sorted(k[n:] for k in self._store.keys() if k.startswith(self.advice_prefix))

    def evict_advice(self, keep: Iterable[str] = ()) -> int:
        """Remove cached advice entries except those in ``keep``.

        Returns:
            Number of entries removed.
        """
        kept = set(keep)
        removed = 0
        for date_key in self.advice_keys():
            if date_key in kept:
                continue
            self._store.remove(self.advice_prefix + date_key)
            removed += 1
        if removed:
            logger.info("Evicted %d cached advice entries", removed)
        return removed

    def _within_retention(self, date_key: str) -> bool:
        if self._retention_days <= 0:
            return True
        keys = set(self.advice_keys())
        keys.add(date_key)
        return date_key in sorted(keys)[-self._retention_days:]

    def _prune_advice(self) -> None:
        keys = self.advice_keys()
        if self._retention_days <= 0 or len(keys) <= self._retention_days:
            return
        self.evict_advice(keep=keys[-self._retention_days:])

    # ------------------------------------------------------------------
    # Reset
    # ------------------------------------------------------------------

    def clear_all_data(self) -> None:
        """Erase every key in the store.  Irreversible."""
        self._store.clear()
        logger.info("All stored data cleared")

    # ------------------------------------------------------------------
    # JSON helpers
    # ------------------------------------------------------------------

    def _read_json(self, key: str) -> Any:
        data = self._store.get(key)
        if data is None:
            return None
        try:
            return json.loads(data)
        except json.JSONDecodeError as exc:
            raise RecordDecodeError(f"{key} does not hold valid JSON: {exc}") from exc

    def _write_json(self, key: str, value: Any) -> None:
        self._store.set(key, json.dumps(value, ensure_ascii=False))
