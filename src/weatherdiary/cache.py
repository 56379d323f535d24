from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from pydantic import ValidationError

from . import config
from .errors import StorageQuotaError
from .kvstore import KeyValueStore
from .models import WeatherCacheEntry, WeatherRecord

logger = logging.getLogger(__name__)

CACHE_KEY = "weather_diary_cache"


class WeatherCache:
    """Last resolved weather record, held in memory and in the durable store.

    Stale entries are kept: the router falls back to them when every
    provider fails.
    """

    def __init__(
        self,
        state: KeyValueStore,
        *,
        ttl: float = config.WEATHER_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.state = state
        self.ttl = ttl
        self._clock = clock
        self._memory: Optional[WeatherCacheEntry] = None

    def latest(self) -> Optional[WeatherCacheEntry]:
        if self._memory is not None:
            return self._memory
        raw = self.state.get(CACHE_KEY)
        if raw is None:
            return None
        try:
            entry = WeatherCacheEntry.model_validate(raw)
        except ValidationError as exc:
            logger.warning("discarding unreadable weather cache: %s", exc)
            return None
        self._memory = entry
        return entry

    def get_fresh(self, location_key: str) -> Optional[WeatherRecord]:
        entry = self.latest()
        if entry is None or entry.location_key != location_key:
            return None
        if self._now_ms() - entry.timestamp_ms >= self.ttl * 1000:
            return None
        return entry.data

    def put(self, record: WeatherRecord, location_key: str) -> WeatherCacheEntry:
        entry = WeatherCacheEntry(data=record, timestamp_ms=self._now_ms(), location_key=location_key)
        self._memory = entry
        try:
            self.state.set(CACHE_KEY, entry.model_dump(mode="json"))
        except StorageQuotaError as exc:
            logger.warning("weather cache kept in memory only: %s", exc)
        return entry

    def clear(self) -> None:
        self._memory = None
        self.state.remove(CACHE_KEY)

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)


__all__ = ["CACHE_KEY", "WeatherCache"]
