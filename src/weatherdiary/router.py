from __future__ import annotations

import asyncio
import datetime as dt
import logging
from typing import Dict, List, Optional

from . import config
from .cache import WeatherCache
from .errors import StorageQuotaError, TransportError
from .events import WEATHER_DATA_UPDATED, EventBus
from .geo import GeoResolver
from .kvstore import KeyValueStore
from .models import Condition, ProviderResult, WeatherRecord
from .sources.base import BaseProvider, Clock
from .sources.conditions import ConditionEntry, build_record

logger = logging.getLogger(__name__)

CURRENT_SOURCE_KEY = "weather_current_source"

DOMESTIC_LAT = (18.0, 54.0)
DOMESTIC_LON = (73.0, 135.0)

# location, description, temperature, (condition, day icon, night icon)
_MOCK_CITIES: List[tuple] = [
    ("北京市", "晴天", "22", (Condition.SUNNY, "☀️", None)),
    ("上海市", "多云", "18", (Condition.CLOUDY, "☁️", "☁️")),
    ("广州市", "小雨", "25", (Condition.RAINY, "🌧️", "🌧️")),
    ("成都市", "阴天", "16", (Condition.CLOUDY, "⛅", "⛅")),
]


def is_domestic(latitude: float, longitude: float) -> bool:
    return DOMESTIC_LAT[0] <= latitude <= DOMESTIC_LAT[1] and DOMESTIC_LON[0] <= longitude <= DOMESTIC_LON[1]


def mock_weather(now: dt.datetime, force_night: bool = False) -> WeatherRecord:
    """Placeholder record used when neither a provider nor the cache can answer.

    The city is picked from the calendar date so repeated calls on the same
    day agree.
    """
    location, description, temperature, entry = _MOCK_CITIES[now.date().toordinal() % len(_MOCK_CITIES)]
    table: Dict[str, ConditionEntry] = {description: entry}
    return build_record(
        code=description,
        table=table,
        location=location,
        description=description,
        temperature=temperature,
        now=now,
        force_night=force_night,
    )


class WeatherRouter:
    """Resolves the current weather for the device position.

    ``get_weather`` never raises. Concurrent callers share one in-flight
    resolution.
    """

    def __init__(
        self,
        geo: GeoResolver,
        providers: Dict[str, BaseProvider],
        cache: WeatherCache,
        state: KeyValueStore,
        *,
        events: EventBus | None = None,
        clock: Clock | None = None,
        force_night: bool = False,
    ) -> None:
        self.geo = geo
        self.providers = providers
        self.cache = cache
        self.state = state
        self.events = events or EventBus()
        self.clock: Clock = clock or dt.datetime.now
        self.force_night = force_night
        self.last_source: Optional[str] = None
        self._pending: Optional[asyncio.Task] = None

    async def get_weather(self) -> WeatherRecord:
        if self._pending is None:
            task = asyncio.create_task(self._resolve_safely())
            task.add_done_callback(self._clear_pending)
            self._pending = task
        return await asyncio.shield(self._pending)

    def provider_order(self, latitude: float, longitude: float) -> List[str]:
        if is_domestic(latitude, longitude):
            return list(config.DEFAULT_PROVIDER_ORDER)
        order = ["wttr"]
        qweather = self.providers.get("qweather")
        if qweather is not None and qweather.covers(latitude, longitude):
            order.append("qweather")
        return order

    def current_source(self) -> Optional[str]:
        return self.last_source or self.state.get(CURRENT_SOURCE_KEY)

    def _clear_pending(self, task: asyncio.Task) -> None:
        if self._pending is task:
            self._pending = None

    async def _resolve_safely(self) -> WeatherRecord:
        try:
            return await self._resolve()
        except Exception:
            logger.exception("weather resolution failed unexpectedly")
            return self._fallback()

    async def _resolve(self) -> WeatherRecord:
        coords = await self.geo.locate()
        location_key = coords.location_key
        cached = self.cache.get_fresh(location_key)
        if cached is not None:
            logger.debug("fresh weather cache hit for %s", location_key)
            return cached

        for name in self.provider_order(coords.latitude, coords.longitude):
            provider = self.providers.get(name)
            if provider is None:
                continue
            result = await self._attempt(name, provider, coords.latitude, coords.longitude)
            if not result.ok:
                logger.info("provider %s unavailable: %s", name, result.error)
                continue
            assert result.record is not None
            self._record_success(name, result.record, location_key)
            return result.record

        logger.warning("all providers failed for %s", location_key)
        return self._fallback()

    async def _attempt(self, name: str, provider: BaseProvider, latitude: float, longitude: float) -> ProviderResult:
        """Run one provider with a deadline covering all of its requests."""
        timeout = provider.config.timeout
        try:
            return await asyncio.wait_for(asyncio.to_thread(provider.fetch, latitude, longitude), timeout=timeout)
        except asyncio.TimeoutError:
            return ProviderResult.failure(name, TransportError(name, f"timed out after {timeout:g}s"))

    def _record_success(self, name: str, record: WeatherRecord, location_key: str) -> None:
        self.cache.put(record, location_key)
        self.last_source = name
        try:
            self.state.set(CURRENT_SOURCE_KEY, name)
        except StorageQuotaError as exc:
            logger.warning("could not persist active provider: %s", exc)
        logger.info("weather resolved via %s: %s %s°C", name, record.location, record.temperature_c)
        self.events.emit(WEATHER_DATA_UPDATED, record)

    def _fallback(self) -> WeatherRecord:
        stale = self.cache.latest()
        if stale is not None:
            self.last_source = "cache"
            logger.info("serving stale weather cached at %s", stale.timestamp_ms)
            return stale.data
        self.last_source = "mock"
        return mock_weather(self.clock(), self.force_night)


__all__ = ["CURRENT_SOURCE_KEY", "WeatherRouter", "is_domestic", "mock_weather"]
