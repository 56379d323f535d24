from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Callable

import requests

from . import config
from .errors import LocationUnavailableError, StorageQuotaError
from .kvstore import KeyValueStore
from .models import Coordinates

logger = logging.getLogger(__name__)

LAST_POSITION_KEY = "weather_last_position"


class Locator(ABC):
    """Source of the device position."""

    @abstractmethod
    def locate(self, timeout: float) -> Coordinates:
        """Return the current position or raise :class:`LocationUnavailableError`."""


class StaticLocator(Locator):
    def __init__(self, latitude: float, longitude: float) -> None:
        self.latitude = latitude
        self.longitude = longitude

    def locate(self, timeout: float) -> Coordinates:
        return Coordinates(
            latitude=self.latitude,
            longitude=self.longitude,
            timestamp_ms=int(time.time() * 1000),
        )


class IpGeoLocator(Locator):
    """Coarse position from the public IP address (ip-api.com)."""

    url = "http://ip-api.com/json"

    def __init__(self, session: requests.Session | None = None) -> None:
        self.session = session or requests.Session()

    def locate(self, timeout: float) -> Coordinates:
        try:
            response = self.session.get(self.url, params={"fields": "status,lat,lon"}, timeout=timeout)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as exc:
            raise LocationUnavailableError(f"IP geolocation failed: {exc}") from exc
        if data.get("status") != "success" or "lat" not in data or "lon" not in data:
            raise LocationUnavailableError(f"IP geolocation returned {data.get('status')!r}")
        return Coordinates(
            latitude=float(data["lat"]),
            longitude=float(data["lon"]),
            timestamp_ms=int(time.time() * 1000),
        )


class GeoResolver:
    """Resolves the position used for weather lookups.

    A fix younger than ``max_age`` seconds is reused without asking the
    locator. Any failure, including the ``timeout``, degrades to the default
    coordinates (Beijing) instead of raising.
    """

    def __init__(
        self,
        locator: Locator | None,
        state: KeyValueStore,
        *,
        timeout: float = config.LOCATION_TIMEOUT_SECONDS,
        max_age: float = config.LOCATION_MAX_AGE_SECONDS,
        default_latitude: float = config.DEFAULT_LATITUDE,
        default_longitude: float = config.DEFAULT_LONGITUDE,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.locator = locator
        self.state = state
        self.timeout = timeout
        self.max_age = max_age
        self.default_latitude = default_latitude
        self.default_longitude = default_longitude
        self._clock = clock

    def default(self) -> Coordinates:
        return Coordinates(
            latitude=self.default_latitude,
            longitude=self.default_longitude,
            timestamp_ms=self._now_ms(),
        )

    def last_known(self) -> Coordinates | None:
        raw = self.state.get(LAST_POSITION_KEY)
        if not isinstance(raw, dict):
            return None
        try:
            return Coordinates(
                latitude=float(raw["latitude"]),
                longitude=float(raw["longitude"]),
                timestamp_ms=int(raw.get("timestamp", 0)),
            )
        except (KeyError, TypeError, ValueError):
            return None

    async def locate(self) -> Coordinates:
        recent = self.last_known()
        if recent is not None and self._now_ms() - recent.timestamp_ms < self.max_age * 1000:
            return recent
        if self.locator is None:
            logger.info("no locator configured, using default position")
            return self.default()
        try:
            coords = await asyncio.wait_for(
                asyncio.to_thread(self.locator.locate, self.timeout),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("locating timed out after %.0fs, using default position", self.timeout)
            return self.default()
        except (LocationUnavailableError, requests.RequestException) as exc:
            logger.warning("locating failed, using default position: %s", exc)
            return self.default()
        if not coords.timestamp_ms:
            coords = coords.model_copy(update={"timestamp_ms": self._now_ms()})
        try:
            self.state.set(
                LAST_POSITION_KEY,
                {"latitude": coords.latitude, "longitude": coords.longitude, "timestamp": coords.timestamp_ms},
            )
        except StorageQuotaError as exc:
            logger.warning("could not persist position: %s", exc)
        return coords

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)


__all__ = ["GeoResolver", "IpGeoLocator", "LAST_POSITION_KEY", "Locator", "StaticLocator"]
