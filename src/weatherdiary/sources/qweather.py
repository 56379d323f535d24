from __future__ import annotations

import logging
from typing import Any, Dict

import requests

from ..errors import TransportError
from ..models import WeatherRecord
from ..translate import UNKNOWN_LOCATION, format_location_name
from .base import BaseProvider
from .conditions import QWEATHER_CONDITIONS, QWEATHER_DESCRIPTIONS, build_record

logger = logging.getLogger(__name__)


class QWeatherSource(BaseProvider):
    """QWeather real-time conditions with an optional city lookup for the name."""

    source_name = "qweather"

    LAT_RANGE = (10.0, 60.0)
    LON_RANGE = (70.0, 140.0)

    def covers(self, latitude: float, longitude: float) -> bool:
        return (
            self.LAT_RANGE[0] <= latitude <= self.LAT_RANGE[1]
            and self.LON_RANGE[0] <= longitude <= self.LON_RANGE[1]
        )

    def collect(self, latitude: float, longitude: float) -> WeatherRecord:
        location_param = f"{longitude},{latitude}"
        payload = self.fetch_json(
            f"{self.config.base_url.rstrip('/')}/weather/now",
            params={"location": location_param, "key": self.config.key},
        )
        if payload.get("code") != "200":
            raise TransportError(self.source_name, f"weather/now returned code {payload.get('code')!r}")
        now_data: Dict[str, Any] = payload["now"]
        code = str(now_data.get("icon") or "100")
        description = QWEATHER_DESCRIPTIONS.get(code) or now_data.get("text") or "未知天气"
        return build_record(
            code=code,
            table=QWEATHER_CONDITIONS,
            location=self._lookup_location(location_param),
            description=description,
            temperature=now_data.get("temp"),
            now=self.clock(),
            force_night=self.force_night,
            humidity=now_data.get("humidity"),
            wind=now_data.get("windSpeed"),
        )

    def _lookup_location(self, location_param: str) -> str:
        if not self.config.geo_base_url:
            return UNKNOWN_LOCATION
        try:
            geo = self.fetch_json(
                f"{self.config.geo_base_url.rstrip('/')}/city/lookup",
                params={"location": location_param, "key": self.config.key},
            )
        except (requests.RequestException, ValueError) as exc:
            logger.info("qweather city lookup failed, keeping unknown location: %s", exc)
            return UNKNOWN_LOCATION
        places = geo.get("location") or []
        if geo.get("code") != "200" or not places:
            return UNKNOWN_LOCATION
        place = places[0]
        return format_location_name(place.get("name"), place.get("adm1"), place.get("country"))


__all__ = ["QWeatherSource"]
