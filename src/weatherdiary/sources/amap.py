from __future__ import annotations

from typing import Any, Dict

from ..errors import TransportError
from ..models import WeatherRecord
from ..translate import format_location_name
from .base import BaseProvider
from .conditions import AMAP_CONDITIONS, build_record


class AmapSource(BaseProvider):
    """AMap (Gaode) live weather, mainland China only."""

    source_name = "amap"

    LAT_RANGE = (18.0, 54.0)
    LON_RANGE = (73.0, 135.0)

    def covers(self, latitude: float, longitude: float) -> bool:
        return (
            self.LAT_RANGE[0] <= latitude <= self.LAT_RANGE[1]
            and self.LON_RANGE[0] <= longitude <= self.LON_RANGE[1]
        )

    def collect(self, latitude: float, longitude: float) -> WeatherRecord:
        base = self.config.base_url.rstrip("/")
        regeo = self.fetch_json(
            f"{base}/geocode/regeo",
            params={
                "location": f"{longitude:.6f},{latitude:.6f}",
                "key": self.config.key,
                "output": "json",
                "radius": 1000,
                "extensions": "base",
            },
        )
        self._check_status(regeo, "reverse geocoding")
        component: Dict[str, Any] = regeo["regeocode"]["addressComponent"]
        adcode = component.get("adcode")
        if not adcode or not isinstance(adcode, str):
            raise TransportError(self.source_name, "reverse geocoding returned no adcode")
        location = format_location_name(
            _text(component.get("city")) or _text(component.get("district")),
            _text(component.get("province")),
        )

        weather = self.fetch_json(
            f"{base}/weather/weatherInfo",
            params={"city": adcode, "key": self.config.key, "extensions": "base", "output": "json"},
        )
        self._check_status(weather, "weather lookup")
        lives = weather.get("lives") or []
        if not lives:
            raise TransportError(self.source_name, "weather lookup returned no live data")
        live: Dict[str, Any] = lives[0]
        description = _text(live.get("weather")) or "未知"
        return build_record(
            code=description,
            table=AMAP_CONDITIONS,
            location=location,
            description=description,
            temperature=live.get("temperature"),
            now=self.clock(),
            force_night=self.force_night,
            humidity=live.get("humidity"),
            wind=_wind(live),
        )

    def _check_status(self, payload: Dict[str, Any], step: str) -> None:
        if payload.get("status") != "1":
            info = payload.get("info") or "unknown error"
            raise TransportError(self.source_name, f"{step} failed: {info}")


def _text(value: Any) -> str | None:
    # AMap sends [] instead of a string for empty fields
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _wind(live: Dict[str, Any]) -> str | None:
    direction = _text(live.get("winddirection"))
    power = _text(live.get("windpower"))
    if direction and power:
        return f"{direction}风{power}级"
    return None


__all__ = ["AmapSource"]
