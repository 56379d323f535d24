from __future__ import annotations

from typing import Any, Dict

import requests

from ..config import ProviderConfig
from ..models import WeatherRecord
from ..translate import Translator, format_location_name
from .base import BaseProvider, Clock
from .conditions import WTTR_CONDITIONS, build_record


class WttrSource(BaseProvider):
    """wttr.in JSON feed. Global coverage, no key, English text translated to Chinese."""

    source_name = "wttr"
    requires_key = False

    def __init__(
        self,
        config: ProviderConfig,
        session: requests.Session | None = None,
        *,
        translator: Translator | None = None,
        clock: Clock | None = None,
        force_night: bool = False,
    ) -> None:
        super().__init__(config, session, clock=clock, force_night=force_night)
        self.translator = translator or Translator()

    def covers(self, latitude: float, longitude: float) -> bool:
        return -90.0 <= latitude <= 90.0 and -180.0 <= longitude <= 180.0

    def collect(self, latitude: float, longitude: float) -> WeatherRecord:
        payload = self.fetch_json(
            f"{self.config.base_url.rstrip('/')}/{latitude},{longitude}",
            params={"format": "j1", "lang": "zh"},
        )
        current: Dict[str, Any] = payload["current_condition"][0]
        area: Dict[str, Any] = payload["nearest_area"][0]
        english = current["weatherDesc"][0]["value"].strip()
        location = format_location_name(
            self.translator.translate_now(area["areaName"][0]["value"], "location"),
            self.translator.translate_now(area["country"][0]["value"], "location"),
        )
        return build_record(
            code=english,
            table=WTTR_CONDITIONS,
            location=location,
            description=self.translator.translate_now(english, "weather"),
            temperature=current.get("temp_C"),
            now=self.clock(),
            force_night=self.force_night,
            humidity=current.get("humidity"),
            wind=current.get("windspeedKmph"),
        )


__all__ = ["WttrSource"]
