"""Source adapters for weather providers."""

from __future__ import annotations

from typing import Dict

import requests

from ..config import ProviderConfig, load_provider_configs
from ..translate import Translator
from .amap import AmapSource
from .base import BaseProvider, Clock
from .qweather import QWeatherSource
from .wttr import WttrSource


def build_providers(
    configs: Dict[str, ProviderConfig] | None = None,
    *,
    session: requests.Session | None = None,
    translator: Translator | None = None,
    clock: Clock | None = None,
    force_night: bool = False,
) -> Dict[str, BaseProvider]:
    configs = configs or load_provider_configs()
    return {
        "amap": AmapSource(configs["amap"], session, clock=clock, force_night=force_night),
        "qweather": QWeatherSource(configs["qweather"], session, clock=clock, force_night=force_night),
        "wttr": WttrSource(
            configs["wttr"], session, translator=translator, clock=clock, force_night=force_night
        ),
    }


__all__ = ["AmapSource", "BaseProvider", "QWeatherSource", "WttrSource", "build_providers"]
