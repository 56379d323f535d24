from __future__ import annotations

import datetime as dt
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional

import requests

from ..config import ProviderConfig
from ..errors import ConfigError, CoverageError, PayloadError, ProviderError, TransportError
from ..models import ProviderResult, WeatherRecord

logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (compatible; WeatherDiaryBot/0.1; +https://example.com/bot)"

Clock = Callable[[], dt.datetime]


class BaseProvider(ABC):
    """Common interface for weather providers.

    Subclasses implement :meth:`covers` and :meth:`collect`; callers only use
    :meth:`fetch`, which turns every failure into a typed
    :class:`ProviderResult` instead of raising.
    """

    source_name: str
    requires_key: bool = True

    def __init__(
        self,
        config: ProviderConfig,
        session: requests.Session | None = None,
        *,
        clock: Clock | None = None,
        force_night: bool = False,
    ) -> None:
        self.config = config
        self.session = session or requests.Session()
        self.session.headers.setdefault("User-Agent", USER_AGENT)
        self.clock: Clock = clock or dt.datetime.now
        self.force_night = force_night

    @abstractmethod
    def covers(self, latitude: float, longitude: float) -> bool:
        """Return True when the coordinates fall inside the provider's service area."""

    @abstractmethod
    def collect(self, latitude: float, longitude: float) -> WeatherRecord:
        """Call the provider and normalize its answer. May raise."""

    def fetch_json(
        self,
        url: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        method: str = "GET",
        json_body: Any = None,
    ) -> Any:
        response = self.session.request(
            method,
            url,
            params=params,
            json=json_body,
            timeout=self.config.timeout,
        )
        response.raise_for_status()
        return response.json()

    def fetch(self, latitude: float, longitude: float) -> ProviderResult:
        name = self.source_name
        if not self.covers(latitude, longitude):
            return ProviderResult.failure(
                name, CoverageError(name, f"({latitude}, {longitude}) is outside the service area")
            )
        if self.requires_key and not self.config.configured:
            return ProviderResult.failure(name, ConfigError(name, "API key is not configured"))
        try:
            record = self.collect(latitude, longitude)
        except ProviderError as exc:
            error: ProviderError = exc
        except requests.JSONDecodeError as exc:
            error = PayloadError(name, f"response is not JSON: {exc}")
        except requests.Timeout:
            error = TransportError(name, f"timed out after {self.config.timeout:g}s")
        except requests.RequestException as exc:
            error = TransportError(name, str(exc))
        except (ValueError, KeyError, IndexError, TypeError, AttributeError) as exc:
            error = PayloadError(name, f"unexpected payload: {exc!r}")
        else:
            return ProviderResult.success(name, record)
        logger.warning("%s failed (%s): %s", name, error.kind, error.message)
        return ProviderResult.failure(name, error)


__all__ = ["BaseProvider", "USER_AGENT"]
