from __future__ import annotations

from typing import Optional


class WeatherDiaryError(Exception):
    """Base class for all errors raised by this package."""


class ProviderError(WeatherDiaryError):
    """A weather provider could not produce a record."""

    kind = "provider"

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.message = message


class CoverageError(ProviderError):
    kind = "coverage"


class TransportError(ProviderError):
    kind = "transport"


class PayloadError(TransportError):
    """The provider answered, but with a body we could not interpret."""


class ConfigError(ProviderError):
    kind = "config"


class RemoteUnavailableError(WeatherDiaryError):
    """The remote document store is unreachable or the user is not authenticated."""


class DecryptionError(WeatherDiaryError):
    pass


class StorageQuotaError(WeatherDiaryError):
    def __init__(self, message: str, *, size: Optional[int] = None, quota: Optional[int] = None) -> None:
        super().__init__(message)
        self.size = size
        self.quota = quota


class SyncInProgressError(WeatherDiaryError):
    pass


class LocationUnavailableError(WeatherDiaryError):
    pass


__all__ = [
    "ConfigError",
    "CoverageError",
    "DecryptionError",
    "LocationUnavailableError",
    "PayloadError",
    "ProviderError",
    "RemoteUnavailableError",
    "StorageQuotaError",
    "SyncInProgressError",
    "TransportError",
    "WeatherDiaryError",
]
