from __future__ import annotations

import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel

PACKAGE_ROOT = Path(__file__).resolve().parent
PROJECT_ROOT = PACKAGE_ROOT.parent.parent
DATA_DIR = Path(os.environ.get("WEATHERDIARY_DATA_DIR") or PROJECT_ROOT / "data")
LOG_DIR = PROJECT_ROOT / "logs"
TEMPLATE_DIR = PROJECT_ROOT / "templates"
# Single JSON document that backs the key-value namespace (entries, caches, sync bookkeeping).
DEFAULT_STATE_FILE = DATA_DIR / "state.json"

LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Fallback position when the device cannot be located (Beijing).
DEFAULT_LATITUDE = 39.9042
DEFAULT_LONGITUDE = 116.4074

WEATHER_CACHE_TTL_SECONDS = 30 * 60
LOCATION_TIMEOUT_SECONDS = 15.0
LOCATION_MAX_AGE_SECONDS = 5 * 60

DIARY_MAX_ENTRIES = 100
READ_CACHE_TTL_SECONDS = 30.0
SYNC_COOLDOWN_SECONDS = 30.0
RECENT_SYNC_WINDOW_SECONDS = 24 * 60 * 60
SYNC_STALE_SECONDS = 5 * 60
RECONNECT_DELAY_SECONDS = 2.0
REMOTE_POLL_INTERVAL_SECONDS = 30.0

TRANSLATION_CACHE_TTL_SECONDS = 24 * 60 * 60

DEFAULT_PROVIDER_ORDER: List[str] = ["amap", "qweather", "wttr"]


class ProviderConfig(BaseModel):
    name: str
    base_url: str
    key: Optional[str] = None
    timeout: float = 10.0
    geo_base_url: Optional[str] = None

    @property
    def configured(self) -> bool:
        return bool(self.key)


def ensure_directories(extra_paths: Iterable[Path] | None = None) -> None:
    """Create standard directories if they do not yet exist."""
    paths = [DATA_DIR, LOG_DIR]
    if extra_paths:
        paths.extend(extra_paths)
    for path in paths:
        path.mkdir(parents=True, exist_ok=True)


def force_night_enabled() -> bool:
    flag = os.environ.get("WEATHERDIARY_FORCE_NIGHT", "")
    return flag.strip().lower() in {"1", "true", "yes"}


class FirestoreConfig(BaseModel):
    project_id: str
    api_key: Optional[str] = None
    collection: str = "diaries"
    timeout: float = 10.0


def load_firestore_config() -> Optional[FirestoreConfig]:
    """Remote diary storage settings, or None when no project is configured."""
    project_id = os.environ.get("WEATHERDIARY_FIRESTORE_PROJECT", "").strip()
    if not project_id:
        return None
    return FirestoreConfig(
        project_id=project_id,
        api_key=os.environ.get("WEATHERDIARY_FIRESTORE_API_KEY") or None,
    )


def load_provider_configs() -> Dict[str, ProviderConfig]:
    """Return provider settings, with credentials taken from the environment."""
    return {
        "amap": ProviderConfig(
            name="amap",
            base_url="https://restapi.amap.com/v3",
            key=os.environ.get("WEATHERDIARY_AMAP_KEY") or None,
            timeout=5.0,
        ),
        "qweather": ProviderConfig(
            name="qweather",
            base_url="https://devapi.qweather.com/v7",
            geo_base_url="https://geoapi.qweather.com/v2",
            key=os.environ.get("WEATHERDIARY_QWEATHER_KEY") or None,
            timeout=8.0,
        ),
        "wttr": ProviderConfig(
            name="wttr",
            base_url="https://wttr.in",
            timeout=15.0,
        ),
    }


def validate_api_config(configs: Dict[str, ProviderConfig] | None = None) -> Dict[str, object]:
    """Report missing provider credentials.

    Missing keys are not fatal: the router treats them like transport
    failures and moves on, but they are surfaced here for diagnostics.
    """
    configs = configs or load_provider_configs()
    issues: List[str] = []
    warnings: List[str] = []
    amap = configs.get("amap")
    qweather = configs.get("qweather")
    if amap is not None and not amap.configured:
        warnings.append("AMap key is not configured; domestic lookups start with QWeather")
    if qweather is not None and not qweather.configured:
        warnings.append("QWeather key is not configured; it is skipped as a fallback")
    if not (amap and amap.configured) and not (qweather and qweather.configured):
        issues.append("no primary provider key configured; only wttr.in is usable")
    return {"is_valid": not issues, "issues": issues, "warnings": warnings}


def setup_logging(level: int = logging.INFO, *, log_to_file: bool = True, log_filename: str | None = None) -> None:
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_to_file:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        if log_filename is None:
            log_filename = f"weatherdiary_{datetime.now().strftime('%Y-%m-%d')}.log"
        handlers.append(logging.FileHandler(LOG_DIR / log_filename, encoding="utf-8"))
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        handlers=handlers,
        force=True,
    )
    logging.getLogger("urllib3").setLevel(logging.WARNING)


__all__ = [
    "DATA_DIR",
    "DEFAULT_STATE_FILE",
    "FirestoreConfig",
    "LOG_DIR",
    "PROJECT_ROOT",
    "ProviderConfig",
    "ensure_directories",
    "force_night_enabled",
    "load_firestore_config",
    "load_provider_configs",
    "setup_logging",
    "validate_api_config",
]
