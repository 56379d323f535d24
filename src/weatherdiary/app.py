"""Wiring helpers that assemble the engines from configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import requests

from . import config
from .cache import WeatherCache
from .events import EventBus
from .geo import GeoResolver, IpGeoLocator, Locator
from .kvstore import KeyValueStore
from .router import WeatherRouter
from .sources import build_providers
from .storage.backends import DocumentBackend, FirestoreBackend
from .storage.crypto import FieldCipher
from .storage.hybrid import HybridDiaryStore
from .storage.identity import LocalIdentity
from .storage.local import LocalDiaryStore
from .storage.remote import RemoteDiaryStore


def open_state(path: Path | None = None, *, quota_bytes: Optional[int] = None) -> KeyValueStore:
    config.ensure_directories()
    return KeyValueStore(path or config.DEFAULT_STATE_FILE, quota_bytes=quota_bytes)


def build_router(
    state: KeyValueStore,
    *,
    locator: Locator | None = None,
    events: EventBus | None = None,
    session: requests.Session | None = None,
    force_night: Optional[bool] = None,
) -> WeatherRouter:
    if force_night is None:
        force_night = config.force_night_enabled()
    providers = build_providers(session=session, force_night=force_night)
    geo = GeoResolver(locator if locator is not None else IpGeoLocator(session), state)
    return WeatherRouter(
        geo,
        providers,
        WeatherCache(state),
        state,
        events=events,
        force_night=force_night,
    )


def build_remote(
    state: KeyValueStore,
    *,
    backend: DocumentBackend | None = None,
    cipher: FieldCipher | None = None,
) -> Optional[RemoteDiaryStore]:
    if backend is None:
        settings = config.load_firestore_config()
        if settings is None:
            return None
        backend = FirestoreBackend(
            settings.project_id,
            settings.api_key,
            collection=settings.collection,
            timeout=settings.timeout,
        )
    return RemoteDiaryStore(backend, LocalIdentity(state), cipher)


def build_storage(
    state: KeyValueStore,
    *,
    remote: RemoteDiaryStore | None = None,
    events: EventBus | None = None,
) -> HybridDiaryStore:
    return HybridDiaryStore(LocalDiaryStore(state), remote, state=state, events=events)


__all__ = ["build_remote", "build_router", "build_storage", "open_state"]
