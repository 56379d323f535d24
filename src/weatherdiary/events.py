from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable, DefaultDict, List

logger = logging.getLogger(__name__)

WEATHER_DATA_UPDATED = "weather_data_updated"
CLOUD_DATA_UPDATED = "cloud_data_updated"
STORAGE_STATUS_CHANGED = "storage_status_changed"

Listener = Callable[[Any], None]


class EventBus:
    """In-process notifications for UI collaborators."""

    def __init__(self) -> None:
        self._listeners: DefaultDict[str, List[Listener]] = defaultdict(list)

    def subscribe(self, event: str, listener: Listener) -> Callable[[], None]:
        self._listeners[event].append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners[event]:
                self._listeners[event].remove(listener)

        return unsubscribe

    def emit(self, event: str, payload: Any = None) -> None:
        for listener in list(self._listeners[event]):
            try:
                listener(payload)
            except Exception:
                logger.exception("listener for %s failed", event)


__all__ = ["CLOUD_DATA_UPDATED", "EventBus", "STORAGE_STATUS_CHANGED", "WEATHER_DATA_UPDATED"]
