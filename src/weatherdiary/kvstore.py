from __future__ import annotations

import copy
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional

from .errors import StorageQuotaError

logger = logging.getLogger(__name__)


class KeyValueStore:
    """Durable JSON key-value namespace.

    Values must be JSON serializable. With ``path=None`` the store lives in
    memory only, which is what the tests use. ``quota_bytes`` caps the size of
    the serialized document; a write that would exceed it raises
    :class:`StorageQuotaError` and leaves the previous contents untouched.
    """

    def __init__(self, path: Path | None = None, *, quota_bytes: Optional[int] = None) -> None:
        self.path = Path(path) if path is not None else None
        self.quota_bytes = quota_bytes
        self._data: Dict[str, Any] = self._load()

    def _load(self) -> Dict[str, Any]:
        if self.path is None or not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("ignoring unreadable state file %s: %s", self.path, exc)
            return {}
        if not isinstance(data, dict):
            logger.warning("ignoring state file %s: top-level value is not an object", self.path)
            return {}
        return data

    def get(self, key: str, default: Any = None) -> Any:
        if key not in self._data:
            return default
        return copy.deepcopy(self._data[key])

    def set(self, key: str, value: Any) -> None:
        candidate = dict(self._data)
        candidate[key] = value
        self._commit(candidate)

    def remove(self, key: str) -> None:
        if key not in self._data:
            return
        candidate = dict(self._data)
        del candidate[key]
        self._commit(candidate)

    def keys(self) -> List[str]:
        return list(self._data)

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def _commit(self, candidate: Dict[str, Any]) -> None:
        payload = json.dumps(candidate, ensure_ascii=False)
        size = len(payload.encode("utf-8"))
        if self.quota_bytes is not None and size > self.quota_bytes:
            raise StorageQuotaError(
                f"state would grow to {size} bytes (quota {self.quota_bytes})",
                size=size,
                quota=self.quota_bytes,
            )
        if self.path is not None:
            self._write_atomic(payload)
        self._data = candidate

    def _write_atomic(self, payload: str) -> None:
        assert self.path is not None
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=".state-", suffix=".json", dir=str(self.path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
            os.replace(tmp_name, self.path)
        except OSError:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise


__all__ = ["KeyValueStore"]
