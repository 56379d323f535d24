from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

import requests
from pydantic import ValidationError

from .. import config
from ..errors import RemoteUnavailableError
from ..models import DiaryDraft, DiaryEntry
from .backends import Document, DocumentBackend
from .crypto import FieldCipher, NullCipher, decrypt_entry
from .identity import IdentityProvider

logger = logging.getLogger(__name__)

Subscriber = Callable[[List[DiaryEntry]], None]


class RemoteDiaryStore:
    """Diary entries in a remote document store, scoped to one user.

    Title and content are encrypted before they leave the process. Every
    backend failure surfaces as :class:`RemoteUnavailableError`.
    """

    def __init__(
        self,
        backend: DocumentBackend,
        identity: IdentityProvider,
        cipher: FieldCipher | None = None,
        *,
        max_entries: int = config.DIARY_MAX_ENTRIES,
        poll_interval: float = config.REMOTE_POLL_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.backend = backend
        self.identity = identity
        self.cipher = cipher or NullCipher()
        self.max_entries = max_entries
        self.poll_interval = poll_interval
        self._clock = clock
        self.user_id: Optional[str] = None
        self._subscribers: List[Subscriber] = []
        self._watch_task: Optional[asyncio.Task] = None
        self._fingerprint: Optional[Tuple[Tuple[str, int, str], ...]] = None

    @property
    def authenticated(self) -> bool:
        return self.user_id is not None

    async def authenticate(self) -> str:
        if self.user_id is None:
            self.user_id = await asyncio.to_thread(self.identity.get_or_create_user_id)
            logger.info("remote store authenticated as %s", self.user_id)
        return self.user_id

    async def check_connection(self) -> bool:
        try:
            await self._call(self.backend.ping)
        except RemoteUnavailableError as exc:
            logger.info("remote store unreachable: %s", exc)
            return False
        return True

    async def save(self, draft: DiaryDraft, timestamp_ms: Optional[int] = None) -> DiaryEntry:
        user_id = self._require_user()
        timestamp_ms = timestamp_ms if timestamp_ms is not None else int(self._clock() * 1000)
        now_iso = self._now_iso()
        document: Document = {
            "userId": user_id,
            "title": self.cipher.encrypt(draft.title, user_id),
            "content": self.cipher.encrypt(draft.content, user_id),
            "mood": draft.mood.model_dump(mode="json"),
            "weather": draft.weather.model_dump(mode="json"),
            "timestamp": timestamp_ms,
            "encrypted": True,
            "createdAt": now_iso,
            "updatedAt": now_iso,
        }
        doc_id = await self._call(self.backend.create, document)
        logger.info("saved diary %s to remote store", doc_id)
        await self._notify_changed()
        return DiaryEntry(id=doc_id, timestamp_ms=timestamp_ms, **draft.model_dump())

    async def list(self) -> List[DiaryEntry]:
        user_id = self._require_user()
        rows = await self._call(self.backend.query, user_id, self.max_entries)
        entries: List[DiaryEntry] = []
        for doc_id, data in rows:
            entry = self._to_entry(doc_id, data)
            if entry is not None:
                entries.append(decrypt_entry(entry, self.cipher, user_id))
        entries.sort(key=lambda item: item.timestamp_ms, reverse=True)
        return entries

    async def update(self, entry_id: str, changes: Dict[str, Any]) -> bool:
        """Apply ``changes`` to a stored entry. Returns False if it no longer exists."""
        user_id = self._require_user()
        data: Document = {}
        for field, value in changes.items():
            if field in ("title", "content"):
                data[field] = self.cipher.encrypt(value, user_id)
            elif field in ("mood", "weather"):
                data[field] = value.model_dump(mode="json") if hasattr(value, "model_dump") else value
            elif field == "timestamp_ms":
                data["timestamp"] = value
        data["updatedAt"] = self._now_iso()
        try:
            await self._call(self.backend.update, entry_id, data)
        except KeyError:
            logger.info("remote diary %s no longer exists", entry_id)
            return False
        await self._notify_changed()
        return True

    async def delete(self, entry_id: str) -> None:
        self._require_user()
        await self._call(self.backend.delete, entry_id)
        logger.info("deleted diary %s from remote store", entry_id)
        await self._notify_changed()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register ``callback`` for entry list changes. Call from a running event loop."""
        self._subscribers.append(callback)
        if self._watch_task is None or self._watch_task.done():
            self._watch_task = asyncio.get_running_loop().create_task(self._watch())

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)
            if not self._subscribers:
                self.stop_watching()

        return unsubscribe

    def stop_watching(self) -> None:
        if self._watch_task is not None and not self._watch_task.done():
            self._watch_task.cancel()
        self._watch_task = None
        self._fingerprint = None

    async def _watch(self) -> None:
        while self._subscribers:
            try:
                entries = await self.list()
            except RemoteUnavailableError as exc:
                logger.debug("remote poll skipped: %s", exc)
            else:
                fingerprint = _fingerprint(entries)
                if fingerprint != self._fingerprint:
                    self._fingerprint = fingerprint
                    self._dispatch(entries)
            await asyncio.sleep(self.poll_interval)

    async def _notify_changed(self) -> None:
        if not self._subscribers:
            return
        try:
            entries = await self.list()
        except RemoteUnavailableError as exc:
            logger.debug("could not refresh subscribers: %s", exc)
            return
        self._fingerprint = _fingerprint(entries)
        self._dispatch(entries)

    def _dispatch(self, entries: List[DiaryEntry]) -> None:
        for callback in list(self._subscribers):
            try:
                callback(entries)
            except Exception:
                logger.exception("remote subscriber failed")

    async def _call(self, func: Callable[..., Any], *args: Any) -> Any:
        try:
            return await asyncio.to_thread(func, *args)
        except RemoteUnavailableError:
            raise
        except (requests.RequestException, ValueError, TypeError) as exc:
            raise RemoteUnavailableError(f"remote store call failed: {exc}") from exc

    def _require_user(self) -> str:
        if self.user_id is None:
            raise RemoteUnavailableError("remote store is not authenticated")
        return self.user_id

    def _to_entry(self, doc_id: str, data: Document) -> Optional[DiaryEntry]:
        try:
            return DiaryEntry.model_validate(
                {
                    "id": doc_id,
                    "title": data.get("title", ""),
                    "content": data.get("content", ""),
                    "mood": data.get("mood"),
                    "weather": data.get("weather"),
                    "timestamp_ms": data.get("timestamp", 0),
                }
            )
        except ValidationError as exc:
            logger.warning("skipping malformed remote diary %s: %s", doc_id, exc.errors()[0].get("msg"))
            return None

    def _now_iso(self) -> str:
        return datetime.fromtimestamp(self._clock(), tz=timezone.utc).isoformat()


def _fingerprint(entries: List[DiaryEntry]) -> Tuple[Tuple[str, int, str], ...]:
    return tuple((entry.id, entry.timestamp_ms, entry.title) for entry in entries)


__all__ = ["RemoteDiaryStore"]
