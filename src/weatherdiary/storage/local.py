from __future__ import annotations

import json
import logging
import time
import uuid
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from .. import config
from ..errors import StorageQuotaError
from ..kvstore import KeyValueStore
from ..models import DiaryDraft, DiaryEntry, DiaryExport, ImportResult

logger = logging.getLogger(__name__)

ENTRIES_KEY = "weather_diary_entries"
EXPORT_VERSION = "2.1.0"


def _new_id() -> str:
    return uuid.uuid4().hex


class LocalDiaryStore:
    """Diary entries kept on this device, newest first, capped at ``max_entries``.

    When the key-value store runs out of quota the adapter logs it once and
    keeps working from memory for the rest of the session.
    """

    def __init__(
        self,
        state: KeyValueStore,
        *,
        max_entries: int = config.DIARY_MAX_ENTRIES,
        clock: Callable[[], float] = time.time,
        id_factory: Callable[[], str] = _new_id,
    ) -> None:
        self.state = state
        self.max_entries = max_entries
        self._clock = clock
        self._id_factory = id_factory
        self.memory_only = False
        self._entries: List[DiaryEntry] = self._load()

    def _load(self) -> List[DiaryEntry]:
        raw = self.state.get(ENTRIES_KEY, [])
        if not isinstance(raw, list):
            logger.warning("ignoring local diary data: expected a list")
            return []
        entries: List[DiaryEntry] = []
        for item in raw:
            try:
                entries.append(DiaryEntry.model_validate(item))
            except ValidationError as exc:
                logger.warning("skipping unreadable local diary entry: %s", exc.errors()[0].get("msg"))
        entries.sort(key=lambda entry: entry.timestamp_ms, reverse=True)
        return entries[: self.max_entries]

    def _persist(self) -> None:
        if self.memory_only:
            return
        payload = [entry.model_dump(mode="json") for entry in self._entries]
        try:
            self.state.set(ENTRIES_KEY, payload)
        except StorageQuotaError as exc:
            self.memory_only = True
            logger.error("local storage is full, keeping diary entries in memory for this session: %s", exc)

    def save(self, draft: DiaryDraft) -> DiaryEntry:
        entry = DiaryEntry(
            id=self._id_factory(),
            timestamp_ms=int(self._clock() * 1000),
            **draft.model_dump(),
        )
        return self.put(entry)

    def put(self, entry: DiaryEntry) -> DiaryEntry:
        """Store ``entry`` as-is, replacing any entry with the same id."""
        entries = [item for item in self._entries if item.id != entry.id]
        entries.append(entry)
        entries.sort(key=lambda item: item.timestamp_ms, reverse=True)
        self._entries = entries[: self.max_entries]
        self._persist()
        return entry

    def list(self) -> List[DiaryEntry]:
        return list(self._entries)

    def get(self, entry_id: str) -> Optional[DiaryEntry]:
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        return None

    def delete(self, entry_id: str) -> bool:
        remaining = [entry for entry in self._entries if entry.id != entry_id]
        if len(remaining) == len(self._entries):
            return False
        self._entries = remaining
        self._persist()
        return True

    def update(self, entry_id: str, changes: Dict[str, Any]) -> Optional[DiaryEntry]:
        current = self.get(entry_id)
        if current is None:
            return None
        allowed = {key: value for key, value in changes.items() if key in DiaryEntry.model_fields and key != "id"}
        updated = DiaryEntry.model_validate({**current.model_dump(), **_dump_models(allowed)})
        self._entries = [updated if entry.id == entry_id else entry for entry in self._entries]
        self._entries.sort(key=lambda item: item.timestamp_ms, reverse=True)
        self._persist()
        return updated

    def clear(self) -> None:
        self._entries = []
        if self.memory_only:
            return
        try:
            self.state.remove(ENTRIES_KEY)
        except StorageQuotaError as exc:
            logger.warning("could not clear local diary data: %s", exc)

    def count(self) -> int:
        return len(self._entries)

    def export_data(self) -> str:
        export = DiaryExport(
            version=EXPORT_VERSION,
            export_time=datetime.fromtimestamp(self._clock()).isoformat(),
            total_entries=len(self._entries),
            entries=list(self._entries),
        )
        return json.dumps(export.model_dump(mode="json"), ensure_ascii=False, indent=2)

    def import_data(self, json_text: str) -> ImportResult:
        try:
            payload = json.loads(json_text)
        except json.JSONDecodeError:
            return ImportResult(success=False, message="数据解析失败，请检查文件格式")
        raw_entries = payload.get("entries") if isinstance(payload, dict) else None
        if not isinstance(raw_entries, list):
            return ImportResult(success=False, message="数据格式不正确")

        known = {entry.id for entry in self._entries}
        imported: List[DiaryEntry] = []
        for item in raw_entries:
            try:
                entry = DiaryEntry.model_validate(item)
            except ValidationError:
                continue
            if entry.id in known or not entry.title or not entry.content:
                continue
            known.add(entry.id)
            imported.append(entry)

        if not imported:
            return ImportResult(success=False, message="没有发现新的日记数据")
        merged = self._entries + imported
        merged.sort(key=lambda item: item.timestamp_ms, reverse=True)
        self._entries = merged[: self.max_entries]
        self._persist()
        logger.info("imported %d diary entries", len(imported))
        return ImportResult(success=True, message=f"成功导入 {len(imported)} 条日记", imported_count=len(imported))


def _dump_models(values: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value.model_dump() if hasattr(value, "model_dump") else value for key, value in values.items()}


__all__ = ["ENTRIES_KEY", "LocalDiaryStore"]
