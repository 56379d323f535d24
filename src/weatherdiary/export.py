from __future__ import annotations

import datetime as dt
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Tuple

from . import config
from .models import DiaryEntry
from .storage.local import LocalDiaryStore

logger = logging.getLogger(__name__)


def backup_filename(day: dt.date) -> str:
    return f"天气日记备份_{day.isoformat()}.json"


def write_backup(store: LocalDiaryStore, folder: Path | None = None, *, day: dt.date | None = None) -> Path:
    """Write the local diary export to ``folder`` and return the file path."""
    folder = folder or config.DATA_DIR / "backups"
    folder.mkdir(parents=True, exist_ok=True)
    path = folder / backup_filename(day or dt.date.today())
    path.write_text(store.export_data(), encoding="utf-8")
    logger.info("diary backup written to %s", path)
    return path


def group_by_day(entries: Iterable[DiaryEntry]) -> List[Tuple[dt.date, List[DiaryEntry]]]:
    """Group entries by local calendar day, newest day first."""
    groups: Dict[dt.date, List[DiaryEntry]] = {}
    for entry in sorted(entries, key=lambda item: item.timestamp_ms, reverse=True):
        day = dt.datetime.fromtimestamp(entry.timestamp_ms / 1000).date()
        groups.setdefault(day, []).append(entry)
    return list(groups.items())


__all__ = ["backup_filename", "group_by_day", "write_backup"]
