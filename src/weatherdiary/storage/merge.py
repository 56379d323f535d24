"""Deduplication of local and remote diary replicas.

The two stores assign different ids to the same entry, so entries are
matched by content instead: the primary signature is timestamp + title +
the first 50 characters of content, the secondary one is title + timestamp
floored to the minute.
"""

from __future__ import annotations

from typing import Dict, Iterable, List

from ..models import DiaryEntry

SIGNATURE_CONTENT_CHARS = 50


def content_signature(entry: DiaryEntry) -> str:
    return f"{entry.timestamp_ms}_{entry.title}_{entry.content[:SIGNATURE_CONTENT_CHARS]}"


def title_minute_signature(entry: DiaryEntry) -> str:
    return f"{entry.title}_{entry.timestamp_ms // 60_000}"


def _newest_first(entries: Iterable[DiaryEntry]) -> List[DiaryEntry]:
    return sorted(entries, key=lambda entry: entry.timestamp_ms, reverse=True)


def merge_entries(remote: Iterable[DiaryEntry], local: Iterable[DiaryEntry]) -> List[DiaryEntry]:
    """Merge two replicas into one list, newest first.

    When a remote and a local entry match, the one with the greater timestamp
    is kept and the remote one wins ties. Nothing is uploaded or deleted here.
    """
    kept: Dict[str, DiaryEntry] = {}
    from_remote: Dict[str, bool] = {}
    local_by_minute: Dict[str, str] = {}

    for entry in local:
        signature = content_signature(entry)
        existing = kept.get(signature)
        if existing is not None and existing.timestamp_ms >= entry.timestamp_ms:
            continue
        kept[signature] = entry
        from_remote[signature] = False
        local_by_minute.setdefault(title_minute_signature(entry), signature)

    def take(target: str, entry: DiaryEntry) -> None:
        existing = kept.get(target)
        if existing is not None and existing.timestamp_ms > entry.timestamp_ms:
            return
        kept.pop(target, None)
        from_remote.pop(target, None)
        signature = content_signature(entry)
        kept[signature] = entry
        from_remote[signature] = True

    unmatched: List[DiaryEntry] = []
    for entry in remote:
        signature = content_signature(entry)
        if signature in kept:
            take(signature, entry)
        else:
            unmatched.append(entry)

    for entry in unmatched:
        target = local_by_minute.get(title_minute_signature(entry))
        if target is not None and target in kept and not from_remote[target]:
            take(target, entry)
        else:
            take(content_signature(entry), entry)

    by_id: Dict[str, DiaryEntry] = {}
    remote_ids = set()
    for signature, entry in kept.items():
        if entry.id in by_id and entry.id in remote_ids:
            continue
        by_id[entry.id] = entry
        if from_remote[signature]:
            remote_ids.add(entry.id)
    return _newest_first(by_id.values())


def local_only(local: Iterable[DiaryEntry], remote: Iterable[DiaryEntry]) -> List[DiaryEntry]:
    """Local entries with no counterpart in ``remote`` (candidates for upload)."""
    remote_list = list(remote)
    primary = {content_signature(entry) for entry in remote_list}
    secondary = {title_minute_signature(entry) for entry in remote_list}
    return [
        entry
        for entry in local
        if content_signature(entry) not in primary and title_minute_signature(entry) not in secondary
    ]


__all__ = ["content_signature", "local_only", "merge_entries", "title_minute_signature"]
