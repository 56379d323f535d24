from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Callable, Coroutine, Dict, List, Optional, Set, Tuple

from .. import config
from ..errors import RemoteUnavailableError, StorageQuotaError, SyncInProgressError
from ..events import CLOUD_DATA_UPDATED, STORAGE_STATUS_CHANGED, EventBus
from ..kvstore import KeyValueStore
from ..models import DiaryDraft, DiaryEntry, StorageMode, StorageStatus, SyncResult
from .local import LocalDiaryStore
from .merge import content_signature, local_only, merge_entries
from .remote import RemoteDiaryStore

logger = logging.getLogger(__name__)

LAST_SYNC_KEY = "last_sync_timestamp"
INITIALIZED_KEY = "hybrid_storage_initialized"


class HybridDiaryStore:
    """Diary storage that writes through a remote store and keeps a local replica.

    Modes:

    * ``local``: remote missing or unreachable, only the local store is used.
    * ``hybrid``: remote is the source of truth; every remote write is
      mirrored into the local store so the diary survives going offline.
    * ``cloud``: remote only, entered through :meth:`switch_mode`.

    Any remote failure downgrades ``hybrid``/``cloud`` to ``local`` and the
    operation completes locally. Reconnects and sync passes run as tracked
    background tasks; :meth:`wait_for_background` awaits them.
    """

    def __init__(
        self,
        local: LocalDiaryStore,
        remote: RemoteDiaryStore | None = None,
        *,
        state: KeyValueStore | None = None,
        events: EventBus | None = None,
        clock: Callable[[], float] = time.time,
        cache_ttl: float = config.READ_CACHE_TTL_SECONDS,
        sync_cooldown: float = config.SYNC_COOLDOWN_SECONDS,
        recent_sync_window: float = config.RECENT_SYNC_WINDOW_SECONDS,
        sync_stale_after: float = config.SYNC_STALE_SECONDS,
        reconnect_delay: float = config.RECONNECT_DELAY_SECONDS,
    ) -> None:
        self.local = local
        self.remote = remote
        self.state = state if state is not None else local.state
        self.events = events or EventBus()
        self._clock = clock
        self.cache_ttl = cache_ttl
        self.sync_cooldown = sync_cooldown
        self.recent_sync_window = recent_sync_window
        self.sync_stale_after = sync_stale_after
        self.reconnect_delay = reconnect_delay

        last_sync = self.state.get(LAST_SYNC_KEY)
        self.status = StorageStatus(last_sync_ms=last_sync if isinstance(last_sync, int) else None)
        self._preferred_mode = StorageMode.HYBRID if remote is not None else StorageMode.LOCAL
        self._read_cache: Optional[Tuple[List[DiaryEntry], float]] = None
        self._tasks: Set[asyncio.Task] = set()
        self._reconnect_task: Optional[asyncio.Task] = None
        self._last_reconnect_at: Optional[float] = None
        self._upload_pending = False
        self._pending_deletes: Dict[str, Optional[str]] = {}
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._listen = False

    # -- lifecycle -------------------------------------------------------

    async def initialize(self) -> StorageStatus:
        if self.remote is None:
            logger.info("no remote store configured, using local storage")
            self._set_status(mode=StorageMode.LOCAL, cloud_available=False)
            return self.status
        if not await self._connect():
            logger.warning("remote store unavailable at startup, using local storage")
            self._set_status(mode=StorageMode.LOCAL, cloud_available=False)
            return self.status
        self._set_status(mode=StorageMode.HYBRID, cloud_available=True)
        if self._needs_initial_sync():
            self._spawn(self._background_sync())
        self._persist(INITIALIZED_KEY, True)
        return self.status

    async def reinitialize_cloud(self) -> StorageStatus:
        self._stop_listener()
        self._last_reconnect_at = None
        self.invalidate_cache()
        return await self.initialize()

    def reset_state(self) -> None:
        for key in (LAST_SYNC_KEY, INITIALIZED_KEY):
            try:
                self.state.remove(key)
            except StorageQuotaError as exc:
                logger.warning("could not reset %s: %s", key, exc)
        self._stop_listener()
        self._upload_pending = False
        self._listen = False
        self._pending_deletes.clear()
        self._last_reconnect_at = None
        self.invalidate_cache()
        self._set_status(mode=StorageMode.LOCAL, cloud_available=False, last_sync_ms=None, syncing=False)

    async def wait_for_background(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        self._stop_listener()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    # -- diary operations ------------------------------------------------

    async def save(self, draft: DiaryDraft) -> DiaryEntry:
        self.invalidate_cache()
        mode = self.status.mode
        if mode is not StorageMode.LOCAL and self._remote_ready():
            assert self.remote is not None
            try:
                entry = await self.remote.save(draft)
            except RemoteUnavailableError as exc:
                self._downgrade(exc)
                entry = self.local.save(draft)
                self._upload_pending = True
                self.schedule_reconnect()
                return entry
            self._mark_synced()
            if mode is StorageMode.HYBRID:
                self.local.put(entry)
            return entry

        entry = self.local.save(draft)
        if self.remote is not None and not self.status.cloud_available:
            self._upload_pending = True
            self.schedule_reconnect()
        return entry

    async def list(self) -> List[DiaryEntry]:
        now = self._clock()
        if self._read_cache is not None and now - self._read_cache[1] < self.cache_ttl:
            return list(self._read_cache[0])

        mode = self.status.mode
        if mode is not StorageMode.LOCAL and self._remote_ready():
            assert self.remote is not None
            try:
                remote_entries = await self.remote.list()
            except RemoteUnavailableError as exc:
                self._downgrade(exc)
                self.schedule_reconnect()
                entries = self.local.list()
            else:
                if mode is StorageMode.CLOUD:
                    entries = remote_entries
                else:
                    entries = merge_entries(remote_entries, self.local.list())
        else:
            entries = self.local.list()

        entries = self._without_pending_deletes(entries)
        self._read_cache = (entries, now)
        return list(entries)

    async def delete(self, entry_id: str) -> bool:
        """Delete locally and return; the remote delete runs in the background.

        An id unknown to the local replica and the read cache is looked up
        remotely first. Returns False when no replica holds the entry.
        """
        known = self.local.get(entry_id) or self._cached_entry(entry_id)
        if known is None and self.status.mode is not StorageMode.LOCAL and self._remote_ready():
            known = await self._remote_entry(entry_id)
        signature = content_signature(known) if known is not None else None
        self.invalidate_cache()
        removed = self.local.delete(entry_id)
        if signature is not None:
            for replica in self.local.list():
                if content_signature(replica) == signature:
                    removed = self.local.delete(replica.id) or removed
        if known is not None and self.status.mode is not StorageMode.LOCAL and self._remote_ready():
            self._pending_deletes[entry_id] = signature
            self._spawn(self._remote_delete(entry_id, signature))
            return True
        return removed

    async def update(self, entry_id: str, changes: Dict[str, Any]) -> Optional[DiaryEntry]:
        self.invalidate_cache()
        updated = self.local.update(entry_id, changes)
        if self.status.mode is StorageMode.LOCAL or not self._remote_ready():
            return updated
        assert self.remote is not None
        try:
            found = await self.remote.update(entry_id, changes)
            if updated is None and found:
                updated = await self._remote_entry(entry_id)
        except RemoteUnavailableError as exc:
            self._downgrade(exc)
            self.schedule_reconnect()
        return updated

    async def manual_sync(self) -> SyncResult:
        if self.status.syncing:
            raise SyncInProgressError("a sync is already running")
        if self.remote is None or not self.status.cloud_available:
            raise RemoteUnavailableError("remote store is not available")
        return await self._sync_pass(force=True)

    async def switch_mode(self, mode: StorageMode) -> StorageStatus:
        mode = StorageMode(mode)
        if mode is not StorageMode.LOCAL and not self._remote_ready():
            raise RemoteUnavailableError(f"cannot switch to {mode.value} mode: remote store is not available")
        self._preferred_mode = mode
        self.invalidate_cache()
        self._set_status(mode=mode)
        self._listen = mode is StorageMode.HYBRID
        if self._listen:
            self._start_listener()
        else:
            self._stop_listener()
        logger.info("storage mode switched to %s", mode.value)
        return self.status

    def should_sync(self) -> bool:
        if not self.status.cloud_available:
            return False
        if self.status.last_sync_ms is None:
            return True
        return self._now_ms() - self.status.last_sync_ms > self.sync_stale_after * 1000

    def invalidate_cache(self) -> None:
        self._read_cache = None

    # -- background work -------------------------------------------------

    def schedule_reconnect(self) -> Optional[asyncio.Task]:
        """Start a background reconnect-and-sync unless one is running or the cooldown applies."""
        if self.remote is None or self.status.syncing:
            return None
        if self._reconnect_task is not None and not self._reconnect_task.done():
            return None
        now = self._clock()
        if self._last_reconnect_at is not None and now - self._last_reconnect_at < self.sync_cooldown:
            logger.debug("reconnect skipped, cooldown active")
            return None
        self._last_reconnect_at = now
        self._reconnect_task = self._spawn(self._reconnect_and_sync())
        return self._reconnect_task

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _reconnect_and_sync(self) -> None:
        await asyncio.sleep(self.reconnect_delay)
        if not await self._connect():
            logger.info("reconnect attempt failed, staying in local mode")
            return
        restored = self._preferred_mode if self._preferred_mode is not StorageMode.LOCAL else self.status.mode
        self._set_status(mode=restored, cloud_available=True)
        logger.info("remote store reachable again, mode %s", restored.value)
        if restored is StorageMode.HYBRID and self._listen:
            self._start_listener()
        await self._background_sync()

    async def _background_sync(self) -> Optional[SyncResult]:
        try:
            return await self._sync_pass(force=False)
        except (SyncInProgressError, RemoteUnavailableError) as exc:
            logger.info("background sync skipped: %s", exc)
            return None

    async def _sync_pass(self, *, force: bool) -> SyncResult:
        if self.status.syncing:
            raise SyncInProgressError("a sync is already running")
        if self.remote is None or not self.status.cloud_available:
            raise RemoteUnavailableError("remote store is not available")
        if not force and not self._upload_pending and self.state.get(INITIALIZED_KEY) and self._recently_synced():
            logger.debug("synced within the last %.0fs and nothing pending", self.recent_sync_window)
            return SyncResult(skipped=self.local.count())

        self._set_status(syncing=True)
        try:
            try:
                remote_entries = await self.remote.list()
            except RemoteUnavailableError as exc:
                self._downgrade(exc)
                raise
            local_entries = self.local.list()
            if not force and not self._upload_pending and len(remote_entries) >= len(local_entries):
                logger.debug("remote holds %d entries, local %d: nothing to upload", len(remote_entries), len(local_entries))
                self._mark_synced()
                return SyncResult(skipped=len(local_entries))

            pending = local_only(local_entries, remote_entries)
            result = SyncResult(skipped=len(local_entries) - len(pending))
            for index, entry in enumerate(reversed(pending)):
                try:
                    await self.remote.save(entry.to_draft(), timestamp_ms=entry.timestamp_ms)
                except RemoteUnavailableError as exc:
                    result.failed += len(pending) - index
                    self._downgrade(exc)
                    break
                result.success += 1
        finally:
            self._set_status(syncing=False)

        if result.failed == 0:
            self._upload_pending = False
            self._mark_synced()
            self._persist(INITIALIZED_KEY, True)
        self.invalidate_cache()
        logger.info("sync finished: %d uploaded, %d failed, %d skipped", result.success, result.failed, result.skipped)
        return result

    async def _remote_delete(self, entry_id: str, signature: Optional[str]) -> None:
        assert self.remote is not None
        try:
            targets = {entry_id}
            if signature is not None:
                targets.update(
                    entry.id for entry in await self.remote.list() if content_signature(entry) == signature
                )
            for target in targets:
                await self.remote.delete(target)
        except RemoteUnavailableError as exc:
            logger.warning("remote delete of %s failed, kept deleted locally: %s", entry_id, exc)
            return
        self._pending_deletes.pop(entry_id, None)
        self.invalidate_cache()

    # -- helpers -----------------------------------------------------------

    async def _connect(self) -> bool:
        assert self.remote is not None
        try:
            await self.remote.authenticate()
        except (RemoteUnavailableError, StorageQuotaError) as exc:
            logger.info("remote authentication failed: %s", exc)
            return False
        return await self.remote.check_connection()

    async def _remote_entry(self, entry_id: str) -> Optional[DiaryEntry]:
        assert self.remote is not None
        try:
            entries = await self.remote.list()
        except RemoteUnavailableError as exc:
            self._downgrade(exc)
            self.schedule_reconnect()
            return None
        return next((entry for entry in entries if entry.id == entry_id), None)

    def _remote_ready(self) -> bool:
        return self.remote is not None and self.status.cloud_available

    def _needs_initial_sync(self) -> bool:
        return not self.state.get(INITIALIZED_KEY) or self.local.count() > 0

    def _recently_synced(self) -> bool:
        last = self.status.last_sync_ms
        return last is not None and self._now_ms() - last < self.recent_sync_window * 1000

    def _downgrade(self, exc: Exception) -> None:
        logger.warning("remote store failed, falling back to local mode: %s", exc)
        self._stop_listener()
        self.invalidate_cache()
        self._set_status(mode=StorageMode.LOCAL, cloud_available=False)

    def _mark_synced(self) -> None:
        now_ms = self._now_ms()
        self._set_status(last_sync_ms=now_ms)
        self._persist(LAST_SYNC_KEY, now_ms)

    def _persist(self, key: str, value: Any) -> None:
        try:
            self.state.set(key, value)
        except StorageQuotaError as exc:
            logger.warning("could not persist %s: %s", key, exc)

    def _set_status(self, **changes: Any) -> None:
        updated = self.status.model_copy(update=changes)
        if updated == self.status:
            return
        self.status = updated
        self.events.emit(STORAGE_STATUS_CHANGED, updated)

    def _without_pending_deletes(self, entries: List[DiaryEntry]) -> List[DiaryEntry]:
        if not self._pending_deletes:
            return entries
        signatures = {sig for sig in self._pending_deletes.values() if sig is not None}
        return [
            entry
            for entry in entries
            if entry.id not in self._pending_deletes and content_signature(entry) not in signatures
        ]

    def _cached_entry(self, entry_id: str) -> Optional[DiaryEntry]:
        if self._read_cache is None:
            return None
        return next((entry for entry in self._read_cache[0] if entry.id == entry_id), None)

    def _start_listener(self) -> None:
        if self._unsubscribe is None and self.remote is not None:
            self._unsubscribe = self.remote.subscribe(self._on_remote_change)

    def _stop_listener(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_remote_change(self, entries: List[DiaryEntry]) -> None:
        self.invalidate_cache()
        self.events.emit(CLOUD_DATA_UPDATED, entries)

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)


__all__ = ["HybridDiaryStore", "INITIALIZED_KEY", "LAST_SYNC_KEY"]
