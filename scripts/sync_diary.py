from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

# Ensure the project's src/ is on sys.path so this script runs without PYTHONPATH
_PROJECT_ROOT = Path(__file__).resolve().parents[1]
_SRC_PATH = _PROJECT_ROOT / "src"
if str(_SRC_PATH) not in sys.path:
    sys.path.insert(0, str(_SRC_PATH))

from weatherdiary import config
from weatherdiary.app import build_remote, build_storage, open_state
from weatherdiary.errors import RemoteUnavailableError, SyncInProgressError


async def run_sync() -> int:
    state = open_state()
    remote = build_remote(state)
    if remote is None:
        print("remote storage is not configured (set WEATHERDIARY_FIRESTORE_PROJECT)", file=sys.stderr)
        return 1
    store = build_storage(state, remote=remote)
    try:
        status = await store.initialize()
        await store.wait_for_background()
        try:
            result = await store.manual_sync()
        except (RemoteUnavailableError, SyncInProgressError) as exc:
            print(f"sync failed: {exc}", file=sys.stderr)
            return 1
        print(json.dumps({"status": store.status.model_dump(mode="json"), "result": result.model_dump()}, indent=2))
        return 0 if result.failed == 0 and status.cloud_available else 1
    finally:
        await store.close()


def main() -> int:
    parser = argparse.ArgumentParser(description="Upload local-only diary entries to the remote store")
    parser.parse_args()
    config.setup_logging()
    return asyncio.run(run_sync())


if __name__ == "__main__":
    sys.exit(main())
