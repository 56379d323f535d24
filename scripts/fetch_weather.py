from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

# Ensure the project's src/ is on sys.path so this script runs without PYTHONPATH
_PROJECT_ROOT = Path(__file__).resolve().parents[1]
_SRC_PATH = _PROJECT_ROOT / "src"
if str(_SRC_PATH) not in sys.path:
    sys.path.insert(0, str(_SRC_PATH))

from weatherdiary import config
from weatherdiary.app import build_router, open_state
from weatherdiary.geo import StaticLocator


def main() -> int:
    parser = argparse.ArgumentParser(description="Resolve the current weather for a position")
    parser.add_argument("--lat", type=float, help="Latitude (defaults to IP geolocation)")
    parser.add_argument("--lon", type=float, help="Longitude (defaults to IP geolocation)")
    parser.add_argument("--night", action="store_true", help="Force the night presentation")
    parser.add_argument("--check-config", action="store_true", help="Only report provider key configuration")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args()

    config.setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    if args.check_config:
        report = config.validate_api_config()
        print(json.dumps(report, indent=2, ensure_ascii=False))
        return 0 if report["is_valid"] else 1

    if (args.lat is None) != (args.lon is None):
        parser.error("--lat and --lon must be given together")
    locator = StaticLocator(args.lat, args.lon) if args.lat is not None else None

    state = open_state()
    router = build_router(state, locator=locator, force_night=args.night or None)
    record = asyncio.run(router.get_weather())
    print(json.dumps(record.model_dump(mode="json"), indent=2, ensure_ascii=False))
    print(f"source: {router.current_source()}", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
