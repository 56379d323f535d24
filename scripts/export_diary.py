from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Ensure the project's src/ is on sys.path so this script runs without PYTHONPATH
_PROJECT_ROOT = Path(__file__).resolve().parents[1]
_SRC_PATH = _PROJECT_ROOT / "src"
if str(_SRC_PATH) not in sys.path:
    sys.path.insert(0, str(_SRC_PATH))

from weatherdiary import config
from weatherdiary.app import open_state
from weatherdiary.export import write_backup
from weatherdiary.reporting.html_report import render_diary_html
from weatherdiary.storage.local import LocalDiaryStore


def main() -> int:
    parser = argparse.ArgumentParser(description="Back up, restore or render the local diary")
    parser.add_argument("--backup-dir", type=Path, help="Folder for the JSON backup")
    parser.add_argument("--import", dest="import_path", type=Path, help="Merge entries from a JSON backup")
    parser.add_argument("--html", type=Path, help="Also render an HTML report to this path")
    parser.add_argument(
        "--template-dir",
        type=Path,
        default=config.TEMPLATE_DIR,
        help="Template directory containing diary_report.html",
    )
    args = parser.parse_args()

    config.setup_logging()
    store = LocalDiaryStore(open_state())

    if args.import_path:
        result = store.import_data(args.import_path.read_text(encoding="utf-8"))
        print(result.message)
        if not result.success:
            return 1

    path = write_backup(store, args.backup_dir)
    print(f"backup written to {path}")

    if args.html:
        args.html.parent.mkdir(parents=True, exist_ok=True)
        render_diary_html(store.list(), template_dir=args.template_dir, output_path=args.html)
        print(f"report written to {args.html}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
