from __future__ import annotations

import datetime as dt
from pathlib import Path
from typing import Iterable

from jinja2 import Environment, FileSystemLoader, select_autoescape

from ..export import group_by_day
from ..models import DiaryEntry
from ..moon import moon_phase_name


def _format_timestamp(timestamp_ms: int) -> str:
    return dt.datetime.fromtimestamp(timestamp_ms / 1000).strftime("%Y-%m-%d %H:%M")


def render_diary_html(entries: Iterable[DiaryEntry], *, template_dir: Path, output_path: Path) -> None:
    env = Environment(
        loader=FileSystemLoader(str(template_dir)),
        autoescape=select_autoescape(["html", "xml"]),
    )
    env.filters["datetime"] = _format_timestamp
    env.filters["moon_name"] = moon_phase_name
    template = env.get_template("diary_report.html")
    entries = list(entries)
    html = template.render(days=group_by_day(entries), total=len(entries))
    output_path.write_text(html, encoding="utf-8")


__all__ = ["render_diary_html"]
