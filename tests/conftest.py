import json
from pathlib import Path

import pytest

from weatherdiary.models import Condition, DiaryDraft, Mood, WeatherRecord

FIXTURES = Path(__file__).parent / "fixtures"


class FakeClock:
    """Settable epoch-seconds clock shared by the storage components under test."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def load_fixture():
    def _load(name):
        return json.loads((FIXTURES / name).read_text(encoding="utf-8"))

    return _load


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def weather_record():
    return WeatherRecord(
        location="北京市",
        description="晴天",
        temperature_c="22",
        condition=Condition.SUNNY,
        icon="☀️",
    )


@pytest.fixture
def make_draft(weather_record):
    def _make(title="Trip", content="Walked along the river until sunset."):
        return DiaryDraft(
            title=title,
            content=content,
            mood=Mood(emoji="😊", type="happy"),
            weather=weather_record,
        )

    return _make
