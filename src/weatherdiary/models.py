from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .errors import ProviderError


class Condition(str, Enum):
    SUNNY = "sunny"
    CLOUDY = "cloudy"
    RAINY = "rainy"
    SNOWY = "snowy"
    CLEAR = "clear"
    NIGHT = "night"


class MoonPhase(str, Enum):
    NEW = "new"
    WAXING_CRESCENT = "waxing_crescent"
    FIRST_QUARTER = "first_quarter"
    WAXING_GIBBOUS = "waxing_gibbous"
    FULL = "full"
    WANING_GIBBOUS = "waning_gibbous"
    LAST_QUARTER = "last_quarter"
    WANING_CRESCENT = "waning_crescent"


MOON_PHASE_ICONS = {
    MoonPhase.NEW: "🌑",
    MoonPhase.WAXING_CRESCENT: "🌒",
    MoonPhase.FIRST_QUARTER: "🌓",
    MoonPhase.WAXING_GIBBOUS: "🌔",
    MoonPhase.FULL: "🌕",
    MoonPhase.WANING_GIBBOUS: "🌖",
    MoonPhase.LAST_QUARTER: "🌗",
    MoonPhase.WANING_CRESCENT: "🌘",
}


class StorageMode(str, Enum):
    LOCAL = "local"
    CLOUD = "cloud"
    HYBRID = "hybrid"


class WeatherRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    location: str
    description: str
    temperature_c: str
    condition: Condition
    icon: str
    humidity: Optional[str] = None
    wind_speed_kmh: Optional[str] = None
    moon_phase: Optional[MoonPhase] = None


class Mood(BaseModel):
    emoji: str
    type: str


MOOD_OPTIONS: List[Mood] = [
    Mood(emoji="😊", type="happy"),
    Mood(emoji="😢", type="sad"),
    Mood(emoji="🤩", type="excited"),
    Mood(emoji="😌", type="calm"),
    Mood(emoji="😤", type="angry"),
    Mood(emoji="😴", type="tired"),
]


class DiaryDraft(BaseModel):
    title: str
    content: str
    mood: Mood
    weather: WeatherRecord


class DiaryEntry(DiaryDraft):
    id: str
    timestamp_ms: int

    def to_draft(self) -> DiaryDraft:
        return DiaryDraft(title=self.title, content=self.content, mood=self.mood, weather=self.weather)


class Coordinates(BaseModel):
    model_config = ConfigDict(frozen=True)

    latitude: float
    longitude: float
    timestamp_ms: int = 0

    @property
    def location_key(self) -> str:
        return f"{self.latitude:.4f},{self.longitude:.4f}"


class WeatherCacheEntry(BaseModel):
    data: WeatherRecord
    timestamp_ms: int
    location_key: str


class StorageStatus(BaseModel):
    mode: StorageMode = StorageMode.LOCAL
    cloud_available: bool = False
    last_sync_ms: Optional[int] = None
    syncing: bool = False


class SyncResult(BaseModel):
    success: int = 0
    failed: int = 0
    skipped: int = 0


class ImportResult(BaseModel):
    success: bool
    message: str
    imported_count: int = 0


class DiaryExport(BaseModel):
    version: str
    export_time: str
    total_entries: int
    entries: List[DiaryEntry] = Field(default_factory=list)


@dataclass(frozen=True)
class ProviderResult:
    """Outcome of one provider call: either a record or a typed failure."""

    provider: str
    record: Optional[WeatherRecord] = None
    error: Optional[ProviderError] = None

    @property
    def ok(self) -> bool:
        return self.record is not None

    @classmethod
    def success(cls, provider: str, record: WeatherRecord) -> "ProviderResult":
        return cls(provider=provider, record=record)

    @classmethod
    def failure(cls, provider: str, error: ProviderError) -> "ProviderResult":
        return cls(provider=provider, error=error)
