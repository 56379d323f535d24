"""Lookup tables that normalize provider weather codes, plus the night override."""

from __future__ import annotations

import datetime as dt
from typing import Dict, Optional, Tuple

from ..models import Condition, WeatherRecord
from ..moon import calculate_moon_phase, moon_phase_icon

# (condition, day icon, night icon). A night icon of None means the moon-phase glyph.
ConditionEntry = Tuple[Condition, str, Optional[str]]

NIGHT_PREFIX = "夜晚 - "
UNMAPPED_DAY: ConditionEntry = (Condition.CLOUDY, "🌤️", None)

_SUNNY: ConditionEntry = (Condition.SUNNY, "☀️", None)
_PARTLY: ConditionEntry = (Condition.CLOUDY, "⛅", "☁️")
_CLOUD: ConditionEntry = (Condition.CLOUDY, "☁️", "☁️")
_FOG: ConditionEntry = (Condition.CLOUDY, "🌫️", "🌫️")
_DUST: ConditionEntry = (Condition.CLOUDY, "💨", "💨")
_BREEZE: ConditionEntry = (Condition.CLOUDY, "🌬️", "🌬️")
_SHOWER: ConditionEntry = (Condition.RAINY, "🌦️", "🌦️")
_RAIN: ConditionEntry = (Condition.RAINY, "🌧️", "🌧️")
_STORM: ConditionEntry = (Condition.RAINY, "⛈️", "⛈️")
_TWISTER: ConditionEntry = (Condition.RAINY, "🌪️", "🌪️")
_LIGHT_SNOW: ConditionEntry = (Condition.SNOWY, "🌨️", "🌨️")
_SNOW: ConditionEntry = (Condition.SNOWY, "❄️", "❄️")

AMAP_CONDITIONS: Dict[str, ConditionEntry] = {
    "晴": _SUNNY,
    "平静": _SUNNY,
    "少云": _PARTLY,
    "晴间多云": _PARTLY,
    "多云": _CLOUD,
    "阴": _CLOUD,
    "有风": _BREEZE,
    "微风": _BREEZE,
    "和风": _BREEZE,
    "清风": _BREEZE,
    "强风/劲风": _DUST,
    "疾风": _DUST,
    "大风": _DUST,
    "烈风": _DUST,
    "风暴": _STORM,
    "狂爆风": _STORM,
    "飓风": _TWISTER,
    "热带风暴": _TWISTER,
    "龙卷风": _TWISTER,
    "霾": _FOG,
    "中度霾": _FOG,
    "重度霾": _FOG,
    "严重霾": _FOG,
    "雾": _FOG,
    "浓雾": _FOG,
    "强浓雾": _FOG,
    "轻雾": _FOG,
    "大雾": _FOG,
    "特强浓雾": _FOG,
    "浮尘": _FOG,
    "扬沙": _FOG,
    "沙尘暴": (Condition.CLOUDY, "🌪️", "🌪️"),
    "强沙尘暴": (Condition.CLOUDY, "🌪️", "🌪️"),
    "阵雨": _RAIN,
    "雨": _RAIN,
    "小雨": _RAIN,
    "中雨": _RAIN,
    "大雨": _RAIN,
    "小雨-中雨": _RAIN,
    "中雨-大雨": _RAIN,
    "毛毛雨/细雨": _SHOWER,
    "雷阵雨": _STORM,
    "雷阵雨并伴有冰雹": _STORM,
    "暴雨": _STORM,
    "大暴雨": _STORM,
    "特大暴雨": _STORM,
    "强阵雨": _STORM,
    "强雷阵雨": _STORM,
    "极端降雨": _STORM,
    "大雨-暴雨": _STORM,
    "暴雨-大暴雨": _STORM,
    "大暴雨-特大暴雨": _STORM,
    "冰雹": (Condition.RAINY, "🧊", "🧊"),
    "雨雪天气": _LIGHT_SNOW,
    "雨夹雪": _LIGHT_SNOW,
    "阵雨夹雪": _LIGHT_SNOW,
    "阵雪": _LIGHT_SNOW,
    "小雪": _LIGHT_SNOW,
    "小雪-中雪": _LIGHT_SNOW,
    "冻雨": (Condition.SNOWY, "🧊", "🧊"),
    "雪": _SNOW,
    "中雪": _SNOW,
    "大雪": _SNOW,
    "暴雪": _SNOW,
    "中雪-大雪": _SNOW,
    "大雪-暴雪": _SNOW,
    "热": (Condition.SUNNY, "🔥", "🔥"),
    "冷": (Condition.CLOUDY, "🥶", "🥶"),
    "未知": (Condition.CLOUDY, "❓", "❓"),
}

QWEATHER_CONDITIONS: Dict[str, ConditionEntry] = {
    "100": _SUNNY,
    "101": _PARTLY,
    "102": _CLOUD,
    "103": _CLOUD,
    "104": _CLOUD,
    "300": _SHOWER,
    "301": _RAIN,
    "302": _STORM,
    "303": _STORM,
    "304": _STORM,
    "305": _RAIN,
    "306": _RAIN,
    "307": _RAIN,
    "308": _RAIN,
    "309": _RAIN,
    "310": _RAIN,
    "311": _RAIN,
    "312": _RAIN,
    "313": _RAIN,
    "400": _LIGHT_SNOW,
    "401": _LIGHT_SNOW,
    "402": _SNOW,
    "403": _SNOW,
    "404": _LIGHT_SNOW,
    "405": _LIGHT_SNOW,
    "406": _LIGHT_SNOW,
    "407": _LIGHT_SNOW,
    "500": _FOG,
    "501": _FOG,
    "502": _FOG,
    "503": _DUST,
    "504": _DUST,
    "507": _DUST,
    "508": _DUST,
}

QWEATHER_DESCRIPTIONS: Dict[str, str] = {
    "100": "晴天", "101": "多云", "102": "少云", "103": "晴间多云", "104": "阴天",
    "300": "阵雨", "301": "强阵雨", "302": "雷阵雨", "303": "强雷阵雨", "304": "雷阵雨伴有冰雹",
    "305": "小雨", "306": "中雨", "307": "大雨", "308": "极大雨", "309": "毛毛雨",
    "310": "暴雨", "311": "大暴雨", "312": "特大暴雨", "313": "冻雨",
    "400": "小雪", "401": "中雪", "402": "大雪", "403": "暴雪", "404": "雨夹雪",
    "405": "雨雪天气", "406": "阵雨夹雪", "407": "阵雪",
    "500": "薄雾", "501": "雾", "502": "霾", "503": "扬沙", "504": "浮尘",
    "507": "沙尘暴", "508": "强沙尘暴",
}

WTTR_CONDITIONS: Dict[str, ConditionEntry] = {
    "Sunny": _SUNNY,
    "Clear": (Condition.CLEAR, "🌙", None),
    "Partly cloudy": _PARTLY,
    "Cloudy": _CLOUD,
    "Overcast": _CLOUD,
    "Light rain": _RAIN,
    "Moderate rain": _RAIN,
    "Heavy rain": _STORM,
    "Thunderstorm": _STORM,
    "Light snow": _LIGHT_SNOW,
    "Heavy snow": _SNOW,
}


def is_night_time(now: dt.datetime, force_night: bool = False) -> bool:
    return force_night or now.hour >= 18 or now.hour < 6


def build_record(
    *,
    code: str,
    table: Dict[str, ConditionEntry],
    location: str,
    description: str,
    temperature: object,
    now: dt.datetime,
    force_night: bool = False,
    humidity: object = None,
    wind: object = None,
) -> WeatherRecord:
    """Normalize one provider reading into a :class:`WeatherRecord`.

    ``code`` selects the table row; ``description`` is the already localized
    text. Missing humidity or wind stay ``None`` rather than being invented.
    """
    phase = calculate_moon_phase(now.date())
    night = is_night_time(now, force_night)
    condition, day_icon, night_icon = table.get(code, UNMAPPED_DAY)
    if night:
        condition = Condition.NIGHT
        icon = night_icon if night_icon is not None else moon_phase_icon(phase)
        description = f"{NIGHT_PREFIX}{description}"
    else:
        icon = day_icon
    return WeatherRecord(
        location=location,
        description=description,
        temperature_c=_as_text(temperature) or "0",
        condition=condition,
        icon=icon,
        humidity=_as_text(humidity),
        wind_speed_kmh=_as_text(wind),
        moon_phase=phase,
    )


def _as_text(value: object) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (list, dict)):
        return None
    text = str(value).strip()
    return text or None


__all__ = [
    "AMAP_CONDITIONS",
    "NIGHT_PREFIX",
    "QWEATHER_CONDITIONS",
    "QWEATHER_DESCRIPTIONS",
    "WTTR_CONDITIONS",
    "build_record",
    "is_night_time",
]
