from __future__ import annotations

import datetime as dt
import math

from .models import MOON_PHASE_ICONS, MoonPhase

# Julian day of the new moon on 2000-01-06.
_REFERENCE_NEW_MOON_JD = 2451550.1
_LUNAR_CYCLE_DAYS = 29.53058867

_PHASE_BOUNDARIES = [
    (0.0625, MoonPhase.NEW),
    (0.1875, MoonPhase.WAXING_CRESCENT),
    (0.3125, MoonPhase.FIRST_QUARTER),
    (0.4375, MoonPhase.WAXING_GIBBOUS),
    (0.5625, MoonPhase.FULL),
    (0.6875, MoonPhase.WANING_GIBBOUS),
    (0.8125, MoonPhase.LAST_QUARTER),
    (0.9375, MoonPhase.WANING_CRESCENT),
]

_PHASE_NAMES = {
    MoonPhase.NEW: "新月",
    MoonPhase.WAXING_CRESCENT: "娥眉月",
    MoonPhase.FIRST_QUARTER: "上弦月",
    MoonPhase.WAXING_GIBBOUS: "盈凸月",
    MoonPhase.FULL: "满月",
    MoonPhase.WANING_GIBBOUS: "亏凸月",
    MoonPhase.LAST_QUARTER: "下弦月",
    MoonPhase.WANING_CRESCENT: "残月",
}


def julian_day(day: dt.date) -> float:
    year, month = day.year, day.month
    return (
        367 * year
        - math.floor(7 * (year + math.floor((month + 9) / 12)) / 4)
        + math.floor(275 * month / 9)
        + day.day
        + 1721013.5
    )


def calculate_moon_phase(day: dt.date) -> MoonPhase:
    days_since = julian_day(day) - _REFERENCE_NEW_MOON_JD
    fraction = (days_since % _LUNAR_CYCLE_DAYS) / _LUNAR_CYCLE_DAYS
    for upper, phase in _PHASE_BOUNDARIES:
        if fraction < upper:
            return phase
    return MoonPhase.NEW


def moon_phase_icon(phase: MoonPhase) -> str:
    return MOON_PHASE_ICONS[phase]


def moon_phase_name(phase: MoonPhase) -> str:
    return _PHASE_NAMES[phase]


__all__ = ["calculate_moon_phase", "julian_day", "moon_phase_icon", "moon_phase_name"]
