"""
EPA air-quality classification for particulate matter.

Categories use half-open bands: a value exactly on a band's upper breakpoint
belongs to that band. The AQI comes from the EPA breakpoint table, each row
``(C_lo, C_hi, I_lo, I_hi)`` interpolated linearly. Concentrations that fall
in the gap between two rows (e.g. 12.05 for PM2.5) take the upper row's
``I_lo``.
"""

import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class AirQualityCategory(str, Enum):
    GOOD = "GOOD"
    MODERATE = "MODERATE"
    UNHEALTHY_SENSITIVE = "UNHEALTHY_SENSITIVE"
    UNHEALTHY = "UNHEALTHY"
    VERY_UNHEALTHY = "VERY_UNHEALTHY"
    HAZARDOUS = "HAZARDOUS"

    @property
    def rank(self) -> int:
        return _SEVERITY_ORDER.index(self)


_SEVERITY_ORDER = [
    AirQualityCategory.GOOD,
    AirQualityCategory.MODERATE,
    AirQualityCategory.UNHEALTHY_SENSITIVE,
    AirQualityCategory.UNHEALTHY,
    AirQualityCategory.VERY_UNHEALTHY,
    AirQualityCategory.HAZARDOUS,
]

Breakpoint = Tuple[float, float, int, int]

# (C_lo, C_hi, I_lo, I_hi); hazardous spans the last two rows
PM25_BREAKPOINTS: List[Breakpoint] = [
    (0.0, 12.0, 0, 50),
    (12.1, 35.4, 51, 100),
    (35.5, 55.4, 101, 150),
    (55.5, 150.4, 151, 200),
    (150.5, 250.4, 201, 300),
    (250.5, 350.4, 301, 400),
    (350.5, 500.4, 401, 500),
]
PM10_BREAKPOINTS: List[Breakpoint] = [
    (0, 54, 0, 50),
    (55, 154, 51, 100),
    (155, 254, 101, 150),
    (255, 354, 151, 200),
    (355, 424, 201, 300),
    (425, 504, 301, 400),
    (505, 604, 401, 500),
]

MAX_AQI = 500

@dataclass(frozen=True)
class _CategoryStyle:
    color: str
    bg_color: str
    icon: str
    label: str
    description: str


_STYLES: Dict[AirQualityCategory, _CategoryStyle] = {
    AirQualityCategory.GOOD: _CategoryStyle(
        "#22C55E", "#DCFCE7", "😊", "Good", "Air quality is satisfactory"
    ),
    AirQualityCategory.MODERATE: _CategoryStyle(
        "#EAB308", "#FEF3C7", "😐", "Moderate", "Air quality is acceptable"
    ),
    AirQualityCategory.UNHEALTHY_SENSITIVE: _CategoryStyle(
        "#F97316",
        "#FED7AA",
        "😷",
        "Unhealthy for sensitive groups",
        "Sensitive groups may experience health effects",
    ),
    AirQualityCategory.UNHEALTHY: _CategoryStyle(
        "#EF4444", "#FEE2E2", "🚨", "Unhealthy", "Everyone may experience health effects"
    ),
    AirQualityCategory.VERY_UNHEALTHY: _CategoryStyle(
        "#8B5CF6",
        "#EDE9FE",
        "⛔",
        "Very unhealthy",
        "Health alert: everyone may experience serious effects",
    ),
    AirQualityCategory.HAZARDOUS: _CategoryStyle(
        "#7F1D1D",
        "#FECACA",
        "☠️",
        "Hazardous",
        "Health warning of emergency conditions",
    ),
}


@dataclass(frozen=True)
class QualityReading:
    category: AirQualityCategory
    aqi: int
    color: str
    bg_color: str
    icon: str
    label: str
    description: str
    source_value: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category.value,
            "aqi": self.aqi,
            "color": self.color,
            "bg_color": self.bg_color,
            "icon": self.icon,
            "label": self.label,
            "description": self.description,
            "source_value": self.source_value,
        }


def as_number(value: Any) -> Optional[float]:
    """Coerce a reading to float, or ``None`` if it is missing or not numeric."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number):
        return None
    return number


def _row(value: float, breakpoints: List[Breakpoint]) -> int:
    for index, (_, c_hi, _, _) in enumerate(breakpoints):
        if value <= c_hi:
            return index
    return len(breakpoints) - 1


def _aqi(value: float, row: Breakpoint) -> int:
    c_lo, c_hi, i_lo, i_hi = row
    if value <= c_lo:
        return i_lo
    aqi = (i_hi - i_lo) / (c_hi - c_lo) * (value - c_lo) + i_lo
    return int(math.floor(min(aqi, MAX_AQI) + 0.5))


def _classify(value: Any, breakpoints: List[Breakpoint]) -> Optional[QualityReading]:
    number = as_number(value)
    if number is None:
        return None

    concentration = max(number, 0.0)
    index = _row(concentration, breakpoints)
    category = _SEVERITY_ORDER[min(index, len(_SEVERITY_ORDER) - 1)]
    style = _STYLES[category]
    return QualityReading(
        category=category,
        aqi=_aqi(concentration, breakpoints[index]),
        color=style.color,
        bg_color=style.bg_color,
        icon=style.icon,
        label=style.label,
        description=style.description,
        source_value=number,
    )


def classify_pm25(value: Any) -> Optional[QualityReading]:
    return _classify(value, PM25_BREAKPOINTS)


def classify_pm10(value: Any) -> Optional[QualityReading]:
    return _classify(value, PM10_BREAKPOINTS)


def classify_overall(pm25: Any, pm10: Any) -> Optional[QualityReading]:
    """Worst of the two classifications, carrying the highest AQI of both.

    PM2.5 wins when both readings share the same category.
    """
    readings = [r for r in (classify_pm25(pm25), classify_pm10(pm10)) if r is not None]
    if not readings:
        return None

    worst = readings[0]
    for reading in readings[1:]:
        if reading.category.rank > worst.category.rank:
            worst = reading
    return replace(worst, aqi=max(r.aqi for r in readings))


_RECOMMENDATIONS: Dict[AirQualityCategory, List[str]] = {
    AirQualityCategory.GOOD: [
        "Great time for outdoor activities",
        "Ideal conditions for outdoor exercise",
        "Ventilate your home to let fresh air in",
    ],
    AirQualityCategory.MODERATE: [
        "Sensitive people should limit prolonged outdoor exertion",
        "Moderate outdoor activities are acceptable",
        "Keep windows closed if you are sensitive",
    ],
    AirQualityCategory.UNHEALTHY_SENSITIVE: [
        "Sensitive groups should avoid outdoor activities",
        "Consider wearing a mask if you must go out",
        "Keep windows closed",
        "Run an air purifier if you have one",
    ],
    AirQualityCategory.UNHEALTHY: [
        "Avoid outdoor activities",
        "Wear an N95 mask if you must go out",
        "Stay indoors",
        "Run an air purifier",
        "See a doctor if you have symptoms",
    ],
    AirQualityCategory.VERY_UNHEALTHY: [
        "Avoid all outdoor activities",
        "Wear an N95 mask if you must go out",
        "Stay indoors with windows and doors closed",
        "Run an air purifier continuously",
        "See a doctor if you have symptoms",
    ],
    AirQualityCategory.HAZARDOUS: [
        "Health emergency: remain indoors",
        "Do not go outside without an N95 or better respirator",
        "Seal windows and doors and run an air purifier",
        "Follow instructions from local authorities",
        "Seek medical care if you have breathing difficulties",
    ],
}


def recommendations(pm25: Any, pm10: Any) -> List[str]:
    overall = classify_overall(pm25, pm10)
    if overall is None:
        return []
    return list(_RECOMMENDATIONS[overall.category])


def should_alert(pm25: Any, pm10: Any, prev_pm25: Any, prev_pm10: Any) -> bool:
    """True on a first bad reading or when air quality got worse."""
    current = classify_overall(pm25, pm10)
    if current is None:
        return False

    previous = classify_overall(prev_pm25, prev_pm10)
    if previous is None:
        return current.category.rank >= AirQualityCategory.UNHEALTHY_SENSITIVE.rank
    return current.category.rank > previous.category.rank
