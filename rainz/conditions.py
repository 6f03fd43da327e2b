"""
Unit & Condition Normalizer for Rainz

Every provider speaks its own weather vocabulary (WMO numeric codes,
Met.no symbol strings, DWD icon names, SMHI Wsymb2 numbers, free text)
and its own units. This module maps all of them into ONE canonical
condition taxonomy and ONE canonical unit set:

    Temperature: Fahrenheit
    Wind speed:  mph
    Visibility:  miles
    Pressure:    hPa (passthrough)

All functions here are pure. Unknown codes resolve to Condition.UNKNOWN
instead of failing - partial information from a provider is still useful.
"""

import logging
import math
from enum import Enum
from typing import Dict, Iterable, Mapping, Optional

logger = logging.getLogger(__name__)


class Condition(str, Enum):
    """Canonical weather conditions shared by every source."""
    CLEAR = "Clear"
    PARTLY_CLOUDY = "Partly Cloudy"
    CLOUDY = "Cloudy"
    OVERCAST = "Overcast"
    FOGGY = "Foggy"
    LIGHT_DRIZZLE = "Light Drizzle"
    DRIZZLE = "Drizzle"
    HEAVY_DRIZZLE = "Heavy Drizzle"
    FREEZING_DRIZZLE = "Freezing Drizzle"
    LIGHT_RAIN = "Light Rain"
    RAIN = "Rain"
    HEAVY_RAIN = "Heavy Rain"
    FREEZING_RAIN = "Freezing Rain"
    LIGHT_SHOWERS = "Light Showers"
    SHOWERS = "Showers"
    HEAVY_SHOWERS = "Heavy Showers"
    SLEET = "Sleet"
    HAIL = "Hail"
    LIGHT_SNOW = "Light Snow"
    SNOW = "Snow"
    HEAVY_SNOW = "Heavy Snow"
    SNOW_SHOWERS = "Snow Showers"
    THUNDERSTORM = "Thunderstorm"
    HEAVY_THUNDERSTORM = "Heavy Thunderstorm"
    WINDY = "Windy"
    UNKNOWN = "Unknown"


# WMO Weather Code to canonical condition (Open-Meteo models)
# Reference: https://open-meteo.com/en/docs
WMO_CODES: Dict[int, Condition] = {
    0: Condition.CLEAR,
    1: Condition.PARTLY_CLOUDY,
    2: Condition.PARTLY_CLOUDY,
    3: Condition.OVERCAST,
    45: Condition.FOGGY,
    48: Condition.FOGGY,
    51: Condition.LIGHT_DRIZZLE,
    53: Condition.DRIZZLE,
    55: Condition.HEAVY_DRIZZLE,
    56: Condition.FREEZING_DRIZZLE,
    57: Condition.FREEZING_DRIZZLE,
    61: Condition.LIGHT_RAIN,
    63: Condition.RAIN,
    65: Condition.HEAVY_RAIN,
    66: Condition.FREEZING_RAIN,
    67: Condition.FREEZING_RAIN,
    71: Condition.LIGHT_SNOW,
    73: Condition.SNOW,
    75: Condition.HEAVY_SNOW,
    77: Condition.LIGHT_SNOW,
    80: Condition.LIGHT_SHOWERS,
    81: Condition.SHOWERS,
    82: Condition.HEAVY_SHOWERS,
    85: Condition.SNOW_SHOWERS,
    86: Condition.SNOW_SHOWERS,
    95: Condition.THUNDERSTORM,
    96: Condition.THUNDERSTORM,
    99: Condition.HEAVY_THUNDERSTORM,
}

# Met.no symbol codes, with the _day/_night/_polartwilight suffix stripped.
# Reference: https://api.met.no/weatherapi/weathericon/2.0/documentation
METNO_SYMBOLS: Dict[str, Condition] = {
    "clearsky": Condition.CLEAR,
    "fair": Condition.PARTLY_CLOUDY,
    "partlycloudy": Condition.PARTLY_CLOUDY,
    "cloudy": Condition.CLOUDY,
    "fog": Condition.FOGGY,
    "lightrain": Condition.LIGHT_RAIN,
    "rain": Condition.RAIN,
    "heavyrain": Condition.HEAVY_RAIN,
    "lightrainshowers": Condition.LIGHT_SHOWERS,
    "rainshowers": Condition.SHOWERS,
    "heavyrainshowers": Condition.HEAVY_SHOWERS,
    "lightsleet": Condition.SLEET,
    "sleet": Condition.SLEET,
    "heavysleet": Condition.SLEET,
    "lightsleetshowers": Condition.SLEET,
    "sleetshowers": Condition.SLEET,
    "heavysleetshowers": Condition.SLEET,
    "lightsnow": Condition.LIGHT_SNOW,
    "snow": Condition.SNOW,
    "heavysnow": Condition.HEAVY_SNOW,
    "lightsnowshowers": Condition.SNOW_SHOWERS,
    "snowshowers": Condition.SNOW_SHOWERS,
    "heavysnowshowers": Condition.SNOW_SHOWERS,
}

# DWD icon names as returned by Bright Sky
BRIGHTSKY_ICONS: Dict[str, Condition] = {
    "clear-day": Condition.CLEAR,
    "clear-night": Condition.CLEAR,
    "partly-cloudy-day": Condition.PARTLY_CLOUDY,
    "partly-cloudy-night": Condition.PARTLY_CLOUDY,
    "cloudy": Condition.CLOUDY,
    "fog": Condition.FOGGY,
    "wind": Condition.WINDY,
    "rain": Condition.RAIN,
    "sleet": Condition.SLEET,
    "snow": Condition.SNOW,
    "hail": Condition.HAIL,
    "thunderstorm": Condition.THUNDERSTORM,
}

# SMHI Wsymb2 weather symbols (1-27)
SMHI_WSYMB2: Dict[int, Condition] = {
    1: Condition.CLEAR,
    2: Condition.PARTLY_CLOUDY,
    3: Condition.PARTLY_CLOUDY,
    4: Condition.PARTLY_CLOUDY,
    5: Condition.CLOUDY,
    6: Condition.OVERCAST,
    7: Condition.FOGGY,
    8: Condition.LIGHT_SHOWERS,
    9: Condition.SHOWERS,
    10: Condition.HEAVY_SHOWERS,
    11: Condition.THUNDERSTORM,
    12: Condition.SLEET,
    13: Condition.SLEET,
    14: Condition.SLEET,
    15: Condition.SNOW_SHOWERS,
    16: Condition.SNOW_SHOWERS,
    17: Condition.SNOW_SHOWERS,
    18: Condition.LIGHT_RAIN,
    19: Condition.RAIN,
    20: Condition.HEAVY_RAIN,
    21: Condition.THUNDERSTORM,
    22: Condition.SLEET,
    23: Condition.SLEET,
    24: Condition.SLEET,
    25: Condition.LIGHT_SNOW,
    26: Condition.SNOW,
    27: Condition.HEAVY_SNOW,
}

# WeatherAPI.com condition codes
# Reference: https://www.weatherapi.com/docs/weather_conditions.json
WEATHERAPI_CODES: Dict[int, Condition] = {
    1000: Condition.CLEAR,
    1003: Condition.PARTLY_CLOUDY,
    1006: Condition.CLOUDY,
    1009: Condition.OVERCAST,
    1030: Condition.FOGGY,
    1063: Condition.LIGHT_RAIN,
    1066: Condition.LIGHT_SNOW,
    1069: Condition.SLEET,
    1072: Condition.FREEZING_DRIZZLE,
    1087: Condition.THUNDERSTORM,
    1114: Condition.SNOW,
    1117: Condition.HEAVY_SNOW,
    1135: Condition.FOGGY,
    1147: Condition.FOGGY,
    1150: Condition.LIGHT_DRIZZLE,
    1153: Condition.LIGHT_DRIZZLE,
    1168: Condition.FREEZING_DRIZZLE,
    1171: Condition.FREEZING_DRIZZLE,
    1180: Condition.LIGHT_RAIN,
    1183: Condition.LIGHT_RAIN,
    1186: Condition.RAIN,
    1189: Condition.RAIN,
    1192: Condition.HEAVY_RAIN,
    1195: Condition.HEAVY_RAIN,
    1198: Condition.FREEZING_RAIN,
    1201: Condition.FREEZING_RAIN,
    1204: Condition.SLEET,
    1207: Condition.SLEET,
    1210: Condition.LIGHT_SNOW,
    1213: Condition.LIGHT_SNOW,
    1216: Condition.SNOW,
    1219: Condition.SNOW,
    1222: Condition.HEAVY_SNOW,
    1225: Condition.HEAVY_SNOW,
    1237: Condition.HAIL,
    1240: Condition.LIGHT_SHOWERS,
    1243: Condition.SHOWERS,
    1246: Condition.HEAVY_SHOWERS,
    1249: Condition.SLEET,
    1252: Condition.SLEET,
    1255: Condition.SNOW_SHOWERS,
    1258: Condition.SNOW_SHOWERS,
    1261: Condition.HAIL,
    1264: Condition.HAIL,
    1273: Condition.THUNDERSTORM,
    1276: Condition.HEAVY_THUNDERSTORM,
    1279: Condition.THUNDERSTORM,
    1282: Condition.HEAVY_THUNDERSTORM,
}

# 7Timer! precipitation types (civil product)
SEVENTIMER_PRECIP: Dict[str, Condition] = {
    "snow": Condition.SNOW,
    "rain": Condition.RAIN,
    "showers": Condition.SHOWERS,
    "ishowers": Condition.LIGHT_SHOWERS,
    "lightrain": Condition.LIGHT_RAIN,
    "lightsnow": Condition.LIGHT_SNOW,
    "frzr": Condition.FREEZING_RAIN,
    "icep": Condition.SLEET,
    "ts": Condition.THUNDERSTORM,
    "tsrain": Condition.THUNDERSTORM,
}

# Ordered keyword rules for free-text descriptions. First match wins, so
# the more specific phrases must come before the generic ones.
TEXT_RULES = (
    ("thunder", Condition.THUNDERSTORM),
    ("freezing rain", Condition.FREEZING_RAIN),
    ("freezing drizzle", Condition.FREEZING_DRIZZLE),
    ("sleet", Condition.SLEET),
    ("ice pellet", Condition.SLEET),
    ("hail", Condition.HAIL),
    ("blizzard", Condition.HEAVY_SNOW),
    ("heavy snow", Condition.HEAVY_SNOW),
    ("snow shower", Condition.SNOW_SHOWERS),
    ("light snow", Condition.LIGHT_SNOW),
    ("snow", Condition.SNOW),
    ("heavy rain", Condition.HEAVY_RAIN),
    ("torrential", Condition.HEAVY_RAIN),
    ("light rain", Condition.LIGHT_RAIN),
    ("patchy rain", Condition.LIGHT_RAIN),
    ("shower", Condition.SHOWERS),
    ("drizzle", Condition.DRIZZLE),
    ("rain", Condition.RAIN),
    ("fog", Condition.FOGGY),
    ("mist", Condition.FOGGY),
    ("haze", Condition.FOGGY),
    ("overcast", Condition.OVERCAST),
    ("partly", Condition.PARTLY_CLOUDY),
    ("cloud", Condition.CLOUDY),
    ("sunny", Condition.CLEAR),
    ("clear", Condition.CLEAR),
    ("wind", Condition.WINDY),
)

_BY_VALUE = {c.value.lower(): c for c in Condition}


def normalize_condition(code, table: Mapping) -> Condition:
    """Look up a provider code in its mapping table; unmapped codes are UNKNOWN."""
    if code is None:
        return Condition.UNKNOWN
    try:
        return table.get(code, Condition.UNKNOWN)
    except TypeError:
        # Unhashable junk from a malformed payload
        return Condition.UNKNOWN


def metno_symbol_to_condition(symbol: Optional[str]) -> Condition:
    """Convert a Met.no symbol code ("rainshowers_day") to a canonical condition."""
    if not symbol:
        return Condition.UNKNOWN
    base = symbol.split("_")[0]
    if base.endswith("andthunder"):
        return Condition.THUNDERSTORM
    return normalize_condition(base, METNO_SYMBOLS)


def seventimer_to_condition(prec_type: Optional[str], cloudcover: Optional[int]) -> Condition:
    """
    Convert 7Timer! precipitation type + cloud cover class to a condition.

    Cloud cover is a 1-9 class: 1-2 clear, 3-5 partly cloudy, 6+ cloudy.
    """
    if prec_type and prec_type != "none":
        return normalize_condition(prec_type, SEVENTIMER_PRECIP)
    if cloudcover is None:
        return Condition.UNKNOWN
    if cloudcover <= 2:
        return Condition.CLEAR
    if cloudcover <= 5:
        return Condition.PARTLY_CLOUDY
    return Condition.CLOUDY


def condition_from_text(text: Optional[str]) -> Condition:
    """
    Map a free-text description ("Patchy rain possible") to a condition.

    Exact canonical names match first, then the ordered keyword rules.
    """
    if not text or not isinstance(text, str):
        return Condition.UNKNOWN
    lowered = text.strip().lower()
    exact = _BY_VALUE.get(lowered)
    if exact is not None:
        return exact
    for keyword, condition in TEXT_RULES:
        if keyword in lowered:
            return condition
    return Condition.UNKNOWN


# ---------------------------------------------------------------------------
# Unit conversions (all round half-up to integers)
# ---------------------------------------------------------------------------

def round_half_up(value: float) -> int:
    """Round like the display layer does: 2.5 -> 3, -2.5 -> -2."""
    return int(math.floor(value + 0.5))


def celsius_to_fahrenheit(celsius: float) -> int:
    return round_half_up(celsius * 9 / 5 + 32)


def fahrenheit_to_celsius(fahrenheit: float) -> int:
    return round_half_up((fahrenheit - 32) * 5 / 9)


def ms_to_mph(meters_per_second: float) -> int:
    return round_half_up(meters_per_second * 2.23694)


def kmh_to_mph(kmh: float) -> int:
    return round_half_up(kmh * 0.621371)


def meters_to_miles(meters: float) -> int:
    return round_half_up(meters / 1609.34)


def km_to_miles(km: float) -> int:
    return round_half_up(km * 0.621371)


def hpa(pressure: float) -> int:
    """Pressure is already canonical (hPa == mb); only rounded."""
    return round_half_up(pressure)


# ---------------------------------------------------------------------------
# Condition voting
# ---------------------------------------------------------------------------

def plurality(conditions: Iterable[Condition]) -> Condition:
    """Most frequent condition; ties go to the one seen first."""
    counts: Dict[Condition, int] = {}
    for condition in conditions:
        counts[condition] = counts.get(condition, 0) + 1
    if not counts:
        return Condition.UNKNOWN
    best = None
    for condition, count in counts.items():
        if best is None or count > counts[best]:
            best = condition
    return best
