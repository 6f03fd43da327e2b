"""
Data Model for the Rainz Aggregation Engine

A WeatherSource is one provider's complete normalized payload for one
location/time. It is created fresh on every aggregation request, never
mutated after construction and never shared across requests, so every
type here is a frozen dataclass.

Canonical units inside the engine: Fahrenheit, mph, miles, hPa.
Conversion to a user's preferred unit happens at presentation time only.
"""

import logging
import math
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from rainz.conditions import Condition

logger = logging.getLogger(__name__)

MAX_HOURLY_POINTS = 24
MAX_DAILY_POINTS = 10
MAX_LOCATION_NAME_LENGTH = 200
DEFAULT_LOCATION_NAME = "Selected Location"


class InvalidRequestError(ValueError):
    """Caller input rejected before any provider is contacted."""


class SourceKind(Enum):
    """What kind of evidence a WeatherSource carries."""
    MODEL = "model"          # Numerically complete provider forecast
    COMMUNITY = "community"  # Condition-only consensus of user reports


@dataclass(frozen=True)
class StationInfo:
    """Physical station metadata, only for providers that expose one."""
    name: str
    region: str
    country: str
    localtime: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "region": self.region,
            "country": self.country,
            "localtime": self.localtime,
        }


@dataclass(frozen=True)
class CurrentWeather:
    temperature: int
    condition: Condition
    description: str
    humidity: int
    wind_speed: int
    wind_direction: int
    visibility: int
    feels_like: int
    uv_index: int
    pressure: int
    sunrise: Optional[str] = None
    sunset: Optional[str] = None
    daylight: Optional[str] = None
    aqi: Optional[int] = None
    aqi_category: Optional[str] = None

    @classmethod
    def condition_only(cls, condition: Condition, description: str) -> "CurrentWeather":
        """A current-weather block with no measured quantities (all zero)."""
        return cls(
            temperature=0,
            condition=condition,
            description=description,
            humidity=0,
            wind_speed=0,
            wind_direction=0,
            visibility=0,
            feels_like=0,
            uv_index=0,
            pressure=0,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "temperature": self.temperature,
            "condition": self.condition.value,
            "description": self.description,
            "humidity": self.humidity,
            "windSpeed": self.wind_speed,
            "windDirection": self.wind_direction,
            "visibility": self.visibility,
            "feelsLike": self.feels_like,
            "uvIndex": self.uv_index,
            "pressure": self.pressure,
        }
        optional = {
            "sunrise": self.sunrise,
            "sunset": self.sunset,
            "daylight": self.daylight,
            "aqi": self.aqi,
            "aqiCategory": self.aqi_category,
        }
        data.update({k: v for k, v in optional.items() if v is not None})
        return data


@dataclass(frozen=True)
class HourlyPoint:
    time: str             # Display label, e.g. "03 PM"
    temperature: int
    condition: Condition
    precipitation: int    # Precipitation probability (%)
    valid_at: datetime    # Provider timestamp, used for ordering

    def to_dict(self) -> Dict[str, Any]:
        return {
            "time": self.time,
            "temperature": self.temperature,
            "condition": self.condition.value,
            "precipitation": self.precipitation,
            "validAt": self.valid_at.isoformat(),
        }


@dataclass(frozen=True)
class DailyPoint:
    day: str              # Display label, e.g. "Mon"
    condition: Condition
    description: str
    high_temp: int
    low_temp: int
    precipitation: int    # Precipitation probability (%)
    date: date

    def to_dict(self) -> Dict[str, Any]:
        return {
            "day": self.day,
            "condition": self.condition.value,
            "description": self.description,
            "highTemp": self.high_temp,
            "lowTemp": self.low_temp,
            "precipitation": self.precipitation,
            "date": self.date.isoformat(),
        }


@dataclass(frozen=True)
class WeatherSource:
    """
    One provider's normalized payload.

    Construction enforces the invariants so that an adapter either returns
    a complete, valid source or nothing at all:
    - accuracy within [0, 1]
    - at most 24 hourly points, ascending by time
    - at most 10 daily points, ascending by date
    """
    source: str
    location: str
    latitude: float
    longitude: float
    accuracy: float
    current_weather: CurrentWeather
    hourly_forecast: Tuple[HourlyPoint, ...] = ()
    daily_forecast: Tuple[DailyPoint, ...] = ()
    station_info: Optional[StationInfo] = None
    kind: SourceKind = SourceKind.MODEL

    def __post_init__(self):
        # Accept lists from adapters but store immutable tuples
        object.__setattr__(self, "hourly_forecast", tuple(self.hourly_forecast))
        object.__setattr__(self, "daily_forecast", tuple(self.daily_forecast))

        if not (0.0 <= self.accuracy <= 1.0):
            raise ValueError(f"{self.source}: accuracy {self.accuracy} outside [0, 1]")
        if len(self.hourly_forecast) > MAX_HOURLY_POINTS:
            raise ValueError(f"{self.source}: {len(self.hourly_forecast)} hourly points (max {MAX_HOURLY_POINTS})")
        if len(self.daily_forecast) > MAX_DAILY_POINTS:
            raise ValueError(f"{self.source}: {len(self.daily_forecast)} daily points (max {MAX_DAILY_POINTS})")

        hourly_times = [h.valid_at for h in self.hourly_forecast]
        if hourly_times != sorted(hourly_times):
            raise ValueError(f"{self.source}: hourly forecast not in ascending time order")
        daily_dates = [d.date for d in self.daily_forecast]
        if daily_dates != sorted(daily_dates):
            raise ValueError(f"{self.source}: daily forecast not in ascending date order")

    @property
    def has_measurements(self) -> bool:
        """False for condition-only sources that must stay out of numeric averages."""
        return self.kind is SourceKind.MODEL

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "source": self.source,
            "location": self.location,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "accuracy": self.accuracy,
            "currentWeather": self.current_weather.to_dict(),
            "hourlyForecast": [h.to_dict() for h in self.hourly_forecast],
            "dailyForecast": [d.to_dict() for d in self.daily_forecast],
        }
        if self.station_info is not None:
            data["stationInfo"] = self.station_info.to_dict()
        return data


@dataclass(frozen=True)
class CommunityReport:
    """A crowd-sourced condition report (owned by the reports store, read-only here)."""
    latitude: float
    longitude: float
    reported_condition: Optional[str]
    created_at: datetime
    actual_condition: Optional[str] = None
    accuracy: Optional[str] = None
    location_name: Optional[str] = None
    status: str = "pending"

    @property
    def condition(self) -> Optional[str]:
        """The verified condition when present, else what the user reported."""
        return self.actual_condition or self.reported_condition


@dataclass(frozen=True)
class AggregationRequest:
    lat: float
    lon: float
    location_name: Optional[str] = None

    @classmethod
    def parse(cls, body: Any) -> "AggregationRequest":
        """
        Validate a caller request body ({lat, lon, locationName?}).

        Raises:
            InvalidRequestError: on missing/non-numeric/out-of-range
                coordinates or an oversized location label
        """
        if not isinstance(body, dict):
            raise InvalidRequestError("Request body must be a JSON object")

        lat = _coordinate(body.get("lat"), "Latitude", 90)
        lon = _coordinate(body.get("lon"), "Longitude", 180)

        location_name = body.get("locationName")
        if location_name is not None:
            if not isinstance(location_name, str):
                raise InvalidRequestError("locationName must be a string")
            if len(location_name) > MAX_LOCATION_NAME_LENGTH:
                raise InvalidRequestError(
                    f"locationName must be at most {MAX_LOCATION_NAME_LENGTH} characters"
                )

        return cls(lat=lat, lon=lon, location_name=location_name)


def _coordinate(value: Any, label: str, limit: int) -> float:
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidRequestError(f"{label} is required and must be a number")
    if not math.isfinite(value) or not (-limit <= value <= limit):
        raise InvalidRequestError(f"{label} must be between -{limit} and {limit}")
    return float(value)
