"""
Open-Meteo Multi-Model Provider for Rainz

Open-Meteo serves many numerical weather models behind one API; each model
is queried separately (`models=<id>`) and reported as its own source:

- ECMWF (ecmwf_ifs04)          - European Centre
- GFS (gfs_seamless)           - US Global Forecast System
- DWD ICON (icon_seamless)     - German Weather Service
- UKMO (ukmo_seamless)         - UK Met Office
- METEOFRANCE (meteofrance_seamless)
- JMA (jma_seamless)           - Japan Meteorological Agency
- GEM (gem_seamless)           - Environment Canada

Units are requested directly in Fahrenheit/mph. With `timezone=auto` the
timestamps come back as naive local times, so "now" is shifted by the
payload's `utc_offset_seconds` before filtering the hourly series.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

import httpx

from rainz.conditions import WMO_CODES, Condition, meters_to_miles, normalize_condition, round_half_up
from rainz.models import MAX_DAILY_POINTS, CurrentWeather, DailyPoint, HourlyPoint, WeatherSource
from rainz.providers.base import (
    BaseProvider,
    day_label,
    hour_label,
    location_label,
    num,
    reading,
    upcoming_hours,
)

logger = logging.getLogger(__name__)

HOURLY_FIELDS = (
    "temperature_2m",
    "precipitation_probability",
    "weathercode",
    "relative_humidity_2m",
    "apparent_temperature",
    "visibility",
    "pressure_msl",
    "uv_index",
    "wind_speed_10m",
    "wind_direction_10m",
)

DAILY_FIELDS = (
    "weathercode",
    "temperature_2m_max",
    "temperature_2m_min",
    "precipitation_probability_max",
    "sunrise",
    "sunset",
)

FORECAST_DAYS = 10
DEFAULT_VISIBILITY_METERS = 10000.0
DEFAULT_PRESSURE_HPA = 1013.0


def _series(block: Dict[str, Any], field: str, index: int, default: Optional[float] = None) -> Any:
    values = block.get(field) or []
    if 0 <= index < len(values) and values[index] is not None:
        return values[index]
    return default


class OpenMeteoModelProvider(BaseProvider):
    """One Open-Meteo numerical model."""

    def build_params(self, lat: float, lon: float) -> Dict[str, Any]:
        return {
            "latitude": lat,
            "longitude": lon,
            "current_weather": "true",
            "hourly": ",".join(HOURLY_FIELDS),
            "daily": ",".join(DAILY_FIELDS),
            "temperature_unit": "fahrenheit",
            "wind_speed_unit": "mph",
            "timezone": "auto",
            "forecast_days": FORECAST_DAYS,
            "models": self.config.model,
        }

    async def _fetch(
        self,
        lat: float,
        lon: float,
        location_name: Optional[str],
        client: httpx.AsyncClient,
    ) -> Optional[WeatherSource]:
        logger.info(f"[{self.name}] Fetching model {self.config.model} for ({lat}, {lon})")
        data = await self._get_json(client, self.config.endpoint, params=self.build_params(lat, lon))

        current = data["current_weather"]
        hourly = data.get("hourly") or {}
        daily = data.get("daily") or {}

        # Provider-local wall clock, comparable with the naive payload times
        offset = num(data.get("utc_offset_seconds"))
        local_now = (self.clock() + timedelta(seconds=offset)).replace(tzinfo=None)

        hourly_times = [datetime.fromisoformat(t) for t in hourly.get("time") or []]
        now_index = self._current_index(hourly_times, local_now)

        condition = normalize_condition(current.get("weathercode"), WMO_CODES)
        temperature = reading(current.get("temperature"))
        if temperature is None:
            logger.warning(f"[{self.name}] No current temperature in response")
            return None

        current_weather = CurrentWeather(
            temperature=temperature,
            condition=condition,
            description=condition.value,
            humidity=round_half_up(num(_series(hourly, "relative_humidity_2m", now_index))),
            wind_speed=round_half_up(num(current.get("windspeed"))),
            wind_direction=round_half_up(num(current.get("winddirection"))),
            visibility=meters_to_miles(num(_series(hourly, "visibility", now_index), DEFAULT_VISIBILITY_METERS)),
            feels_like=round_half_up(num(_series(hourly, "apparent_temperature", now_index), temperature)),
            uv_index=round_half_up(num(_series(hourly, "uv_index", now_index))),
            pressure=round_half_up(num(_series(hourly, "pressure_msl", now_index), DEFAULT_PRESSURE_HPA)),
            sunrise=_series(daily, "sunrise", 0),
            sunset=_series(daily, "sunset", 0),
        )

        return WeatherSource(
            source=self.name,
            location=location_label(location_name),
            latitude=lat,
            longitude=lon,
            accuracy=self.accuracy,
            current_weather=current_weather,
            hourly_forecast=self._hourly(hourly, hourly_times, local_now),
            daily_forecast=self._daily(daily, local_now.date()),
        )

    @staticmethod
    def _current_index(times: List[datetime], local_now: datetime) -> int:
        current_hour = local_now.replace(minute=0, second=0, microsecond=0)
        for i, moment in enumerate(times):
            if moment >= current_hour:
                return i
        return 0

    @staticmethod
    def _hourly(hourly: Dict[str, Any], times: List[datetime], local_now: datetime) -> List[HourlyPoint]:
        points = []
        for i, moment in enumerate(times):
            temperature = reading(_series(hourly, "temperature_2m", i))
            if temperature is None:
                continue
            points.append(HourlyPoint(
                time=hour_label(moment),
                temperature=temperature,
                condition=normalize_condition(_series(hourly, "weathercode", i), WMO_CODES),
                precipitation=round_half_up(num(_series(hourly, "precipitation_probability", i))),
                valid_at=moment,
            ))
        return upcoming_hours(points, local_now)

    @staticmethod
    def _daily(daily: Dict[str, Any], today: date) -> List[DailyPoint]:
        points = []
        for i, raw in enumerate(daily.get("time") or []):
            day = date.fromisoformat(raw)
            if day < today:
                continue
            high = reading(_series(daily, "temperature_2m_max", i))
            low = reading(_series(daily, "temperature_2m_min", i))
            # Models with a shorter horizon return null for the later days
            if high is None or low is None:
                continue
            condition: Condition = normalize_condition(_series(daily, "weathercode", i), WMO_CODES)
            points.append(DailyPoint(
                day=day_label(day),
                condition=condition,
                description=condition.value,
                high_temp=high,
                low_temp=low,
                precipitation=round_half_up(num(_series(daily, "precipitation_probability_max", i))),
                date=day,
            ))
            if len(points) == MAX_DAILY_POINTS:
                break
        return points
