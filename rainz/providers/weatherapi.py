"""
WeatherAPI.com Provider for Rainz

Commercial aggregator. The only provider that exposes station metadata,
astronomy (sunrise/sunset) and air quality, so it is the richest single
source even though its accuracy weight is modest.

Requires an API key (WEATHERAPI_KEY / WEATHER_API_KEY / WEATHER_API).
Without one the adapter is skipped and contributes nothing.
"""

import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional

import httpx

from rainz.conditions import WEATHERAPI_CODES, Condition, condition_from_text, normalize_condition, round_half_up
from rainz.models import MAX_DAILY_POINTS, CurrentWeather, DailyPoint, HourlyPoint, StationInfo, WeatherSource
from rainz.providers.base import BaseProvider, day_label, hour_label, location_label, num, reading, upcoming_hours
from rainz.registry import ProviderConfig
from rainz.resilience import RetryConfig

logger = logging.getLogger(__name__)

FORECAST_DAYS = 10

# US EPA index (1-6) -> category label
AQI_CATEGORIES: Dict[int, str] = {
    1: "Good",
    2: "Moderate",
    3: "Unhealthy for Sensitive Groups",
    4: "Unhealthy",
    5: "Very Unhealthy",
    6: "Hazardous",
}


def parse_12h_minutes(value: Optional[str]) -> Optional[int]:
    """'07:15 AM' -> minutes since midnight; None if unparseable."""
    if not value:
        return None
    try:
        moment = datetime.strptime(value.strip(), "%I:%M %p")
    except ValueError:
        return None
    return moment.hour * 60 + moment.minute


def daylight_duration(sunrise: Optional[str], sunset: Optional[str]) -> Optional[str]:
    """
    Daylight length between two 12h clock strings, formatted '13h 2m'.

    A sunset earlier than sunrise wraps past midnight (polar edge cases).
    """
    start = parse_12h_minutes(sunrise)
    end = parse_12h_minutes(sunset)
    if start is None or end is None:
        return None
    diff = end - start
    if diff < 0:
        diff += 24 * 60
    return f"{diff // 60}h {diff % 60}m"


def _condition(block: Optional[Dict[str, Any]]) -> Condition:
    block = block or {}
    condition = normalize_condition(block.get("code"), WEATHERAPI_CODES)
    if condition is Condition.UNKNOWN:
        condition = condition_from_text(block.get("text"))
    return condition


def _description(block: Optional[Dict[str, Any]], condition: Condition) -> str:
    text = (block or {}).get("text")
    return text.strip() if isinstance(text, str) and text.strip() else condition.value


class WeatherAPIProvider(BaseProvider):
    """WeatherAPI.com forecast endpoint (days=10, aqi=yes)."""

    def __init__(
        self,
        config: ProviderConfig,
        api_key: Optional[str] = None,
        retry_config: Optional[RetryConfig] = None,
        clock=None,
    ):
        super().__init__(config, retry_config=retry_config, clock=clock)
        self.api_key = api_key
        if not api_key:
            logger.warning(f"[{self.name}] API key missing; provider will be skipped")

    async def _fetch(
        self,
        lat: float,
        lon: float,
        location_name: Optional[str],
        client: httpx.AsyncClient,
    ) -> Optional[WeatherSource]:
        if not self.api_key:
            return None

        params = {
            "key": self.api_key,
            "q": f"{lat},{lon}",
            "days": FORECAST_DAYS,
            "aqi": "yes",
            "alerts": "no",
        }
        logger.info(f"[{self.name}] Fetching forecast for ({lat}, {lon})")
        data = await self._get_json(client, self.config.endpoint, params=params)

        location = data.get("location") or {}
        current = data["current"]
        forecast_days = (data.get("forecast") or {}).get("forecastday") or []

        # Local wall clock of the location; hour times in the payload are local too
        local_now = self._local_now(location.get("localtime"))

        astro = (forecast_days[0].get("astro") or {}) if forecast_days else {}
        sunrise = astro.get("sunrise")
        sunset = astro.get("sunset")

        aqi = (current.get("air_quality") or {}).get("us-epa-index")
        if isinstance(aqi, bool) or not isinstance(aqi, (int, float)):
            aqi = None
        else:
            aqi = int(aqi)

        temperature = reading(current.get("temp_f"))
        if temperature is None:
            logger.warning(f"[{self.name}] No current temperature in response")
            return None

        condition = _condition(current.get("condition"))
        current_weather = CurrentWeather(
            temperature=temperature,
            condition=condition,
            description=_description(current.get("condition"), condition),
            humidity=round_half_up(num(current.get("humidity"))),
            wind_speed=round_half_up(num(current.get("wind_mph"))),
            wind_direction=round_half_up(num(current.get("wind_degree"))),
            visibility=round_half_up(num(current.get("vis_miles"))),
            feels_like=round_half_up(num(current.get("feelslike_f"), temperature)),
            uv_index=round_half_up(num(current.get("uv"))),
            pressure=round_half_up(num(current.get("pressure_mb"))),
            sunrise=sunrise,
            sunset=sunset,
            daylight=daylight_duration(sunrise, sunset),
            aqi=aqi,
            aqi_category=AQI_CATEGORIES.get(aqi) if aqi is not None else None,
        )

        station_info = StationInfo(
            name=location.get("name") or "Unknown Station",
            region=location.get("region") or "",
            country=location.get("country") or "",
            localtime=location.get("localtime") or "",
        )

        return WeatherSource(
            source=self.name,
            location=location_label(location_name, location.get("name")),
            latitude=lat,
            longitude=lon,
            accuracy=self.accuracy,
            current_weather=current_weather,
            hourly_forecast=self._hourly(forecast_days, local_now),
            daily_forecast=self._daily(forecast_days, local_now.date()),
            station_info=station_info,
        )

    def _local_now(self, localtime: Optional[str]) -> datetime:
        if localtime:
            try:
                return datetime.strptime(localtime, "%Y-%m-%d %H:%M")
            except ValueError:
                logger.debug(f"[{self.name}] Unparseable localtime {localtime!r}, using UTC")
        return self.clock().replace(tzinfo=None)

    @staticmethod
    def _hourly(forecast_days: List[Dict[str, Any]], local_now: datetime) -> List[HourlyPoint]:
        # Hours span every forecast day so the 24h window can cross midnight
        points = []
        for day in forecast_days:
            for hour in day.get("hour") or []:
                temperature = reading(hour.get("temp_f"))
                if temperature is None:
                    continue
                moment = datetime.strptime(hour["time"], "%Y-%m-%d %H:%M")
                points.append(HourlyPoint(
                    time=hour_label(moment),
                    temperature=temperature,
                    condition=_condition(hour.get("condition")),
                    precipitation=round_half_up(num(hour.get("chance_of_rain"))),
                    valid_at=moment,
                ))
        return upcoming_hours(points, local_now)

    @staticmethod
    def _daily(forecast_days: List[Dict[str, Any]], today: date) -> List[DailyPoint]:
        points = []
        for entry in forecast_days:
            day = date.fromisoformat(entry["date"])
            if day < today:
                continue
            summary = entry.get("day") or {}
            high = reading(summary.get("maxtemp_f"))
            low = reading(summary.get("mintemp_f"))
            if high is None or low is None:
                continue
            condition = _condition(summary.get("condition"))
            points.append(DailyPoint(
                day=day_label(day),
                condition=condition,
                description=_description(summary.get("condition"), condition),
                high_temp=high,
                low_temp=low,
                precipitation=round_half_up(num(summary.get("daily_chance_of_rain"))),
                date=day,
            ))
            if len(points) == MAX_DAILY_POINTS:
                break
        return points
