"""
Bright Sky Provider for Rainz

Bright Sky is a free JSON front end for the German Weather Service (DWD)
open data (MOSMIX forecasts). No key required.

Units in the payload: temperature °C, wind km/h, visibility m, pressure hPa.
Timestamps are UTC.
"""

import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional

import httpx

from rainz.conditions import (
    BRIGHTSKY_ICONS,
    celsius_to_fahrenheit,
    kmh_to_mph,
    meters_to_miles,
    normalize_condition,
    round_half_up,
)
from rainz.models import MAX_DAILY_POINTS, CurrentWeather, HourlyPoint, WeatherSource
from rainz.providers.base import (
    BaseProvider,
    daily_from_hourly,
    hour_label,
    location_label,
    num,
    parse_timestamp,
    upcoming_hours,
)

logger = logging.getLogger(__name__)

DEFAULT_VISIBILITY_METERS = 10000.0
DEFAULT_PRESSURE_HPA = 1013.0


class BrightSkyProvider(BaseProvider):
    """DWD forecasts via api.brightsky.dev/weather."""

    def build_params(self, lat: float, lon: float) -> Dict[str, Any]:
        today = self._today()
        return {
            "lat": lat,
            "lon": lon,
            "date": today.isoformat(),
            "last_date": (today + timedelta(days=MAX_DAILY_POINTS)).isoformat(),
            "tz": "UTC",
        }

    async def _fetch(
        self,
        lat: float,
        lon: float,
        location_name: Optional[str],
        client: httpx.AsyncClient,
    ) -> Optional[WeatherSource]:
        logger.info(f"[{self.name}] Fetching DWD forecast for ({lat}, {lon})")
        data = await self._get_json(client, self.config.endpoint, params=self.build_params(lat, lon))

        records = [r for r in data.get("weather") or [] if r.get("temperature") is not None]
        if not records:
            logger.warning(f"[{self.name}] No weather records in response")
            return None

        all_hours: List[HourlyPoint] = []
        for record in records:
            moment = parse_timestamp(record["timestamp"])
            all_hours.append(HourlyPoint(
                time=hour_label(moment),
                temperature=celsius_to_fahrenheit(float(record["temperature"])),
                condition=normalize_condition(record.get("icon"), BRIGHTSKY_ICONS),
                precipitation=round_half_up(num(record.get("precipitation_probability"))),
                valid_at=moment,
            ))

        now = self.clock()
        current_hour = now.replace(minute=0, second=0, microsecond=0)
        current = next(
            (r for r in records if parse_timestamp(r["timestamp"]) >= current_hour),
            records[-1],
        )

        condition = normalize_condition(current.get("icon"), BRIGHTSKY_ICONS)
        temperature = celsius_to_fahrenheit(num(current.get("temperature")))
        current_weather = CurrentWeather(
            temperature=temperature,
            condition=condition,
            description=condition.value,
            humidity=round_half_up(num(current.get("relative_humidity"))),
            wind_speed=kmh_to_mph(num(current.get("wind_speed"))),
            wind_direction=round_half_up(num(current.get("wind_direction"))),
            visibility=meters_to_miles(num(current.get("visibility"), DEFAULT_VISIBILITY_METERS)),
            feels_like=temperature,
            uv_index=0,
            pressure=round_half_up(num(current.get("pressure_msl"), DEFAULT_PRESSURE_HPA)),
        )

        return WeatherSource(
            source=self.name,
            location=location_label(location_name),
            latitude=lat,
            longitude=lon,
            accuracy=self.accuracy,
            current_weather=current_weather,
            hourly_forecast=upcoming_hours(all_hours, now),
            daily_forecast=daily_from_hourly(all_hours, now.date()),
        )
