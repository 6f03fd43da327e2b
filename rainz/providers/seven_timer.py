"""
7Timer! Provider for Rainz

Lightweight global model (NOAA GFS based) with a very coarse output:
3-hour steps, cloud cover and wind as classes, humidity as a string.
Fast and free, which is why it stays in the ensemble at a low weight.

Response shape (civil product):
    {"init": "2026101912",
     "dataseries": [{"timepoint": 3, "cloudcover": 2, "prec_type": "none",
                     "temp2m": 15, "rh2m": "65%",
                     "wind10m": {"direction": "NW", "speed": 2}}, ...]}

`init` is the UTC model run (YYYYMMDDHH); each step is init + timepoint hours.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import httpx

from rainz.conditions import celsius_to_fahrenheit, ms_to_mph, seventimer_to_condition
from rainz.models import CurrentWeather, HourlyPoint, WeatherSource
from rainz.providers.base import BaseProvider, daily_from_hourly, hour_label, location_label, upcoming_hours

logger = logging.getLogger(__name__)

STEP_HOURS = 3
HOURLY_STEPS = 8  # 8 x 3h = the next 24 hours
DEFAULT_HUMIDITY = 50
DEFAULT_VISIBILITY_MILES = 10
DEFAULT_PRESSURE_HPA = 1013
PRECIP_LIKELY = 50

# Wind speed class -> representative speed (m/s), midpoint of each class range
WIND_CLASS_MS: Dict[int, float] = {
    1: 0.0,     # calm, < 0.3
    2: 1.85,    # light, 0.3-3.4
    3: 5.7,     # moderate, 3.4-8.0
    4: 9.4,     # fresh, 8.0-10.8
    5: 14.0,    # strong, 10.8-17.2
    6: 20.85,   # gale, 17.2-24.5
    7: 28.55,   # storm, 24.5-32.6
    8: 32.6,    # hurricane, > 32.6
}

COMPASS_DEGREES: Dict[str, int] = {
    "N": 0, "NE": 45, "E": 90, "SE": 135,
    "S": 180, "SW": 225, "W": 270, "NW": 315,
}


def parse_humidity(value: Any) -> int:
    """'65%' -> 65, '60-70%' -> 65; anything else -> default."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return int(value)
    if not isinstance(value, str):
        return DEFAULT_HUMIDITY
    try:
        parts = [int(p) for p in value.replace("%", "").split("-")]
    except ValueError:
        return DEFAULT_HUMIDITY
    return sum(parts) // len(parts)


def wind_speed_mph(wind: Optional[Dict[str, Any]]) -> int:
    speed_class = (wind or {}).get("speed")
    return ms_to_mph(WIND_CLASS_MS.get(speed_class, 0.0))


def wind_direction_degrees(wind: Optional[Dict[str, Any]]) -> int:
    direction = (wind or {}).get("direction")
    return COMPASS_DEGREES.get(direction, 0) if isinstance(direction, str) else 0


class SevenTimerProvider(BaseProvider):
    """7timer.info civil product."""

    async def _fetch(
        self,
        lat: float,
        lon: float,
        location_name: Optional[str],
        client: httpx.AsyncClient,
    ) -> Optional[WeatherSource]:
        params = {"lon": lon, "lat": lat, "product": "civil", "output": "json"}
        logger.info(f"[{self.name}] Fetching civil product for ({lat}, {lon})")
        data = await self._get_json(client, self.config.endpoint, params=params)

        init = datetime.strptime(str(data["init"]), "%Y%m%d%H").replace(tzinfo=timezone.utc)
        steps = [s for s in data.get("dataseries") or [] if s.get("temp2m") is not None]
        if not steps:
            logger.warning(f"[{self.name}] Empty dataseries")
            return None

        all_hours: List[HourlyPoint] = []
        for step in steps:
            moment = init + timedelta(hours=int(step["timepoint"]))
            prec_type = step.get("prec_type")
            all_hours.append(HourlyPoint(
                time=hour_label(moment),
                temperature=celsius_to_fahrenheit(float(step["temp2m"])),
                condition=seventimer_to_condition(prec_type, step.get("cloudcover")),
                precipitation=0 if prec_type in (None, "none") else PRECIP_LIKELY,
                valid_at=moment,
            ))

        now = self.clock()
        # Steps are 3 hours apart; the current one is the step covering now
        window_start = now - timedelta(hours=STEP_HOURS - 1)
        hourly = upcoming_hours(all_hours, window_start, limit=HOURLY_STEPS)
        if not hourly:
            logger.warning(f"[{self.name}] Model run {data['init']} has no steps ahead of now")
            return None

        current_index = all_hours.index(hourly[0])
        current = steps[current_index]
        current_point = hourly[0]

        current_weather = CurrentWeather(
            temperature=current_point.temperature,
            condition=current_point.condition,
            description=current_point.condition.value,
            humidity=parse_humidity(current.get("rh2m")),
            wind_speed=wind_speed_mph(current.get("wind10m")),
            wind_direction=wind_direction_degrees(current.get("wind10m")),
            visibility=DEFAULT_VISIBILITY_MILES,
            feels_like=current_point.temperature,
            uv_index=0,
            pressure=DEFAULT_PRESSURE_HPA,
        )

        return WeatherSource(
            source=self.name,
            location=location_label(location_name),
            latitude=lat,
            longitude=lon,
            accuracy=self.accuracy,
            current_weather=current_weather,
            hourly_forecast=hourly,
            daily_forecast=daily_from_hourly(all_hours, now.date()),
        )
