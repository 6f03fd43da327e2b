"""
SMHI Provider for Rainz

Swedish Meteorological and Hydrological Institute point forecasts
(pmp3g product). Free, no key. Coverage is limited to the Nordic domain;
points outside it answer 404, which simply makes this source absent.

Every time step carries a list of named parameters:
    t (°C), ws (m/s), wd (deg), r (%), vis (km), msl (hPa),
    Wsymb2 (symbol 1-27), pmean (mm/h)
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from rainz.conditions import (
    SMHI_WSYMB2,
    celsius_to_fahrenheit,
    km_to_miles,
    ms_to_mph,
    normalize_condition,
    round_half_up,
)
from rainz.models import CurrentWeather, HourlyPoint, WeatherSource
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

DEFAULT_VISIBILITY_KM = 10.0
DEFAULT_PRESSURE_HPA = 1013.0


def get_param(step: Dict[str, Any], name: str) -> Optional[float]:
    """First value of a named parameter in one time step, or None."""
    for param in step.get("parameters") or []:
        if param.get("name") == name:
            values = param.get("values") or []
            return values[0] if values else None
    return None


def precip_chance(pmean: Optional[float]) -> int:
    """
    pmp3g publishes no probability; mean intensity (mm/h) is scaled to a
    0-100 likelihood: 0.1 mm/h -> 10, 1 mm/h and above -> 100.
    """
    return min(100, round_half_up(num(pmean) * 100))


class SMHIProvider(BaseProvider):
    """Point forecast from opendata-download-metfcst.smhi.se."""

    def build_url(self, lat: float, lon: float) -> str:
        return self.config.endpoint.format(lon=f"{lon:.4f}", lat=f"{lat:.4f}")

    async def _fetch(
        self,
        lat: float,
        lon: float,
        location_name: Optional[str],
        client: httpx.AsyncClient,
    ) -> Optional[WeatherSource]:
        logger.info(f"[{self.name}] Fetching point forecast for ({lat}, {lon})")
        data = await self._get_json(client, self.build_url(lat, lon))

        steps = [s for s in data.get("timeSeries") or [] if get_param(s, "t") is not None]
        if not steps:
            logger.warning(f"[{self.name}] No time series in response")
            return None

        all_hours: List[HourlyPoint] = []
        for step in steps:
            moment = parse_timestamp(step["validTime"])
            all_hours.append(HourlyPoint(
                time=hour_label(moment),
                temperature=celsius_to_fahrenheit(float(get_param(step, "t"))),
                condition=normalize_condition(get_param(step, "Wsymb2"), SMHI_WSYMB2),
                precipitation=precip_chance(get_param(step, "pmean")),
                valid_at=moment,
            ))

        now = self.clock()
        current_hour = now.replace(minute=0, second=0, microsecond=0)
        current = next(
            (s for s in steps if parse_timestamp(s["validTime"]) >= current_hour),
            steps[-1],
        )

        condition = normalize_condition(get_param(current, "Wsymb2"), SMHI_WSYMB2)
        temperature = celsius_to_fahrenheit(num(get_param(current, "t")))
        current_weather = CurrentWeather(
            temperature=temperature,
            condition=condition,
            description=condition.value,
            humidity=round_half_up(num(get_param(current, "r"))),
            wind_speed=ms_to_mph(num(get_param(current, "ws"))),
            wind_direction=round_half_up(num(get_param(current, "wd"))),
            visibility=km_to_miles(num(get_param(current, "vis"), DEFAULT_VISIBILITY_KM)),
            feels_like=temperature,
            uv_index=0,
            pressure=round_half_up(num(get_param(current, "msl"), DEFAULT_PRESSURE_HPA)),
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
