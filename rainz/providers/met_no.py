"""
Met.no (Norwegian Meteorological Institute) Provider for Rainz

Fetches the Locationforecast 2.0 compact product from api.met.no.
Met.no runs one of the most sophisticated ECMWF-based implementations and
carries the second highest weight in the ensemble.

API terms require an identifying User-Agent; requests without one are
rejected with 403.

Timestamps are UTC; hourly labels and daily grouping stay in UTC.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from rainz.conditions import celsius_to_fahrenheit, metno_symbol_to_condition, ms_to_mph, round_half_up
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
from rainz.registry import ProviderConfig
from rainz.resilience import RetryConfig

logger = logging.getLogger(__name__)

DEFAULT_VISIBILITY_MILES = 10
DEFAULT_PRESSURE_HPA = 1013.0


def _period(entry: Dict[str, Any]) -> Dict[str, Any]:
    """The shortest forecast period published for an entry (1h, then 6h)."""
    data = entry.get("data") or {}
    return data.get("next_1_hours") or data.get("next_6_hours") or {}


def _symbol(entry: Dict[str, Any]) -> Optional[str]:
    return (_period(entry).get("summary") or {}).get("symbol_code")


def _precip_probability(entry: Dict[str, Any]) -> int:
    # Only the complete product publishes a probability; compact has amounts only
    return round_half_up(num((_period(entry).get("details") or {}).get("probability_of_precipitation")))


class MetNoProvider(BaseProvider):
    """
    Provider for Met.no (YR.no backend) forecasts.

    Uses the Locationforecast 2.0 API with compact format.
    """

    def __init__(
        self,
        config: ProviderConfig,
        user_agent: str,
        retry_config: Optional[RetryConfig] = None,
        clock=None,
    ):
        super().__init__(config, retry_config=retry_config, clock=clock)
        self.headers = {"User-Agent": user_agent}

    async def _fetch(
        self,
        lat: float,
        lon: float,
        location_name: Optional[str],
        client: httpx.AsyncClient,
    ) -> Optional[WeatherSource]:
        logger.info(f"[{self.name}] Fetching data from api.met.no...")
        # Met.no asks clients to truncate coordinates to 4 decimals
        params = {"lat": round(lat, 4), "lon": round(lon, 4)}
        data = await self._get_json(client, self.config.endpoint, params=params, headers=self.headers)

        timeseries = (data.get("properties") or {}).get("timeseries") or []
        if not timeseries:
            logger.warning(f"[{self.name}] No timeseries data in response")
            return None

        all_hours: List[HourlyPoint] = []
        entries = []
        for entry in timeseries:
            details = ((entry.get("data") or {}).get("instant") or {}).get("details") or {}
            temp_c = details.get("air_temperature")
            if temp_c is None:
                continue
            moment = parse_timestamp(entry["time"])
            entries.append((moment, details, entry))
            all_hours.append(HourlyPoint(
                time=hour_label(moment),
                temperature=celsius_to_fahrenheit(float(temp_c)),
                condition=metno_symbol_to_condition(_symbol(entry)),
                precipitation=_precip_probability(entry),
                valid_at=moment,
            ))

        if not entries:
            logger.warning(f"[{self.name}] No temperature records in timeseries")
            return None

        now = self.clock()
        hourly = upcoming_hours(all_hours, now)

        # Current conditions: the first entry of the upcoming window
        current_hour = now.replace(minute=0, second=0, microsecond=0)
        moment, details, entry = next(
            (e for e in entries if e[0] >= current_hour), entries[-1]
        )
        condition = metno_symbol_to_condition(_symbol(entry))
        temperature = celsius_to_fahrenheit(num(details.get("air_temperature")))

        current_weather = CurrentWeather(
            temperature=temperature,
            condition=condition,
            description=condition.value,
            humidity=round_half_up(num(details.get("relative_humidity"))),
            wind_speed=ms_to_mph(num(details.get("wind_speed"))),
            wind_direction=round_half_up(num(details.get("wind_from_direction"))),
            visibility=DEFAULT_VISIBILITY_MILES,
            feels_like=temperature,
            uv_index=round_half_up(num(details.get("ultraviolet_index_clear_sky"))),
            pressure=round_half_up(num(details.get("air_pressure_at_sea_level"), DEFAULT_PRESSURE_HPA)),
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
