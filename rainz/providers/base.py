"""
Base Provider for Rainz

Every adapter follows the same contract:

    fetch(lat, lon, location_name, client) -> WeatherSource | None

- builds a request to exactly one external endpoint
- maps network failure, non-2xx, malformed payload or a payload that
  violates the WeatherSource invariants to None ("Absent") - a single
  provider can never abort the whole aggregation
- normalizes units and conditions before constructing its WeatherSource

Subclasses implement `_fetch`; the failure boundary lives in `fetch`.
"""

import logging
from collections import defaultdict
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

import httpx

from rainz.conditions import Condition, plurality, round_half_up
from rainz.models import (
    DEFAULT_LOCATION_NAME,
    MAX_DAILY_POINTS,
    MAX_HOURLY_POINTS,
    DailyPoint,
    HourlyPoint,
    WeatherSource,
)
from rainz.registry import ProviderConfig
from rainz.resilience import DEFAULT_RETRY_CONFIG, RetryConfig, categorize_error, retry_async

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def num(value: Any, default: float = 0.0) -> float:
    """Coerce a payload value to float, falling back when missing or junk."""
    if value is None or isinstance(value, bool):
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def reading(value: Any) -> Optional[int]:
    """Round a measured value half-up; None (not 0) when it is missing or junk."""
    value = num(value, None)
    return None if value is None else round_half_up(value)


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp, accepting a trailing 'Z'."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


def hour_label(moment: datetime) -> str:
    """Display label for an hourly point: '03 PM'."""
    return moment.strftime("%I %p")


def day_label(day: date) -> str:
    """Display label for a daily point: 'Mon'."""
    return day.strftime("%a")


def location_label(location_name: Optional[str], fallback: Optional[str] = None) -> str:
    return location_name or fallback or DEFAULT_LOCATION_NAME


def upcoming_hours(points: Iterable[HourlyPoint], now: datetime,
                   limit: int = MAX_HOURLY_POINTS) -> List[HourlyPoint]:
    """
    Keep the hourly points from the current hour onward, ascending, capped.

    `now` must be comparable with the points' timestamps (both aware, or
    both naive provider-local time).
    """
    current_hour = now.replace(minute=0, second=0, microsecond=0)
    kept = sorted((p for p in points if p.valid_at >= current_hour), key=lambda p: p.valid_at)
    return kept[:limit]


def daily_from_hourly(points: Iterable[HourlyPoint], today: date,
                      limit: int = MAX_DAILY_POINTS) -> List[DailyPoint]:
    """
    Aggregate hourly points into daily High/Low for providers that only
    publish an hourly series.

    Args:
        points: Full hourly series (not the 24h display window)
        today: "Today" in the timestamps' frame; earlier dates are dropped
        limit: Maximum number of days

    Returns:
        DailyPoint list ordered by date, day 0 = today
    """
    by_date: Dict[date, List[HourlyPoint]] = defaultdict(list)
    for point in points:
        day = point.valid_at.date()
        if day >= today:
            by_date[day].append(point)

    results = []
    for day in sorted(by_date)[:limit]:
        hours = by_date[day]
        temps = [h.temperature for h in hours]
        condition = plurality(h.condition for h in hours if h.condition is not Condition.UNKNOWN)
        results.append(DailyPoint(
            day=day_label(day),
            condition=condition,
            description=condition.value,
            high_temp=max(temps),
            low_temp=min(temps),
            precipitation=max(h.precipitation for h in hours),
            date=day,
        ))
    return results


class BaseProvider:
    """Template for one weather provider adapter."""

    def __init__(
        self,
        config: ProviderConfig,
        retry_config: Optional[RetryConfig] = None,
        clock: Optional[Clock] = None,
    ):
        self.config = config
        self.name = config.name
        self.accuracy = config.accuracy
        self.retry_config = retry_config or DEFAULT_RETRY_CONFIG
        self.clock = clock or utc_now

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"

    async def fetch(
        self,
        lat: float,
        lon: float,
        location_name: Optional[str],
        client: httpx.AsyncClient,
    ) -> Optional[WeatherSource]:
        """
        Fetch and normalize this provider's forecast.

        Returns:
            A complete WeatherSource, or None if anything went wrong
        """
        try:
            source = await self._fetch(lat, lon, location_name, client)
        except (httpx.HTTPError, ValueError, KeyError, TypeError, IndexError, AttributeError) as e:
            error_type, error_msg = categorize_error(e)
            logger.warning(f"[{self.name}] Fetch failed ({error_type.value}): {error_msg}")
            return None
        except Exception as e:
            logger.error(f"[{self.name}] Unexpected error: {e}", exc_info=True)
            return None

        if source is None:
            logger.info(f"[{self.name}] No data for ({lat}, {lon})")
        else:
            logger.info(
                f"[{self.name}] OK - {len(source.hourly_forecast)} hourly, "
                f"{len(source.daily_forecast)} daily"
            )
        return source

    async def _fetch(
        self,
        lat: float,
        lon: float,
        location_name: Optional[str],
        client: httpx.AsyncClient,
    ) -> Optional[WeatherSource]:
        raise NotImplementedError

    async def _get_json(
        self,
        client: httpx.AsyncClient,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """GET a JSON object with retry; non-2xx and non-object bodies raise."""

        async def _request() -> Any:
            resp = await client.get(url, params=params, headers=headers)
            logger.debug(f"[{self.name}] GET {resp.request.url} -> {resp.status_code}")
            resp.raise_for_status()
            return resp.json()

        data = await retry_async(_request, provider_name=self.name, config=self.retry_config)
        if not isinstance(data, dict):
            raise ValueError(f"expected a JSON object, got {type(data).__name__}")
        return data

    def _today(self, offset_seconds: float = 0.0) -> date:
        """Today's date in a frame `offset_seconds` away from UTC."""
        return (self.clock() + timedelta(seconds=offset_seconds)).date()
