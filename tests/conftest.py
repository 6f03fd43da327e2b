"""
Shared fixtures for the Rainz test suite.

Every provider test runs against httpx.MockTransport; nothing here touches
the network. The clock is pinned to Monday 2026-10-19 14:20 UTC so hourly
windows and daily grouping are deterministic.
"""

import logging
from datetime import date, datetime, timedelta, timezone

import httpx
import pytest

logging.basicConfig(level=logging.DEBUG)

FIXED_NOW = datetime(2026, 10, 19, 14, 20, tzinfo=timezone.utc)


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def client_for():
    """Build an AsyncClient whose requests are answered by `handler`."""
    def _build(handler):
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return _build


@pytest.fixture
def open_meteo_payload():
    def _build(offset_seconds=0):
        start = datetime(2026, 10, 19, 0, 0)
        times = [(start + timedelta(hours=i)).strftime("%Y-%m-%dT%H:%M") for i in range(48)]
        days = [(date(2026, 10, 19) + timedelta(days=d)).isoformat() for d in range(10)]
        return {
            "latitude": 52.52,
            "longitude": 13.41,
            "utc_offset_seconds": offset_seconds,
            "timezone": "Europe/Berlin",
            "current_weather": {
                "temperature": 61.7,
                "windspeed": 8.4,
                "winddirection": 225,
                "weathercode": 3,
                "time": "2026-10-19T14:15",
            },
            "hourly": {
                "time": times,
                "temperature_2m": [50.0 + i for i in range(48)],
                "precipitation_probability": [i * 2 for i in range(48)],
                "weathercode": [61 if i % 2 else 2 for i in range(48)],
                "relative_humidity_2m": [70] * 48,
                "apparent_temperature": [59.6] * 48,
                "visibility": [16093.4] * 48,
                "pressure_msl": [1012.6] * 48,
                "uv_index": [2.5] * 48,
                "wind_speed_10m": [8.4] * 48,
                "wind_direction_10m": [225] * 48,
            },
            "daily": {
                "time": days,
                "weathercode": [3] * 10,
                "temperature_2m_max": [68.4] * 10,
                "temperature_2m_min": [45.5] * 10,
                "precipitation_probability_max": [20] * 10,
                "sunrise": [f"{d}T07:31" for d in days],
                "sunset": [f"{d}T18:10" for d in days],
            },
        }
    return _build


@pytest.fixture
def weatherapi_payload():
    def _day(day: date, code: int, text: str):
        hours = []
        for h in range(24):
            hours.append({
                "time": f"{day.isoformat()} {h:02d}:00",
                "temp_f": 50.0 + h,
                "condition": {"text": text, "code": code},
                "chance_of_rain": h * 3,
            })
        return {
            "date": day.isoformat(),
            "astro": {"sunrise": "07:31 AM", "sunset": "06:10 PM"},
            "day": {
                "maxtemp_f": 66.2,
                "mintemp_f": 48.9,
                "daily_chance_of_rain": 40,
                "condition": {"text": text, "code": code},
            },
            "hour": hours,
        }

    return {
        "location": {
            "name": "Berlin",
            "region": "Berlin",
            "country": "Germany",
            "localtime": "2026-10-19 16:20",
        },
        "current": {
            "temp_f": 61.5,
            "condition": {"text": "Partly cloudy", "code": 1003},
            "humidity": 72,
            "wind_mph": 9.4,
            "wind_degree": 230,
            "vis_miles": 6.0,
            "feelslike_f": 60.1,
            "uv": 3.0,
            "pressure_mb": 1014.0,
            "air_quality": {"us-epa-index": 2},
        },
        "forecast": {
            "forecastday": [
                _day(date(2026, 10, 19), 1003, "Partly cloudy"),
                _day(date(2026, 10, 20), 1063, "Patchy rain possible"),
                _day(date(2026, 10, 21), 1000, "Sunny"),
            ]
        },
    }


@pytest.fixture
def metno_payload():
    start = datetime(2026, 10, 19, 0, 0, tzinfo=timezone.utc)
    series = []
    for i in range(60):
        moment = start + timedelta(hours=i)
        period_key = "next_1_hours" if i < 48 else "next_6_hours"
        series.append({
            "time": moment.strftime("%Y-%m-%dT%H:%M:%SZ"),
            "data": {
                "instant": {
                    "details": {
                        "air_temperature": 15.0 if i == 14 else 10.0,
                        "relative_humidity": 80.2,
                        "wind_speed": 4.0,
                        "wind_from_direction": 200.0,
                        "air_pressure_at_sea_level": 1008.4,
                    }
                },
                period_key: {
                    "summary": {"symbol_code": "rain" if i == 14 else "partlycloudy_night"},
                    "details": {"precipitation_amount": 0.3},
                },
            },
        })
    return {"type": "Feature", "properties": {"timeseries": series}}


@pytest.fixture
def brightsky_payload():
    start = datetime(2026, 10, 19, 0, 0, tzinfo=timezone.utc)
    records = []
    for i in range(48):
        records.append({
            "timestamp": (start + timedelta(hours=i)).isoformat(),
            "temperature": 12.0,
            "icon": "partly-cloudy-day",
            "relative_humidity": 65,
            "wind_speed": 16.0,
            "wind_direction": 270,
            "visibility": 20000,
            "pressure_msl": 1019.6,
            "precipitation_probability": 15,
        })
    return {"weather": records, "sources": []}


@pytest.fixture
def smhi_payload():
    start = datetime(2026, 10, 19, 0, 0, tzinfo=timezone.utc)

    def _param(name, value):
        return {"name": name, "levelType": "hl", "level": 2, "unit": "", "values": [value]}

    steps = []
    for i in range(40):
        steps.append({
            "validTime": (start + timedelta(hours=i)).strftime("%Y-%m-%dT%H:%M:%SZ"),
            "parameters": [
                _param("t", 8.0),
                _param("ws", 5.0),
                _param("wd", 180),
                _param("r", 88),
                _param("vis", 50.0),
                _param("msl", 1002.3),
                _param("Wsymb2", 19 if i == 14 else 3),
                _param("pmean", 2.0 if i == 15 else 0.4),
            ],
        })
    return {"approvedTime": "2026-10-19T13:00:00Z", "timeSeries": steps}


@pytest.fixture
def seventimer_payload():
    series = []
    for step in range(24):
        series.append({
            "timepoint": 3 * (step + 1),
            "cloudcover": 2,
            "lifted_index": 10,
            "prec_type": "rain" if step == 1 else "none",
            "prec_amount": 0,
            "temp2m": 14,
            "rh2m": "65%",
            "wind10m": {"direction": "NW", "speed": 3},
            "weather": "clearday",
        })
    return {"product": "civil", "init": "2026101912", "dataseries": series}
