"""
Tests for the WeatherSource data model and request validation.

Run with: python -m pytest tests/test_models.py -v
"""

import dataclasses
import logging
from datetime import date, datetime, timedelta, timezone

import pytest

from rainz.conditions import Condition
from rainz.models import (
    AggregationRequest,
    CommunityReport,
    CurrentWeather,
    DailyPoint,
    HourlyPoint,
    InvalidRequestError,
    SourceKind,
    StationInfo,
    WeatherSource,
)

logger = logging.getLogger(__name__)

START = datetime(2026, 10, 19, 14, 0, tzinfo=timezone.utc)


def make_current(**overrides):
    values = dict(
        temperature=62, condition=Condition.CLEAR, description="Clear", humidity=70,
        wind_speed=8, wind_direction=225, visibility=10, feels_like=60, uv_index=3, pressure=1013,
    )
    values.update(overrides)
    return CurrentWeather(**values)


def make_hours(n, start=START):
    return [
        HourlyPoint(time=f"{i:02d}", temperature=60, condition=Condition.CLEAR, precipitation=0,
                    valid_at=start + timedelta(hours=i))
        for i in range(n)
    ]


def make_days(n):
    return [
        DailyPoint(day="Mon", condition=Condition.CLEAR, description="Clear", high_temp=70,
                   low_temp=50, precipitation=10, date=date(2026, 10, 19) + timedelta(days=i))
        for i in range(n)
    ]


def make_source(**overrides):
    values = dict(
        source="ECMWF", location="Berlin", latitude=52.52, longitude=13.41, accuracy=0.95,
        current_weather=make_current(),
    )
    values.update(overrides)
    return WeatherSource(**values)


class TestWeatherSource:
    """Construction-time invariants."""

    def test_valid_source(self):
        source = make_source(hourly_forecast=make_hours(24), daily_forecast=make_days(10))
        assert len(source.hourly_forecast) == 24
        assert len(source.daily_forecast) == 10
        assert isinstance(source.hourly_forecast, tuple)
        assert source.has_measurements

    def test_is_immutable(self):
        source = make_source()
        with pytest.raises(dataclasses.FrozenInstanceError):
            source.accuracy = 0.5

    @pytest.mark.parametrize("accuracy", [-0.01, 1.01])
    def test_accuracy_out_of_range(self, accuracy):
        with pytest.raises(ValueError):
            make_source(accuracy=accuracy)

    @pytest.mark.parametrize("accuracy", [0.0, 1.0])
    def test_accuracy_bounds_inclusive(self, accuracy):
        assert make_source(accuracy=accuracy).accuracy == accuracy

    def test_too_many_hourly_points(self):
        logger.info("[TEST] 25 hourly points must be rejected")
        with pytest.raises(ValueError, match="hourly"):
            make_source(hourly_forecast=make_hours(25))

    def test_too_many_daily_points(self):
        with pytest.raises(ValueError, match="daily"):
            make_source(daily_forecast=make_days(11))

    def test_hourly_must_ascend(self):
        with pytest.raises(ValueError, match="ascending"):
            make_source(hourly_forecast=list(reversed(make_hours(3))))

    def test_daily_must_ascend(self):
        with pytest.raises(ValueError, match="ascending"):
            make_source(daily_forecast=list(reversed(make_days(3))))

    def test_community_source_has_no_measurements(self):
        source = make_source(
            source="Community Reports (3)",
            accuracy=0.68,
            current_weather=CurrentWeather.condition_only(Condition.RAIN, "Based on 3 user reports"),
            kind=SourceKind.COMMUNITY,
        )
        assert not source.has_measurements
        assert source.current_weather.temperature == 0
        assert source.current_weather.pressure == 0


class TestWireFormat:

    def test_to_dict_uses_camel_case(self):
        source = make_source(hourly_forecast=make_hours(2), daily_forecast=make_days(1))
        data = source.to_dict()
        logger.info(f"[TEST] Wire keys: {sorted(data)}")

        assert data["source"] == "ECMWF"
        assert data["accuracy"] == 0.95
        assert data["currentWeather"]["windSpeed"] == 8
        assert data["currentWeather"]["feelsLike"] == 60
        assert data["currentWeather"]["condition"] == "Clear"
        assert data["hourlyForecast"][0]["validAt"] == START.isoformat()
        assert data["dailyForecast"][0]["highTemp"] == 70
        assert data["dailyForecast"][0]["date"] == "2026-10-19"
        assert "stationInfo" not in data

    def test_optional_current_fields_omitted_when_unset(self):
        data = make_current().to_dict()
        assert "sunrise" not in data
        assert "aqi" not in data

        data = make_current(sunrise="07:31 AM", aqi=2, aqi_category="Moderate").to_dict()
        assert data["sunrise"] == "07:31 AM"
        assert data["aqi"] == 2
        assert data["aqiCategory"] == "Moderate"

    def test_station_info_included(self):
        station = StationInfo(name="Berlin", region="Berlin", country="Germany", localtime="2026-10-19 16:20")
        data = make_source(station_info=station).to_dict()
        assert data["stationInfo"]["country"] == "Germany"


class TestCommunityReport:

    def test_verified_condition_preferred(self):
        report = CommunityReport(latitude=1, longitude=2, reported_condition="Rain",
                                 actual_condition="Snow", created_at=START)
        assert report.condition == "Snow"

    def test_falls_back_to_reported(self):
        report = CommunityReport(latitude=1, longitude=2, reported_condition="Rain", created_at=START)
        assert report.condition == "Rain"


class TestAggregationRequest:
    """Input validation happens before any provider is contacted."""

    def test_valid_request(self):
        request = AggregationRequest.parse({"lat": 59.33, "lon": 18.07, "locationName": "Stockholm"})
        assert request.lat == 59.33
        assert request.lon == 18.07
        assert request.location_name == "Stockholm"

    def test_location_name_optional(self):
        request = AggregationRequest.parse({"lat": 0, "lon": 0})
        assert request.location_name is None
        assert isinstance(request.lat, float)

    @pytest.mark.parametrize("lat,lon", [(90, 180), (-90, -180)])
    def test_boundaries_accepted(self, lat, lon):
        request = AggregationRequest.parse({"lat": lat, "lon": lon})
        assert (request.lat, request.lon) == (lat, lon)

    @pytest.mark.parametrize("body,fragment", [
        ({"lat": 91, "lon": 0}, "Latitude"),
        ({"lat": -90.0001, "lon": 0}, "Latitude"),
        ({"lat": 0, "lon": 180.5}, "Longitude"),
        ({"lat": "45", "lon": 0}, "Latitude"),
        ({"lat": True, "lon": 0}, "Latitude"),
        ({"lat": float("nan"), "lon": 0}, "Latitude"),
        ({"lon": 0}, "Latitude"),
        ({"lat": 0}, "Longitude"),
    ])
    def test_invalid_coordinates(self, body, fragment):
        with pytest.raises(InvalidRequestError, match=fragment):
            AggregationRequest.parse(body)

    def test_location_name_too_long(self):
        with pytest.raises(InvalidRequestError, match="200"):
            AggregationRequest.parse({"lat": 0, "lon": 0, "locationName": "x" * 201})

    def test_location_name_at_limit(self):
        request = AggregationRequest.parse({"lat": 0, "lon": 0, "locationName": "x" * 200})
        assert len(request.location_name) == 200

    def test_location_name_must_be_string(self):
        with pytest.raises(InvalidRequestError):
            AggregationRequest.parse({"lat": 0, "lon": 0, "locationName": 12})

    def test_body_must_be_object(self):
        with pytest.raises(InvalidRequestError):
            AggregationRequest.parse([52.5, 13.4])

    def test_invalid_request_is_value_error(self):
        assert issubclass(InvalidRequestError, ValueError)
