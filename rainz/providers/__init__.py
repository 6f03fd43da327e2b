"""
Providers package for Rainz

One adapter per external weather source. Every adapter turns a
(lat, lon) into a normalized WeatherSource or None:

1. Open-Meteo - 7 numerical models (ECMWF, GFS, ICON, UKMO, METEOFRANCE, JMA, GEM)
2. WeatherAPI - Commercial aggregator (station info, astronomy, AQI)
3. Met.no - Norwegian Met Institute
4. Bright Sky - German Weather Service (DWD) open data
5. SMHI - Swedish Met Institute (Nordic coverage only)
6. 7Timer! - Lightweight global model

The community consensus pseudo-provider lives in rainz.community.
"""

from rainz.providers.base import BaseProvider, daily_from_hourly, upcoming_hours
from rainz.providers.brightsky import BrightSkyProvider
from rainz.providers.met_no import MetNoProvider
from rainz.providers.open_meteo import OpenMeteoModelProvider
from rainz.providers.seven_timer import SevenTimerProvider
from rainz.providers.smhi import SMHIProvider
from rainz.providers.weatherapi import WeatherAPIProvider

# Registry "family" -> adapter class
PROVIDER_CLASSES = {
    "open_meteo": OpenMeteoModelProvider,
    "weatherapi": WeatherAPIProvider,
    "met_no": MetNoProvider,
    "brightsky": BrightSkyProvider,
    "smhi": SMHIProvider,
    "seven_timer": SevenTimerProvider,
}

__all__ = [
    "BaseProvider",
    "daily_from_hourly",
    "upcoming_hours",
    "OpenMeteoModelProvider",
    "WeatherAPIProvider",
    "MetNoProvider",
    "BrightSkyProvider",
    "SMHIProvider",
    "SevenTimerProvider",
    "PROVIDER_CLASSES",
]
