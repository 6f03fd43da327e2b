"""
Provider Registry for Rainz

One declarative table of every weather source the engine knows about:
endpoint, model identifier and the static accuracy weight attached to
each result. Keeping the weights here (instead of inline in each
adapter) makes the weighting scheme auditable in one place.

Row order is the provider PRIORITY: the selector uses it to break ties
between sources with equal accuracy, and the aggregator returns results
in this order.

WEIGHTS (provider-intrinsic trust priors):
- ECMWF:         0.95  (best validated global model)
- Met.no:        0.94
- UKMO:          0.93
- DWD ICON:      0.92
- METEOFRANCE:   0.91  /  BrightSky DWD: 0.91
- GFS:           0.90  /  SMHI: 0.90
- JMA:           0.89
- GEM:           0.88  /  WeatherAPI: 0.88
- 7Timer!:       0.82  (fast, coarse)
- Community:     dynamic, capped at 0.85
"""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple


@dataclass(frozen=True)
class ProviderConfig:
    """Static configuration for one provider adapter."""
    key: str
    name: str              # Display name, unique within one response
    family: str            # Adapter implementation that serves this row
    accuracy: Optional[float]
    endpoint: str
    model: Optional[str] = None
    api_key_env: Tuple[str, ...] = ()


OPEN_METEO_URL = "https://api.open-meteo.com/v1/forecast"

PROVIDER_REGISTRY: Tuple[ProviderConfig, ...] = (
    # Open-Meteo multi-model API: each numerical model is its own adapter
    ProviderConfig("ecmwf", "ECMWF", "open_meteo", 0.95, OPEN_METEO_URL, model="ecmwf_ifs04"),
    ProviderConfig("gfs", "GFS", "open_meteo", 0.90, OPEN_METEO_URL, model="gfs_seamless"),
    ProviderConfig("icon", "DWD ICON", "open_meteo", 0.92, OPEN_METEO_URL, model="icon_seamless"),
    ProviderConfig("ukmo", "UKMO", "open_meteo", 0.93, OPEN_METEO_URL, model="ukmo_seamless"),
    ProviderConfig("meteofrance", "METEOFRANCE", "open_meteo", 0.91, OPEN_METEO_URL, model="meteofrance_seamless"),
    ProviderConfig("jma", "JMA", "open_meteo", 0.89, OPEN_METEO_URL, model="jma_seamless"),
    ProviderConfig("gem", "GEM", "open_meteo", 0.88, OPEN_METEO_URL, model="gem_seamless"),
    # Commercial aggregator
    ProviderConfig(
        "weatherapi", "WeatherAPI", "weatherapi", 0.88,
        "https://api.weatherapi.com/v1/forecast.json",
        api_key_env=("WEATHERAPI_KEY", "WEATHER_API_KEY", "WEATHER_API"),
    ),
    # Free national meteorological services
    ProviderConfig(
        "metno", "Met.no", "met_no", 0.94,
        "https://api.met.no/weatherapi/locationforecast/2.0/compact",
    ),
    ProviderConfig("brightsky", "BrightSky DWD", "brightsky", 0.91, "https://api.brightsky.dev/weather"),
    ProviderConfig(
        "smhi", "SMHI", "smhi", 0.90,
        "https://opendata-download-metfcst.smhi.se/api/category/pmp3g/version/2"
        "/geotype/point/lon/{lon}/lat/{lat}/data.json",
    ),
    # Lightweight global model
    ProviderConfig("seventimer", "7Timer!", "seven_timer", 0.82, "https://www.7timer.info/bin/api.pl"),
    # Crowd-sourced pseudo-provider (accuracy computed per request)
    ProviderConfig("community", "Community Reports", "community", None, "weather_reports"),
)

REGISTRY_BY_KEY: Dict[str, ProviderConfig] = {p.key: p for p in PROVIDER_REGISTRY}

# Tie-break order for the selector: display names in registry order
PROVIDER_PRIORITY: Tuple[str, ...] = tuple(p.name for p in PROVIDER_REGISTRY)


# Community consensus parameters
COMMUNITY_WINDOW_MINUTES = 60
COMMUNITY_BOX_DEGREES = 0.1     # ~10 km bounding box, not a true radius
COMMUNITY_MIN_REPORTS = 2
COMMUNITY_BASE_ACCURACY = 0.62
COMMUNITY_PER_REPORT = 0.08
COMMUNITY_ACCURACY_CEILING = 0.85
COMMUNITY_STATUS = "pending"

# Self-reported accuracy label -> scalar
ACCURACY_LABEL_SCALARS: Dict[str, float] = {
    "very_accurate": 1.0,
    "accurate": 0.8,
    "somewhat_accurate": 0.6,
    "inaccurate": 0.3,
}
UNSET_ACCURACY_SCALAR = 0.5


def get_provider_config(key: str) -> ProviderConfig:
    """Look up a registry row by key (KeyError if unknown)."""
    return REGISTRY_BY_KEY[key]
