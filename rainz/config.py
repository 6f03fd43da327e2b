"""
Runtime configuration for Rainz.

Settings come from environment variables (optionally a .env file loaded
with python-dotenv). Nothing here is required: without a WeatherAPI key
the commercial adapter is skipped, and without a community database the
consensus adapter stays silent.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from rainz.registry import get_provider_config

logger = logging.getLogger(__name__)

DEFAULT_ADAPTER_TIMEOUT = 5.0    # seconds per provider call
DEFAULT_REQUEST_TIMEOUT = 15.0   # seconds for the whole aggregation
DEFAULT_USER_AGENT = "Rainz Weather App (contact@rainz.app)"


@dataclass(frozen=True)
class Settings:
    weatherapi_key: Optional[str] = None
    adapter_timeout: float = DEFAULT_ADAPTER_TIMEOUT
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    community_db_path: Optional[Path] = None
    user_agent: str = DEFAULT_USER_AGENT


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning(f"[load_settings] {name}={raw!r} is not a number, using {default}")
        return default
    if value <= 0:
        logger.warning(f"[load_settings] {name}={raw!r} must be positive, using {default}")
        return default
    return value


def load_settings(dotenv: bool = True) -> Settings:
    """
    Build Settings from the environment.

    Args:
        dotenv: Load a .env file first (the CLI does; tests usually don't)
    """
    if dotenv:
        load_dotenv()

    # The WeatherAPI key has been deployed under several names; first one wins
    weatherapi_key = None
    for name in get_provider_config("weatherapi").api_key_env:
        value = os.getenv(name)
        if value:
            weatherapi_key = value
            break

    db_path = os.getenv("RAINZ_COMMUNITY_DB")

    settings = Settings(
        weatherapi_key=weatherapi_key,
        adapter_timeout=_float_env("RAINZ_ADAPTER_TIMEOUT", DEFAULT_ADAPTER_TIMEOUT),
        request_timeout=_float_env("RAINZ_REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT),
        community_db_path=Path(db_path) if db_path else None,
        user_agent=os.getenv("RAINZ_USER_AGENT") or DEFAULT_USER_AGENT,
    )

    logger.info(
        f"[load_settings] adapter_timeout={settings.adapter_timeout}s, "
        f"request_timeout={settings.request_timeout}s, "
        f"weatherapi_key={'set' if settings.weatherapi_key else 'missing'}, "
        f"community_db={settings.community_db_path or 'none'}"
    )
    return settings
