"""
Configuration management for FlightTracker.

Settings come from a local JSON file (credentials for OpenSky and the map
service) with environment variables layered on top. Missing or unreadable
configuration is never fatal: the tracker starts with authentication
disabled and logs a warning.

config.json layout:
    {
        "opensky": {"client_id": "...", "client_secret": "..."},
        "arcgis": {"api_key": "..."}
    }
"""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = 'config.json'
DEFAULT_COUNTRIES_PATH = Path(__file__).parent / 'data' / 'countries.json'


@dataclass(frozen=True)
class OpenSkyConfig:
    """OpenSky Network API configuration."""
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    token_url: str = (
        'https://auth.opensky-network.org/auth/realms/opensky-network'
        '/protocol/openid-connect/token'
    )
    base_url: str = 'https://opensky-network.org/api'

    @property
    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret)


@dataclass(frozen=True)
class ArcGISConfig:
    """Map service configuration, consumed by the presenter only."""
    api_key: Optional[str] = None

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)


@dataclass(frozen=True)
class RefreshConfig:
    """Polling and filter timing."""
    interval_seconds: float = 60.0
    filter_debounce_ms: int = 150
    # Renew the token this long before it expires
    token_renewal_margin_seconds: float = 60.0
    hit_tolerance_px: float = 15.0


@dataclass(frozen=True)
class AppConfig:
    """Main application configuration."""
    opensky: OpenSkyConfig
    arcgis: ArcGISConfig
    refresh: RefreshConfig
    countries_path: Path
    debug: bool


def _read_config_file(path: Path) -> dict:
    """Read the JSON config file, or return {} with a warning."""
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except FileNotFoundError:
        logger.warning(f'Config file {path} not found - OpenSky credentials are required')
        return {}
    except (OSError, ValueError) as e:
        logger.warning(f'Could not read config file {path}: {e}')
        return {}

    if not isinstance(data, dict):
        logger.warning(f'Config file {path} is not a JSON object, ignoring it')
        return {}
    return data


def _section(data: dict, name: str) -> dict:
    value = data.get(name)
    return value if isinstance(value, dict) else {}


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f'Ignoring invalid {name}={raw!r}')
        return default


def load_config(path: Optional[str] = None) -> AppConfig:
    """
    Load configuration from the JSON file and environment.

    Environment variables win over the file so credentials can be injected
    without editing config.json.
    """
    config_path = Path(path or os.getenv('FLIGHTTRACKER_CONFIG', DEFAULT_CONFIG_PATH))
    data = _read_config_file(config_path)
    opensky = _section(data, 'opensky')
    arcgis = _section(data, 'arcgis')

    app_config = AppConfig(
        opensky=OpenSkyConfig(
            client_id=os.getenv('OPENSKY_CLIENT_ID') or opensky.get('client_id') or None,
            client_secret=os.getenv('OPENSKY_CLIENT_SECRET') or opensky.get('client_secret') or None,
        ),
        arcgis=ArcGISConfig(
            api_key=os.getenv('ARCGIS_API_KEY') or arcgis.get('api_key') or None,
        ),
        refresh=RefreshConfig(
            interval_seconds=_env_float('REFRESH_INTERVAL_SECONDS', 60.0),
            filter_debounce_ms=int(_env_float('FILTER_DEBOUNCE_MS', 150)),
            token_renewal_margin_seconds=_env_float('TOKEN_RENEWAL_MARGIN_SECONDS', 60.0),
        ),
        countries_path=Path(os.getenv('FLIGHTTRACKER_COUNTRIES', DEFAULT_COUNTRIES_PATH)),
        debug=os.getenv('FLIGHTTRACKER_DEBUG', '0') == '1',
    )
    logger.debug(f'Loaded config from {config_path} (opensky configured={app_config.opensky.is_configured})')
    return app_config


# Singleton instance
config = load_config()
