"""
Configuration management for the org chart editor.

Config is stored in config.json next to the project root. Every key can be
overridden by an environment variable (``.env`` is loaded by app.py).

Priority:
1. Environment variable
2. config.json
3. Built-in default
"""

import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Optional

from orgchart.paths import get_config_path, get_db_dir

logger = logging.getLogger(__name__)


DEFAULT_API_URL = "http://localhost:5000/api"
DEFAULT_TIMEOUT = 10.0
DEFAULT_PORT = 8081

ENV_VARS = {
    "store": "ORGCHART_STORE",
    "api_base_url": "ORGCHART_API_URL",
    "api_token": "ORGCHART_API_TOKEN",
    "request_timeout": "ORGCHART_REQUEST_TIMEOUT",
    "data_dir": "ORGCHART_DATA_DIR",
    "port": "ORGCHART_PORT",
    "seed_demo": "ORGCHART_SEED_DEMO",
}


@dataclass
class Settings:
    store: str = "file"
    api_base_url: str = DEFAULT_API_URL
    api_token: Optional[str] = None
    request_timeout: float = DEFAULT_TIMEOUT
    data_dir: str = ""
    port: int = DEFAULT_PORT
    seed_demo: bool = True


def load_config() -> dict:
    """Load configuration from config.json."""
    config_path = get_config_path()
    if config_path.exists():
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning(f"Failed to load config from {config_path}: {e}")
            return {}
    return {}


def save_config(config: dict) -> None:
    """Save configuration to config.json."""
    config_path = get_config_path()
    with open(config_path, 'w', encoding='utf-8') as f:
        json.dump(config, f, indent=2)


def _lookup(key: str, config: dict) -> Any:
    env_value = os.environ.get(ENV_VARS[key])
    if env_value:
        return env_value
    return config.get(key)


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def get_settings() -> Settings:
    """Resolve settings from the environment, config.json and defaults."""
    config = load_config()
    settings = Settings(data_dir=str(get_db_dir()))

    store = _lookup("store", config)
    if store:
        settings.store = str(store).lower()

    api_url = _lookup("api_base_url", config)
    if api_url:
        settings.api_base_url = str(api_url)

    token = _lookup("api_token", config)
    if token:
        settings.api_token = str(token)

    timeout = _lookup("request_timeout", config)
    if timeout is not None:
        try:
            settings.request_timeout = float(timeout)
        except (TypeError, ValueError):
            logger.warning(f"Ignoring invalid request_timeout: {timeout!r}")

    data_dir = _lookup("data_dir", config)
    if data_dir:
        settings.data_dir = str(data_dir)

    port = _lookup("port", config)
    if port is not None:
        try:
            settings.port = int(port)
        except (TypeError, ValueError):
            logger.warning(f"Ignoring invalid port: {port!r}")

    seed = _lookup("seed_demo", config)
    if seed is not None:
        settings.seed_demo = _as_bool(seed)

    return settings
