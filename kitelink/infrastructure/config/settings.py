"""Provides functions for loading and accessing configuration settings.

Supports loading from .env files, environment variables, and a dedicated
YAML configuration file (~/.kitelink/config.yaml), and builds the immutable
`KiteConnectConfig` used by the client.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from kitelink.domain.models.config import (
    DEFAULT_BASE_URL,
    DEFAULT_TIMEOUT_SECONDS,
    CacheConfig,
    KiteConnectConfig,
    RetryPolicy,
)

logger = logging.getLogger(__name__)

# --- Configuration Constants ---
DEFAULT_CONFIG_DIR = Path.home() / ".kitelink"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
ENV_FILE_NAME = ".env"

_config: Dict[str, Any] = {}
_test_config: Dict[str, Any] = {}
_loaded = False


def _flatten(mapping: Dict[str, Any], prefix: str = "") -> Dict[str, Any]:
    """{'retry': {'max_retries': 5}} -> {'retry.max_retries': 5}"""
    flat: Dict[str, Any] = {}
    for key, value in mapping.items():
        full_key = f"{prefix}{key}"
        if isinstance(value, dict):
            flat.update(_flatten(value, prefix=f"{full_key}."))
        else:
            flat[full_key] = value
    return flat


def load_configuration(config_file: Path = DEFAULT_CONFIG_FILE, env_file: Optional[Path] = None, force: bool = False) -> None:
    """Loads configuration from environment, .env file, and YAML file.

    Priority order (highest to lowest):
    1. Environment Variables
    2. .env file
    3. YAML configuration file
    4. Defaults passed to get_config

    Args:
        config_file: Path to the YAML configuration file.
        env_file: Path to the .env file (searches upwards from cwd if None).
        force: Reload even if configuration was already loaded.
    """
    global _config, _loaded
    if _loaded and not force:
        logger.debug("Configuration already loaded.")
        return

    _config = {}

    # 1. YAML file (lowest priority)
    if config_file.exists():
        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                yaml_config = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load or parse YAML config {config_file}: {e}")
        else:
            if isinstance(yaml_config, dict):
                _config.update(_flatten(yaml_config))
                logger.info(f"Loaded configuration from YAML: {config_file}")
            elif yaml_config is not None:
                logger.warning(f"YAML config file {config_file} did not contain a dictionary.")
    else:
        logger.debug(f"YAML config file not found: {config_file}")

    # 2. .env file; override=False so real environment variables win
    dotenv_path = env_file or find_dotenv_path()
    if dotenv_path:
        if load_dotenv(dotenv_path=dotenv_path, override=False):
            logger.info(f"Loaded environment variables from: {dotenv_path}")
    else:
        logger.debug("No .env file found at or above current directory.")

    _loaded = True
    logger.info("Configuration loading process completed.")


def _coerce(value: str) -> Any:
    lowered = value.lower()
    if lowered == 'true':
        return True
    if lowered == 'false':
        return False
    try:
        if '.' in value:
            return float(value)
        return int(value)
    except ValueError:
        return value


def get_config(key: str, default: Any = None) -> Any:
    """
    Get a configuration value by key.

    Priority:
    1. Test configuration (if in testing mode)
    2. Environment variable (KEY upper-cased, dots replaced by underscores)
    3. YAML config
    4. Default value

    Args:
        key: The configuration key, e.g. 'retry.max_retries'
        default: Default value if the key is not found

    Returns:
        The configuration value
    """
    if key in _test_config:
        return _test_config[key]

    env_key = key.upper().replace('.', '_')
    if env_key in os.environ:
        return _coerce(os.environ[env_key])

    if key in _config:
        return _config[key]

    return default


def find_dotenv_path() -> Optional[Path]:
    """Searches for the .env file upwards from the current directory."""
    cwd = Path.cwd()
    for path in [cwd] + list(cwd.parents):
        env_path = path / ENV_FILE_NAME
        if env_path.is_file():
            return env_path
    return None


# --- Convenience Functions ---

def _optional_str(value: Any) -> Optional[str]:
    return str(value) if value not in (None, "") else None


def get_api_key() -> Optional[str]:
    """KITE_API_KEY / kite.api_key"""
    return _optional_str(get_config('kite.api_key'))


def get_access_token() -> Optional[str]:
    """KITE_ACCESS_TOKEN / kite.access_token"""
    return _optional_str(get_config('kite.access_token'))


def get_api_secret() -> Optional[str]:
    """KITE_API_SECRET / kite.api_secret"""
    return _optional_str(get_config('kite.api_secret'))


def get_transport_name() -> str:
    return str(get_config('http.transport', 'httpx')).lower()


def load_client_config() -> KiteConnectConfig:
    """Builds the immutable client configuration from the loaded settings.

    Raises:
        ValueError: If the values are inconsistent (e.g. max_delay < base_delay).
    """
    retry = RetryPolicy(
        max_retries=int(get_config('retry.max_retries', 3)),
        base_delay=float(get_config('retry.base_delay_ms', 200)) / 1000.0,
        max_delay=float(get_config('retry.max_delay_ms', 5000)) / 1000.0,
        exponential_backoff=bool(get_config('retry.exponential_backoff', True)),
        retry_non_idempotent=bool(get_config('retry.retry_non_idempotent', False)),
    )
    cache: Optional[CacheConfig] = None
    if bool(get_config('cache.enabled', True)):
        cache = CacheConfig(
            ttl=float(get_config('cache.ttl_minutes', 60)) * 60.0,
            max_entries=int(get_config('cache.max_entries', 1000)),
        )
    return KiteConnectConfig(
        enable_rate_limiting=bool(get_config('rate_limit.enabled', True)),
        retry=retry,
        cache=cache,
        timeout=float(get_config('http.timeout', DEFAULT_TIMEOUT_SECONDS)),
        base_url=str(get_config('kite.base_url', DEFAULT_BASE_URL)).rstrip('/'),
    )


def set_config_for_testing(config_dict: Dict[str, Any]) -> None:
    """
    Set configuration values for testing purposes.
    These values will override any existing configuration.

    Args:
        config_dict: Dictionary of configuration values to set
    """
    _test_config.update(config_dict)
    logger.debug(f"Set testing configuration: {config_dict}")


def clear_test_config() -> None:
    """Clear all testing configuration values."""
    _test_config.clear()
    logger.debug("Cleared testing configuration")
