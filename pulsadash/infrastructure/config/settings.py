"""Provides functions for loading and accessing configuration settings.

Supports loading from .env files, environment variables, and a dedicated
YAML configuration file (~/.pulsadash/config.yaml).
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv

from pulsadash.domain.errors import ConfigurationError
from pulsadash.domain.models.common import Endpoint

logger = logging.getLogger(__name__)

# --- Configuration Constants ---
DEFAULT_CONFIG_DIR = Path.home() / ".pulsadash"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
DEFAULT_CACHE_DIR = DEFAULT_CONFIG_DIR / "cache"
ENV_FILE_NAME = ".env"
ENV_PREFIX = "PULSADASH_"

DEFAULT_REQUEST_TIMEOUT_S = 8.0
DEFAULT_PROBE_TIMEOUT_S = 2.0
DEFAULT_MAX_RETRIES = 2

# --- Global Configuration Store ---
_config: Dict[str, Any] = {}
_test_config: Dict[str, Any] = {}
_loaded = False


def load_configuration(config_file: Path = DEFAULT_CONFIG_FILE, env_file: Optional[Path] = None) -> None:
    """Loads configuration from the YAML file and the .env file.

    Priority order (highest to lowest):
    1. Test overrides (set_config_for_testing)
    2. Environment Variables (PULSADASH_ prefixed)
    3. .env file
    4. YAML configuration file
    5. Default values

    Args:
        config_file: Path to the YAML configuration file.
        env_file: Path to the .env file (searches upwards from cwd if None).
    """
    global _config, _loaded
    if _loaded:
        logger.debug("Configuration already loaded.")
        return

    _config = {}

    if config_file.exists():
        try:
            with open(config_file, "r", encoding="utf-8") as f:
                yaml_config = yaml.safe_load(f)
            if isinstance(yaml_config, dict):
                _config.update(_flatten(yaml_config))
                logger.info(f"Loaded configuration from YAML: {config_file}")
            elif yaml_config is not None:
                logger.warning(f"YAML config file {config_file} did not contain a mapping.")
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load or parse YAML config {config_file}: {e}")
    else:
        logger.debug(f"YAML config file not found: {config_file}")

    dotenv_path = env_file or find_dotenv_path()
    if dotenv_path:
        # override=False: real environment variables take precedence
        if load_dotenv(dotenv_path=dotenv_path, override=False):
            logger.info(f"Loaded environment variables from: {dotenv_path}")
    else:
        logger.debug("No .env file found at or above the current directory.")

    _loaded = True


def reset_configuration() -> None:
    """Forgets loaded configuration so the next load_configuration() rereads it."""
    global _config, _loaded
    _config = {}
    _loaded = False


def _flatten(data: Dict[str, Any], prefix: str = "") -> Dict[str, Any]:
    """Flattens nested YAML mappings into dotted keys ('api.endpoints')."""
    flat: Dict[str, Any] = {}
    for key, value in data.items():
        dotted = f"{prefix}{key}"
        if isinstance(value, dict):
            flat.update(_flatten(value, prefix=f"{dotted}."))
        else:
            flat[dotted] = value
    return flat


def _env_name(key: str) -> str:
    return ENV_PREFIX + key.upper().replace(".", "_")


def get_config(key: str, default: Any = None) -> Any:
    """Gets a configuration value by dotted key.

    'api.token' is looked up as the PULSADASH_API_TOKEN environment variable
    before falling back to the YAML value.

    Args:
        key: The configuration key.
        default: Default value if the key is not found.

    Returns:
        The configuration value.
    """
    if key in _test_config:
        return _test_config[key]

    env_key = _env_name(key)
    if env_key in os.environ:
        return os.environ[env_key]

    if key in _config:
        return _config[key]

    logger.debug(f"Config key '{key}' not found. Returning default: {default}")
    return default


def find_dotenv_path() -> Optional[Path]:
    """Searches for the .env file upwards from the current directory."""
    cwd = Path.cwd()
    for path in [cwd] + list(cwd.parents):
        env_path = path / ENV_FILE_NAME
        if env_path.is_file():
            return env_path
    return None


def _as_float(key: str, default: float) -> float:
    value = get_config(key, default)
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Config key '{key}' must be a number, got {value!r}") from e


# --- Convenience Functions ---

def parse_endpoints(raw: Any) -> List[Endpoint]:
    """Parses a comma-separated string or a list into trimmed, non-empty endpoints."""
    if raw is None:
        return []
    items = raw.split(",") if isinstance(raw, str) else list(raw)
    endpoints = []
    for item in items:
        url = str(item).strip().rstrip("/")
        if url:
            endpoints.append(Endpoint(url))
    return endpoints


def get_api_endpoints() -> List[Endpoint]:
    """Returns the ordered candidate endpoint list (PULSADASH_API_ENDPOINTS / api.endpoints)."""
    return parse_endpoints(get_config("api.endpoints"))


def get_api_token() -> Optional[str]:
    """Returns the static X-Token header value, if configured."""
    token = get_config("api.token")
    return str(token) if token else None


def get_cache_dir() -> Path:
    return Path(get_config("cache.dir", DEFAULT_CACHE_DIR)).expanduser()


def get_request_timeout() -> float:
    return _as_float("api.timeout", DEFAULT_REQUEST_TIMEOUT_S)


def get_probe_timeout() -> float:
    return _as_float("api.probe_timeout", DEFAULT_PROBE_TIMEOUT_S)


def get_max_retries() -> int:
    value = get_config("api.retries", DEFAULT_MAX_RETRIES)
    try:
        retries = int(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Config key 'api.retries' must be an integer, got {value!r}") from e
    if retries < 0:
        raise ConfigurationError("Config key 'api.retries' must not be negative")
    return retries


def set_config_for_testing(config_dict: Dict[str, Any]) -> None:
    """Set configuration values for testing purposes.

    These values override any existing configuration.
    """
    _test_config.update(config_dict)
    logger.debug(f"Set testing configuration: {config_dict}")


def clear_test_config() -> None:
    """Clear all testing configuration values."""
    _test_config.clear()
    logger.debug("Cleared testing configuration")
