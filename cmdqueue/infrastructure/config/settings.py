"""Provides functions for loading and accessing configuration settings.

Supports loading from .env files, environment variables, and a dedicated
configuration file (~/.cmdqueue/config.yaml). SettingsConfigurationProvider
exposes the same values through the ConfigurationProvider interface.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from cmdqueue.domain.interfaces.config import ConfigurationProvider
from cmdqueue.domain.models.request import Destination

logger = logging.getLogger(__name__)

# --- Configuration Constants ---
DEFAULT_CONFIG_DIR = Path.home() / ".cmdqueue"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
ENV_FILE_NAME = ".env"
# Keys under this prefix skip the bool/number coercion of environment values
VERBATIM_KEY_PREFIX = "commander."

# --- Global Configuration Store ---
_config: Dict[str, Any] = {}
_test_config: Dict[str, Any] = {}
_loaded = False

def load_configuration(config_file: Path = DEFAULT_CONFIG_FILE, env_file: Optional[Path] = None, force: bool = False) -> None:
    """Loads configuration from environment, .env file, and YAML file.

    Priority order (highest to lowest):
    1. Test overrides
    2. Environment Variables
    3. .env file
    4. YAML configuration file
    5. Default values supplied by callers

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
            if isinstance(yaml_config, dict):
                _config.update(_flatten(yaml_config))
                logger.info(f"Loaded configuration from YAML: {config_file}")
            elif yaml_config is not None:
                logger.warning(f"YAML config file {config_file} did not contain a dictionary.")
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load or parse YAML config {config_file}: {e}")
    else:
        logger.debug(f"YAML config file not found: {config_file}")

    # 2. .env file; existing environment variables take precedence
    dotenv_path = env_file or find_dotenv_path()
    if dotenv_path:
        if load_dotenv(dotenv_path=dotenv_path, override=False):
            logger.info(f"Loaded environment variables from: {dotenv_path}")
    else:
        logger.debug("No .env file found at or above current directory.")

    _loaded = True
    logger.debug("Configuration loading process completed.")

def _flatten(data: Dict[str, Any], prefix: str = "") -> Dict[str, Any]:
    """Flattens nested YAML sections into dotted keys ('polling.max_attempts')."""
    flat: Dict[str, Any] = {}
    for key, value in data.items():
        dotted = f"{prefix}{key}"
        if isinstance(value, dict):
            flat.update(_flatten(value, f"{dotted}."))
        else:
            flat[dotted] = value
    return flat

def get_config(key: str, default: Any = None) -> Any:
    """
    Get a configuration value by key.

    Priority:
    1. Test configuration
    2. Environment variable (key upper-cased, dots replaced by underscores)
    3. YAML config
    4. Default value

    Args:
        key: The configuration key
        default: Default value if the key is not found

    Returns:
        The configuration value
    """
    if key in _test_config:
        return _test_config[key]

    env_key = key.upper().replace('.', '_')
    if env_key in os.environ:
        value = os.environ[env_key]
        # Credentials and URLs are taken verbatim
        if key.startswith(VERBATIM_KEY_PREFIX):
            return value
        if value.lower() == 'true':
            return True
        elif value.lower() == 'false':
            return False
        try:
            if '.' in value:
                return float(value)
            else:
                return int(value)
        except (ValueError, TypeError):
            return value

    if key in _config:
        return _config[key]

    logger.debug(f"Config key '{key}' not found in environment or loaded config. Returning default: {default}")
    return default

def get_int(key: str, default: int) -> int:
    """Reads an integer setting, falling back to default on bad values."""
    value = get_config(key, default)
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.warning(f"Config key '{key}' has non-integer value {value!r}. Using {default}.")
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

def get_api_url() -> Optional[str]:
    """Checks COMMANDER_API_URL first (env or commander.api_url in YAML)."""
    url = get_config('commander.api_url')
    return str(url) if url else None

def get_api_key() -> Optional[str]:
    """Checks COMMANDER_API_KEY first (env or commander.api_key in YAML)."""
    key = get_config('commander.api_key')
    # str(): YAML parses an unquoted numeric key as a number
    return str(key) if key else None

def get_destination() -> Optional[Destination]:
    """Returns the remote destination, or None unless both URL and key are set."""
    api_url = get_api_url()
    api_key = get_api_key()
    if not api_url or not api_key:
        return None
    return Destination(api_url=api_url, api_key=api_key)

def get_storage_dir() -> Path:
    return Path(str(get_config('storage.dir', DEFAULT_CONFIG_DIR / "state"))).expanduser()

def set_config_for_testing(config_dict: Dict[str, Any]) -> None:
    """
    Set configuration values for testing purposes.
    These values will override any existing configuration.

    Args:
        config_dict: Dictionary of configuration values to set
    """
    _test_config.update(config_dict)
    logger.debug(f"Set testing configuration keys: {sorted(config_dict)}")

def clear_test_config() -> None:
    """Clear all testing configuration values."""
    _test_config.clear()
    logger.debug("Cleared testing configuration")

class SettingsConfigurationProvider(ConfigurationProvider):
    """ConfigurationProvider backed by this module's layered settings."""

    def get(self, key: str, default: Optional[Any] = None) -> Optional[Any]:
        return get_config(key, default)

    def load_config(self) -> None:
        load_configuration(force=True)

    def get_destination(self) -> Optional[Destination]:
        return get_destination()
