"""Constants and configuration loading used in the project."""

import logging
import os
from enum import Enum
from typing import Any, Dict, Optional

from common.errors import ConfigError

logger = logging.getLogger(__name__)


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    CONNECTION_ERROR = 2
    RESOLUTION_ERROR = 3


class OutputFormats(Enum):
    """Output formats supported by the exporters."""

    JSON = "json"
    TEXT = "text"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    REGISTRY_URL_NUGET_V3 = "https://api.nuget.org/v3/index.json"
    REGISTRY_NAME_NUGET = "nuget.org"
    DEFAULT_FRAMEWORK = "net8.0"
    SUPPORTED_FORMATS = [
        OutputFormats.JSON.value,
        OutputFormats.TEXT.value,
    ]
    LOG_FORMAT = "[%(levelname)s] %(message)s"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    HTTP_RETRY_MAX = 3
    HTTP_RETRY_BASE_DELAY_SEC = 0.3
    HTTP_CACHE_TTL_SEC = 300
    MAX_WORKERS = 1

    # Project/lock file layout
    PROJECT_ASSETS_FILE = "project.assets.json"
    DEFAULT_INTERMEDIATE_DIR = "obj"
    PLACEHOLDER_ASSEMBLY = "_._"

    # Configuration discovery
    ENV_CONFIG = "DEPENDS_CONFIG"
    ENV_LOG_LEVEL = "DEPENDS_LOG_LEVEL"
    DEFAULT_CONFIG_PATH = os.path.join("~", ".config", "depends", "depends.yml")

    # Registries loaded from configuration: list of {"name": ..., "url": ...}
    REGISTRIES = [
        {"name": REGISTRY_NAME_NUGET, "url": REGISTRY_URL_NUGET_V3},
    ]


def _resolve_config_path(path: Optional[str]) -> Optional[str]:
    """Pick the config file: explicit path, then env var, then the user default."""
    if path:
        return path
    env_path = os.environ.get(Constants.ENV_CONFIG)
    if env_path:
        return env_path
    default_path = os.path.expanduser(Constants.DEFAULT_CONFIG_PATH)
    if os.path.isfile(default_path):
        return default_path
    return None


def _validate_registries(value: Any, path: str) -> list:
    if not isinstance(value, list):
        raise ConfigError(f"{path}: 'registries' must be a list")
    registries = []
    for entry in value:
        if isinstance(entry, str):
            registries.append({"name": entry, "url": entry})
            continue
        if not isinstance(entry, dict) or not entry.get("url"):
            raise ConfigError(f"{path}: every registry needs a 'url'")
        registries.append({"name": str(entry.get("name") or entry["url"]), "url": str(entry["url"])})
    return registries


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Load YAML configuration and apply it onto Constants.

    Recognized keys: registries, request_timeout, max_workers, framework.
    Unknown keys are ignored.

    Args:
        path: Optional explicit config file path.

    Returns:
        dict: The parsed configuration (empty when no file is used).

    Raises:
        ConfigError: If the file is missing, unreadable or not a mapping.
    """
    config_path = _resolve_config_path(path)
    if not config_path:
        return {}
    if not os.path.isfile(config_path):
        raise ConfigError(f"Config file not found: {config_path}")

    import yaml  # pylint: disable=import-outside-toplevel

    try:
        with open(config_path, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"Failed to load config {config_path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"{config_path}: top-level value must be a mapping")

    if "registries" in data:
        Constants.REGISTRIES = _validate_registries(data["registries"], config_path)
    try:
        if data.get("request_timeout") is not None:
            Constants.REQUEST_TIMEOUT = int(data["request_timeout"])
        if data.get("max_workers") is not None:
            Constants.MAX_WORKERS = max(1, int(data["max_workers"]))
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{config_path}: {exc}") from exc
    if data.get("framework"):
        Constants.DEFAULT_FRAMEWORK = str(data["framework"])

    logger.debug("Loaded configuration from %s", config_path)
    return data
