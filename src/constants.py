"""Constants used in the project."""

import logging
import os
from enum import Enum
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    CONNECTION_ERROR = 2
    INVALID_SELECTION = 3
    NOT_ADMIN = 4
    PARTIAL_FAILURE = 5


class Actions(Enum):
    """Top-level actions selectable from the CLI.

    Args:
        Enum (string): Actions supported by the program.
    """

    DOWNLOAD = "download"
    INSTALL = "install"
    BOTH = "both"


class VersionStrategies(Enum):
    """How a dependency's version constraint is turned into a version.

    Args:
        Enum (string): Strategy names accepted by config and CLI.
    """

    HIGHEST = "highest"
    LITERAL = "literal"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    GALLERY_URL = "https://www.powershellgallery.com/api/v2"
    NUGET_TOOL_URL = "https://dist.nuget.org/win-x86-commandline/latest/nuget.exe"
    NUGET_TOOL_FILE = "nuget.exe"
    NUGET_TOOL_LAUNCHER = ""  # e.g. "mono" on non-Windows hosts
    ACTIONS = [a.value for a in Actions]
    VERSION_STRATEGIES = [s.value for s in VersionStrategies]
    DEFAULT_ROOT_PACKAGE = "Microsoft.Graph"
    META_PACKAGE = "Microsoft.Graph"
    REPOSITORY_NAME = "NugetFerryLocal"
    POWERSHELL_EXECUTABLE = "pwsh"
    ARTIFACT_EXTENSION = ".nupkg"
    SIDECAR_EXTENSION = ".json"
    PARTIAL_EXTENSION = ".part"
    FEED_DIR_NAME = "feed"
    LOG_FORMAT = "[%(levelname)s] %(message)s"
    LOG_LEVEL_ENV = "NUGETFERRY_LOG_LEVEL"
    CONFIG_ENV = "NUGETFERRY_CONFIG"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    DOWNLOAD_CHUNK_SIZE = 64 * 1024
    RETRY_DELAY_SEC = 10
    RETRY_MAX_ATTEMPTS: Optional[int] = 10  # None retries forever
    MAX_RESOLUTION_DEPTH = 64
    VERSION_STRATEGY = VersionStrategies.HIGHEST.value
    USER_AGENT = "nugetferry/0.1"


# Config keys accepted from YAML/JSON files, mapped to Constants attributes.
_CONFIG_KEYS: Dict[str, str] = {
    "gallery_url": "GALLERY_URL",
    "nuget_tool_url": "NUGET_TOOL_URL",
    "nuget_tool_launcher": "NUGET_TOOL_LAUNCHER",
    "meta_package": "META_PACKAGE",
    "root_package": "DEFAULT_ROOT_PACKAGE",
    "repository_name": "REPOSITORY_NAME",
    "powershell": "POWERSHELL_EXECUTABLE",
    "request_timeout": "REQUEST_TIMEOUT",
    "max_depth": "MAX_RESOLUTION_DEPTH",
    "version_strategy": "VERSION_STRATEGY",
}


def _default_config_paths():
    """Candidate config file locations, highest priority first."""
    paths = []
    env_path = os.environ.get(Constants.CONFIG_ENV)
    if env_path:
        paths.append(env_path)
    paths.append(os.path.join(os.getcwd(), "nugetferry.yml"))
    paths.append(os.path.join(os.getcwd(), "nugetferry.yaml"))
    paths.append(os.path.join(os.path.expanduser("~"), ".config", "nugetferry", "nugetferry.yml"))
    return paths


def _load_yaml_config() -> Dict[str, Any]:
    """Return the first default-location YAML config as a dict, or {}."""
    import yaml  # pylint: disable=import-outside-toplevel

    for path in _default_config_paths():
        if not os.path.isfile(path):
            continue
        try:
            with open(path, "r", encoding="utf-8") as fh:
                data = yaml.safe_load(fh) or {}
        except (OSError, yaml.YAMLError) as exc:
            logger.warning("Couldn't read config file %s: %s", path, exc)
            continue
        if isinstance(data, dict):
            logger.debug("Loaded config from %s", path)
            return data
        logger.warning("Ignoring config file %s: top level is not a mapping", path)
    return {}


def apply_config(cfg: Dict[str, Any]) -> None:
    """Apply known keys from a config mapping onto Constants."""
    for key, attr in _CONFIG_KEYS.items():
        if key in cfg and cfg[key] is not None:
            setattr(Constants, attr, cfg[key])

    retry = cfg.get("retry")
    if isinstance(retry, dict):
        if retry.get("delay") is not None:
            Constants.RETRY_DELAY_SEC = float(retry["delay"])
        if "max_attempts" in retry:
            attempts = retry["max_attempts"]
            # 0 or null means retry forever
            Constants.RETRY_MAX_ATTEMPTS = int(attempts) if attempts else None
