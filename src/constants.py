"""Constants used in the project."""

from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    CONNECTION_ERROR = 2
    VALIDATION_FAILED = 3
    PLANNING_ERROR = 4


class Commands(Enum):
    """Subcommands supported by the program.

    Args:
        Enum (string): Subcommands supported by the program.
    """

    CHECK = "check"
    ENABLE = "enable"
    DISABLE = "disable"
    INSTALL = "install"
    UNINSTALL = "uninstall"
    UPDATE = "update"
    LIST = "list"
    DOWNLOAD = "download"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    BASE_MOD = "base"
    EXPANSION_MODS = ("space-age", "quality", "elevated-rails")
    LATEST = "latest"
    LIST_FORMATS = ("plain", "csv", "markdown")
    LIST_HEADERS = ("Name", "Enabled", "Version")

    MOD_LIST_FILE = "mod-list.json"
    INFO_JSON_FILE = "info.json"
    VERSION_COMPONENT_MAX = 65535

    REGISTRY_URL = "https://mods.factorio.com"
    REGISTRY_MOD_PATH = "/api/mods/{name}/full"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    DOWNLOAD_CHUNK_SIZE = 64 * 1024
    HTTP_RETRY_MAX = 3
    HTTP_RETRY_BASE_DELAY_SEC = 0.3
    HTTP_CACHE_TTL_SEC = 300
    SENSITIVE_QUERY_KEYS = ("token", "username", "password", "secret")

    DEFAULT_JOBS = 4
    DEFAULT_CONFIG_FILE = "~/.config/modgate/config.yml"
    CONFIG_SECTION = "modgate"
    ENV_PREFIX = "MODGATE_"
    ENV_LOG_LEVEL = "MODGATE_LOG_LEVEL"
    ENV_CONFIG = "MODGATE_CONFIG"

    LOG_FORMAT = "[%(levelname)s] %(message)s"
    LOG_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
    LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
