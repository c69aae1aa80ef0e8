"""Constants used in the project."""

from enum import Enum


class NegotiationStatus(Enum):
    """Terminal states of a version negotiation.

    Args:
        Enum (int): Status code, 0 when satisfied and -1 when failed.
    """

    SATISFIED = 0
    FAILED = -1


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    DEFAULT_VERSION_RANGE = "[1.0,)"
    DEFAULT_VERSION = "1.0.0"
    DEFAULT_BRANCH = "default"
    DEFAULT_LANGUAGE = "C++"
    DEFAULT_CHANGESET = "?"
    DEFAULT_GROUP = "com.virtuos.tnt"
    DEFAULT_PLATFORM = "Win32"
    DEFAULT_DEPENDENCY_TYPE = "Package"
    WILDCARD = "*"

    ARCHIVE_EXTENSION = ".zip"
    POM_FILE = "pom.xml"
    DEPENDENCIES_INFO_FILE = "dependencies.info"
    VCS_INFO_FILE = "vcs.info"

    MARKER_EXTENSION = ".t"
    DIRTY_EXTENSION = ".dirty"
    INDEX_FILE_PATTERN = "versions.{branch}.{platform}.cache"
    INDEX_LOCK_SUFFIX = ".writelock"
    INDEX_LOCK_TIMEOUT_SEC = 5 * 60
    INDEX_READ_RETRIES = 5
    INDEX_READ_RETRY_DELAY_SEC = 0.2

    # Integer version encoding: major*10^6 + minor*10^3 + build
    VERSION_INT_MAJOR = 1_000_000
    VERSION_INT_MINOR = 1_000
    VERSION_COMPONENT_MAX = 999

    LOG_FORMAT = "[%(levelname)s] %(message)s"
    ENV_LOG_LEVEL = "XPKG_LOG_LEVEL"
    ENV_CONFIG = "XPKG_CONFIG"
    CONFIG_FILENAMES = ["xpkg.yml", "xpkg.yaml"]

    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    HTTP_RETRY_MAX = 3
    HTTP_RETRY_BASE_DELAY_SEC = 0.3
    HTTP_CHUNK_SIZE = 64 * 1024
    USER_AGENT = "xpkg/0.3"
