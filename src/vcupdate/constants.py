"""Constants used in the project."""

from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FATAL_ABORT = 1
    USAGE_ERROR = 2
    PARTIAL_FAILURE = 3


class SkipReasons(Enum):
    """Reasons recorded when an entry is not updated."""

    IGNORED = "ignored"
    REPOSITORY_UNAVAILABLE = "repository-unavailable"
    NO_ELIGIBLE_UPDATE = "no-eligible-update"
    UNVERSIONED = "unversioned"
    DYNAMIC = "dynamic"
    WRITE_ERROR = "write-error"
    CANCELLED = "cancelled"
    ABORTED = "aborted"


class RejectionReasons(Enum):
    """Reasons a published version was not selected."""

    QUALIFIER = "qualifier"
    MAJOR_GATE = "major-gate"
    BELOW_CURRENT = "below-current"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    CATALOG_SUFFIX = ".versions.toml"
    DEFAULT_CATALOGS_DIR = "gradle"
    DEFAULT_OUTPUT_DIR = "gradle/updates"
    DEFAULT_REJECTED_QUALIFIERS = ("alpha", "beta", "rc", "cr", "m", "preview", "b", "ea")
    REPOSITORY_URL_MAVEN_CENTRAL = "https://repo.maven.apache.org/maven2/"
    REPOSITORY_URL_GRADLE_PLUGINS = "https://plugins.gradle.org/m2/"
    MAVEN_METADATA_FILE = "maven-metadata.xml"
    PLUGIN_MARKER_SUFFIX = ".gradle.plugin"
    LOG_FORMAT = "[%(levelname)s] %(message)s"
    LOG_LEVEL_ENV = "VCUPDATE_LOG_LEVEL"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    HTTP_RETRY_MAX = 3
    HTTP_RETRY_BASE_DELAY_SEC = 0.3
    HTTP_CACHE_TTL_SEC = 300
    MAX_PARALLELISM = 8
    USER_AGENT = "vcupdate/0.1"
