"""Constants used in the project."""

import os
from enum import Enum
from pathlib import Path


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    CONNECTION_ERROR = 2
    MODEL_ERROR = 3
    INPUT_ERROR = 4


class RepositoryLayouts(Enum):
    """Repository layouts understood by the fetcher.

    Args:
        Enum (string): Layout identifiers as written in descriptors.
    """

    DEFAULT = "default"
    LEGACY = "legacy"


class ValidationLevels(Enum):
    """Validation levels for the merge engine, ordered by strictness.

    Args:
        Enum (int): Numeric level; higher is stricter.
    """

    MINIMAL = 0
    MAVEN_2_0 = 20
    MAVEN_3_0 = 30
    MAVEN_3_1 = 31
    STRICT = 40


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    DEFAULT_REPOSITORY_ID = "central"
    DEFAULT_REPOSITORY_LAYOUT = RepositoryLayouts.DEFAULT.value
    DEFAULT_REPOSITORY_URL = "http://repo.maven.apache.org/maven2"
    DESCRIPTOR_EXTENSION = "pom"
    DEFAULT_DEPENDENCY_TYPE = "jar"
    DEFAULT_PLUGIN_GROUP_ID = "org.apache.maven.plugins"
    PROJECT_FILE = "pom.xml"
    DEFAULT_RELATIVE_PATH = "../pom.xml"

    VALIDATION_LEVEL_NAMES = {
        "minimal": ValidationLevels.MINIMAL,
        "2.0": ValidationLevels.MAVEN_2_0,
        "3.0": ValidationLevels.MAVEN_3_0,
        "3.1": ValidationLevels.MAVEN_3_1,
        "strict": ValidationLevels.STRICT,
    }
    DEFAULT_VALIDATION_LEVEL = ValidationLevels.MAVEN_3_0

    LOG_FORMAT = "[%(levelname)s] %(message)s"
    LOG_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    USER_AGENT = "pomoverride/1.0"

    ENV_LOG_LEVEL = "POMOVERRIDE_LOG_LEVEL"
    ENV_CONFIG = "POMOVERRIDE_CONFIG"
    ENV_LOCAL_REPOSITORY = "M2_REPO"
    CONFIG_FILE_NAMES = ["pomoverride.yml", "pomoverride.yaml", "pomoverride.json"]
    USER_CONFIG_FILE = Path("~/.config/pomoverride/config.yml")


def default_local_repository() -> Path:
    """Return the local repository cache directory (M2_REPO or ~/.m2/repository)."""
    env_value = os.environ.get(Constants.ENV_LOCAL_REPOSITORY)
    if env_value:
        return Path(env_value).expanduser()
    return Path("~").expanduser() / ".m2" / "repository"
