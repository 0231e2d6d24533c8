"""Configuration for the command line tools.

Values are read from environment variables, which `lektion` loads from a
`.env` file on import. The content layer itself never reads config: callers
pass every setting in as an argument.
"""

import logging
import os

from lektion import consts


#: The production environment.
PRODUCTION = "production"
#: The development environment.
DEVELOPMENT = "development"
#: The testing environment.
TESTING = "testing"


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}")


class BaseConfig:
    """Base configuration, shared by all environments."""

    #: The environment name. One of `PRODUCTION`, `DEVELOPMENT`, or `TESTING`.
    LEKTION_ENVIRONMENT = None
    #: Log level for the command line tools.
    LOG_LEVEL = os.getenv("LEKTION_LOG_LEVEL", "INFO")
    #: Column budget for reading-focus lines.
    LINE_WIDTH = consts.LINE_WIDTH
    #: Number of lines shown at once in reading-focus mode.
    READING_FOCUS_LINES = consts.READING_FOCUS_LINES
    #: If true, `LEKTION_LINE_WIDTH` and `LEKTION_READING_FOCUS_LINES` override
    #: the two values above when the config is loaded.
    READ_ENV_OVERRIDES = True


class UnitTestConfig(BaseConfig):
    LEKTION_ENVIRONMENT = TESTING
    LOG_LEVEL = "DEBUG"
    # Tests rely on the defaults, whatever the local environment says.
    READ_ENV_OVERRIDES = False


class DevelopmentConfig(BaseConfig):
    LEKTION_ENVIRONMENT = DEVELOPMENT
    LOG_LEVEL = os.getenv("LEKTION_LOG_LEVEL", "DEBUG")


class ProductionConfig(BaseConfig):
    LEKTION_ENVIRONMENT = PRODUCTION


def _validate_config(config: BaseConfig):
    if config.LEKTION_ENVIRONMENT not in {PRODUCTION, DEVELOPMENT, TESTING}:
        raise ValueError(f"Unknown environment name {config.LEKTION_ENVIRONMENT}")
    if logging.getLevelName(config.LOG_LEVEL.upper()) not in range(0, 51):
        raise ValueError(f"Unknown log level {config.LOG_LEVEL}")
    if config.LINE_WIDTH < 1:
        raise ValueError("LINE_WIDTH must be positive")
    if config.READING_FOCUS_LINES < 1:
        raise ValueError("READING_FOCUS_LINES must be positive")


def load_config_object(name: str | None = None):
    """Load a config object by environment name.

    :param name: the environment name. Defaults to `$LEKTION_ENVIRONMENT`, and
        then to development.
    """
    name = name or os.getenv("LEKTION_ENVIRONMENT") or DEVELOPMENT
    config_map = {
        TESTING: UnitTestConfig,
        DEVELOPMENT: DevelopmentConfig,
        PRODUCTION: ProductionConfig,
    }
    try:
        config = config_map[name]()
    except KeyError:
        raise ValueError(f"Unknown environment name {name!r}")
    if config.READ_ENV_OVERRIDES:
        config.LINE_WIDTH = _env_int("LEKTION_LINE_WIDTH", config.LINE_WIDTH)
        config.READING_FOCUS_LINES = _env_int(
            "LEKTION_READING_FOCUS_LINES", config.READING_FOCUS_LINES
        )
    _validate_config(config)
    return config
