# __init__.py
"""
Public constants API for latentia.constants.

This module re-exports selected names to provide a clean and stable surface.
"""

# config_constants
from .config_constants import CachePaths

# logging_constants
from .logging_constants import (
    LOG_DEFAULT_BACKUPS,
    LOG_DEFAULT_JSON,
    LOG_DEFAULT_LEVEL,
    LOG_DEFAULT_MAX_BYTES,
    LOG_DEFAULT_NAME,
    LOG_DEFAULT_STDERR,
    LOG_ENV_PREFIX,
    LOG_LEVEL_MAP,
    env_log_json,
    env_log_level,
    env_log_stderr,
)

# tool_configs
from .tool_configs import ToolConfig, get_config, set_config

# tool_constants
from .tool_constants import _ENV_PREFIX as LATENTIA_ENV_PREFIX
from .tool_constants import (
    DEFAULT_SEED,
    NOISE_KINDS,
    OUTPUT_COLUMN_PREFIX,
    SCALING_OPTIONS,
    VARIANCE_PROXIES,
    VARIANCE_SUM_TOLERANCE,
    VARIANT_KINDS,
)

__all__ = [
    # tool_constants
    "LATENTIA_ENV_PREFIX",
    "DEFAULT_SEED",
    "VARIANT_KINDS",
    "SCALING_OPTIONS",
    "NOISE_KINDS",
    "VARIANCE_PROXIES",
    "OUTPUT_COLUMN_PREFIX",
    "VARIANCE_SUM_TOLERANCE",
    # config_constants
    "CachePaths",
    # tool_configs
    "ToolConfig",
    "get_config",
    "set_config",
    # logging_constants
    "LOG_ENV_PREFIX",
    "LOG_DEFAULT_NAME",
    "LOG_DEFAULT_LEVEL",
    "LOG_DEFAULT_JSON",
    "LOG_DEFAULT_STDERR",
    "LOG_DEFAULT_MAX_BYTES",
    "LOG_DEFAULT_BACKUPS",
    "LOG_LEVEL_MAP",
    "env_log_level",
    "env_log_json",
    "env_log_stderr",
]
