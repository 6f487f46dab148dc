import logging
import os
from functools import lru_cache
from typing import Any

import yaml

from brenner.errors import ConfigError

from . import paths

log = logging.getLogger(__name__)

ENV_PREFIX = "BRENNER_"


def config_file():
    return paths.config_file()


def clear_cache():
    load_config.cache_clear()


@lru_cache(maxsize=1)
def load_config() -> dict:
    """Load the config.yaml file, returning its content or an empty dict if not found."""
    path = config_file()
    if not path.exists():
        log.debug(f"No config file at {path}, using defaults")
        return {}
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping, got {type(data).__name__}")
    return data


def lookup(dotted: str, default: Any = None) -> Any:
    """Read `section.key` from the config file."""
    node: Any = load_config()
    for part in dotted.split("."):
        if not isinstance(node, dict) or part not in node:
            return default
        node = node[part]
    return default if node is None else node


def env(name: str) -> str | None:
    """Environment value, with blank strings treated as unset."""
    value = os.environ.get(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def resolve(explicit: Any, env_name: str | None, dotted: str | None, default: Any = None) -> Any:
    """Pick a setting by priority: explicit, environment, config file, default."""
    if explicit is not None:
        return explicit
    if env_name:
        value = env(env_name)
        if value is not None:
            return value
    if dotted:
        value = lookup(dotted)
        if value is not None:
            return value
    return default


def default_project() -> str | None:
    return resolve(None, f"{ENV_PREFIX}PROJECT", "defaults.project_key")


def default_sender() -> str | None:
    return resolve(None, f"{ENV_PREFIX}SENDER", "defaults.sender")


def logging_level() -> str:
    level = resolve(None, f"{ENV_PREFIX}LOG_LEVEL", "logging_level", "WARNING")
    return str(level).upper()
