"""Configuration loading for the CLI.

Reads a YAML (or JSON) configuration file and merges it with command-line
arguments into a BuilderConfig. CLI values have the highest precedence.

Lookup order for the configuration file:
1. --config argument
2. POMOVERRIDE_CONFIG environment variable
3. pomoverride.yml / pomoverride.yaml / pomoverride.json in the working directory
4. ~/.config/pomoverride/config.yml
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import yaml

from constants import Constants, default_local_repository
from model.service import BuilderConfig

logger = logging.getLogger(__name__)


class ConfigError(ValueError):
    """The configuration file or a CLI override is invalid."""


def find_config_file(explicit: Optional[str] = None) -> Optional[Path]:
    """Return the configuration file to use, or None when there is none.

    Raises:
        ConfigError: an explicitly requested file does not exist.
    """
    if explicit:
        path = Path(explicit).expanduser()
        if not path.is_file():
            raise ConfigError(f"Config file not found: {explicit}")
        return path

    env_path = os.environ.get(Constants.ENV_CONFIG)
    if env_path:
        path = Path(env_path).expanduser()
        if path.is_file():
            return path
        logger.warning("Config file from %s not found: %s", Constants.ENV_CONFIG, env_path)

    for name in Constants.CONFIG_FILE_NAMES:
        path = Path.cwd() / name
        if path.is_file():
            return path

    user_path = Constants.USER_CONFIG_FILE.expanduser()
    if user_path.is_file():
        return user_path
    return None


def load_config(path: Optional[Path]) -> Dict[str, Any]:
    """Load a configuration mapping from YAML or JSON.

    Raises:
        ConfigError: the file cannot be parsed or is not a mapping.
    """
    if path is None:
        return {}
    try:
        with open(path, "r", encoding="utf-8") as fh:
            if path.suffix.lower() == ".json":
                data = json.load(fh)
            else:
                data = yaml.safe_load(fh)
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigError(f"Failed to load config {path}: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config {path} must contain a mapping at the top level")
    logger.debug("Loaded config from %s", path)
    return data


def parse_properties(items: Optional[Iterable[str]]) -> Dict[str, str]:
    """Parse ``KEY=VALUE`` items; a bare ``KEY`` means ``KEY=true``."""
    props: Dict[str, str] = {}
    for item in items or []:
        key, sep, value = item.partition("=")
        key = key.strip()
        if not key:
            raise ConfigError(f"Invalid property definition: '{item}'")
        props[key] = value if sep else "true"
    return props


def _string_mapping(value: Any, name: str) -> Dict[str, str]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"'{name}' must be a mapping")
    return {str(k): "" if v is None else str(v) for k, v in value.items()}


def _validation_level(name: Any):
    level = Constants.VALIDATION_LEVEL_NAMES.get(str(name).lower())
    if level is None:
        choices = ", ".join(Constants.VALIDATION_LEVEL_NAMES)
        raise ConfigError(f"Unknown validation level '{name}' (expected one of: {choices})")
    return level


def build_config(args: Any, file_config: Optional[Dict[str, Any]] = None) -> BuilderConfig:
    """Combine file configuration and CLI arguments into a BuilderConfig."""
    cfg = file_config or {}

    repositories: List[Any] = list(getattr(args, "REPOSITORIES", None) or [])
    configured = cfg.get("repositories") or []
    if not isinstance(configured, list):
        raise ConfigError("'repositories' must be a list")
    repositories.extend(configured)

    local_repository = getattr(args, "LOCAL_REPO", None) or cfg.get("local_repository")
    local_path = Path(local_repository).expanduser() if local_repository else default_local_repository()

    timeout = getattr(args, "TIMEOUT", None)
    if timeout is None:
        timeout = cfg.get("timeout")
    try:
        timeout_value = float(timeout) if timeout is not None else None
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid timeout: {timeout!r}") from exc

    level_name = getattr(args, "VALIDATION_LEVEL", None) or cfg.get("validation_level")
    level = _validation_level(level_name) if level_name else Constants.DEFAULT_VALIDATION_LEVEL

    user_properties = _string_mapping(cfg.get("properties"), "properties")
    user_properties.update(parse_properties(getattr(args, "PROPERTIES", None)))

    return BuilderConfig(
        repositories=repositories,
        local_repository=local_path,
        offline=bool(getattr(args, "OFFLINE", False) or cfg.get("offline", False)),
        timeout=timeout_value,
        validation_level=level,
        user_properties=user_properties,
        system_properties=_string_mapping(cfg.get("system_properties"), "system_properties"),
    )
