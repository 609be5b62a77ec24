"""Configuration loader with layered merging and environment overrides."""

import copy
import os
from pathlib import Path
from typing import Any, Optional

import yaml

from skillforge.config.defaults import DEFAULT_CONFIG
from skillforge.config.schema import SkillforgeConfig
from skillforge.utils.paths import expand_path

CONFIG_FILENAME = "skillforge.yaml"
USER_CONFIG_PATH = "~/.config/skillforge/skillforge.yaml"


def find_config_files() -> list[Path]:
    """Find configuration files in standard locations.

    Returns:
        Existing config files ordered from lowest to highest precedence:
        ./skillforge.yaml, then ~/.config/skillforge/skillforge.yaml
    """
    config_files = []

    project_config = Path.cwd() / CONFIG_FILENAME
    if project_config.exists():
        config_files.append(project_config)

    user_config = expand_path(USER_CONFIG_PATH)
    if user_config.exists():
        config_files.append(user_config)

    return config_files


def load_yaml_file(file_path: Path) -> dict[str, Any]:
    """Load a YAML mapping from disk.

    Raises:
        yaml.YAMLError: If the file contains invalid YAML
        ValueError: If the top level is not a mapping
        FileNotFoundError: If the file doesn't exist
    """
    with open(file_path, "r") as f:
        content = yaml.safe_load(f)

    if content is None:
        return {}
    if not isinstance(content, dict):
        raise ValueError(f"{file_path} must contain a mapping at the top level")
    return content


def merge_configs(configs: list[dict[str, Any]]) -> dict[str, Any]:
    """Deep merge configuration dictionaries, later ones winning.

    Nested dictionaries merge recursively; any other value (lists included)
    is replaced outright.
    """
    result: dict[str, Any] = {}
    for config in configs:
        result = _deep_merge(result, config)
    return result


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    result = copy.deepcopy(base)

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = copy.deepcopy(value)

    return result


def apply_env_overrides(config: dict[str, Any]) -> dict[str, Any]:
    """Apply environment variable overrides.

    Supported variables:
    - SKILLFORGE_OUT_DIR: settings.out_dir
    - SKILLFORGE_CACHE_DIR: settings.cache_dir
    - SKILLFORGE_CACHE_TTL: settings.cache_ttl (seconds)
    - SKILLFORGE_MODEL: compiler.model
    - SKILLFORGE_MAX_TOKENS: compiler.max_tokens

    Numeric values are passed through as strings; pydantic coerces and
    validates them.
    """
    result = copy.deepcopy(config)
    settings = result.setdefault("settings", {})
    compiler = result.setdefault("compiler", {})

    if out_dir := os.getenv("SKILLFORGE_OUT_DIR"):
        settings["out_dir"] = out_dir
    if cache_dir := os.getenv("SKILLFORGE_CACHE_DIR"):
        settings["cache_dir"] = cache_dir
    if cache_ttl := os.getenv("SKILLFORGE_CACHE_TTL"):
        settings["cache_ttl"] = cache_ttl
    if model := os.getenv("SKILLFORGE_MODEL"):
        compiler["model"] = model
    if max_tokens := os.getenv("SKILLFORGE_MAX_TOKENS"):
        compiler["max_tokens"] = max_tokens

    return result


def load_config(config_path: Optional[Path] = None) -> SkillforgeConfig:
    """Load and merge configuration from all sources.

    Precedence (lowest to highest):
    1. Built-in defaults
    2. Project config (./skillforge.yaml)
    3. User config (~/.config/skillforge/skillforge.yaml)
    4. Environment variables
    5. Explicit config_path
    6. CLI flags (handled by caller)

    Raises:
        pydantic.ValidationError: If the merged configuration is invalid
        yaml.YAMLError: If a config file contains invalid YAML
        FileNotFoundError: If config_path is given but doesn't exist
    """
    configs_to_merge = [DEFAULT_CONFIG]

    for config_file in find_config_files():
        try:
            configs_to_merge.append(load_yaml_file(config_file))
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Error loading {config_file}: {e}") from e

    merged = apply_env_overrides(merge_configs(configs_to_merge))

    if config_path is not None:
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        merged = merge_configs([merged, load_yaml_file(config_path)])

    return SkillforgeConfig(**merged)
