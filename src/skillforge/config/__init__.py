"""Configuration loading and management."""

from skillforge.config.loader import (
    apply_env_overrides,
    find_config_files,
    load_config,
    merge_configs,
)
from skillforge.config.schema import CompilerConfig, SettingsConfig, SkillforgeConfig

__all__ = [
    # Loader functions
    "apply_env_overrides",
    "find_config_files",
    "load_config",
    "merge_configs",
    # Schema classes
    "CompilerConfig",
    "SettingsConfig",
    "SkillforgeConfig",
]
