"""Configuration package."""

from studyforge.config.generation import (
    GenerationSettings,
    generation_settings,
    get_generation_settings,
)
from studyforge.config.settings import (
    Settings,
    get_settings,
    load_yaml_config,
    settings,
    yaml_config,
)

__all__ = [
    # Generation settings
    "generation_settings",
    "GenerationSettings",
    "get_generation_settings",
    # Application settings
    "Settings",
    "get_settings",
    "load_yaml_config",
    "settings",
    "yaml_config",
]
