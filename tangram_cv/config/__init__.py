"""Configuration management package."""

from .settings import Config, ValidationTolerances, load_config, save_config
from .defaults import DEFAULT_CONFIG, DIFFICULTY_TOLERANCES

__all__ = [
    "Config", "ValidationTolerances", "load_config", "save_config",
    "DEFAULT_CONFIG", "DIFFICULTY_TOLERANCES",
]
