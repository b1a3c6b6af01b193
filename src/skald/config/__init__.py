"""
Configuration module for Skald.

Uses pydantic-settings for environment variable and YAML file loading.
"""

from skald.config.settings import Settings, find_project_root
from skald.config.sources import ConfigFileError
from skald.config.types import SkillsConfig

__all__ = ["ConfigFileError", "Settings", "SkillsConfig", "find_project_root"]
