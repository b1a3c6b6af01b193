"""
Settings configuration using pydantic-settings.

Loads configuration from:
1. Constructor arguments (highest precedence)
2. Environment variables with SKALD_ prefix
3. .env file (if SKALD_ENV_FILE points to one)
4. Layered YAML config files:
   - Project config: .agents/skald.yaml (highest)
   - User config: ~/.config/skald/config.yaml

Nested config uses double underscore delimiter:
  SKALD_SKILLS__OVERRIDE_DIR=/opt/skills
  SKALD_SKILLS__USER_DIRS='["~/my-skills"]'
"""

import os as _os
import pathlib as _pathlib
import typing as _typing

import pydantic as _pydantic
import pydantic_settings as _pydantic_settings

import skald.config.sources as sources
import skald.config.types as types
import skald.constants as constants

# Directory or file names that mark a project root
_PROJECT_MARKERS = (".agents", ".git", "pyproject.toml")


def _get_env_file() -> str | None:
    """Determine which .env file to load.

    Only SKALD_ENV_FILE selects one. If it is set but the file does not
    exist, nothing is loaded rather than falling back silently.
    """
    env_file = _os.environ.get(constants.ENV_ENV_FILE)
    if env_file and _pathlib.Path(env_file).exists():
        return env_file
    return None


def find_project_root(start_path: _pathlib.Path | None = None) -> _pathlib.Path:
    """
    Find the project root directory.

    Walks up from ``start_path`` looking for a directory containing
    .agents, .git or pyproject.toml.

    Args:
        start_path: Starting path for search. Defaults to cwd.

    Returns:
        The first directory with a marker, or ``start_path`` if none has one.
    """
    if start_path is None:
        start_path = _pathlib.Path.cwd()

    current = start_path.resolve()
    while True:
        if any((current / marker).exists() for marker in _PROJECT_MARKERS):
            return current
        if current == current.parent:
            return start_path
        current = current.parent


class Settings(_pydantic_settings.BaseSettings):
    """
    Skald configuration settings.

    All settings can be overridden via environment variables with SKALD_ prefix.
    For nested config, use double underscore: SKALD_SKILLS__OVERRIDE_DIR=/path

    Config precedence (highest to lowest):
    1. Constructor arguments
    2. Environment variables (SKALD_*)
    3. .env file
    4. Project config (.agents/skald.yaml)
    5. User config (~/.config/skald/config.yaml)
    6. Built-in defaults
    """

    model_config = _pydantic_settings.SettingsConfigDict(
        env_prefix=constants.ENV_PREFIX,
        env_file=_get_env_file(),
        env_file_encoding="utf-8",
        env_nested_delimiter="__",  # SKALD_SKILLS__OVERRIDE_DIR
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[_pydantic_settings.BaseSettings],
        init_settings: _pydantic_settings.PydanticBaseSettingsSource,
        env_settings: _pydantic_settings.PydanticBaseSettingsSource,
        dotenv_settings: _pydantic_settings.PydanticBaseSettingsSource,
        file_secret_settings: _pydantic_settings.PydanticBaseSettingsSource,
    ) -> tuple[_pydantic_settings.PydanticBaseSettingsSource, ...]:
        """
        Configure settings sources with precedence:
        1. init_settings (constructor args) (highest)
        2. env_settings (SKALD_* env vars)
        3. dotenv_settings (.env file)
        4. yaml_settings (user and project YAML files)
        5. (defaults via Field definitions) (lowest)
        """
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            sources.YamlLayersSettingsSource(settings_cls, find_project_root()),
            file_secret_settings,
        )

    @classmethod
    def construct_without_dotenv(cls, **kwargs: _typing.Any) -> "Settings":
        """Create Settings without loading any .env file.

        Useful for test isolation and for reproducing issues without
        .env interference.
        """
        return cls(_env_file=None, **kwargs)  # type: ignore[call-arg]

    skills: types.SkillsConfig = _pydantic.Field(default_factory=types.SkillsConfig)
    """Skill discovery settings."""
