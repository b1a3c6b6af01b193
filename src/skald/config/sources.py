"""Custom pydantic-settings source for Skald configuration.

This module provides:

- YamlLayersSettingsSource: A pydantic-settings source that loads
  configuration from layered YAML files and merges them.

Configuration layers (in precedence order, highest first):
1. Environment variables (handled by pydantic-settings)
2. Project config: .agents/skald.yaml in the project root
3. User config: ~/.config/skald/config.yaml (or SKALD_CONFIG_DIR)

Nested mappings merge key by key; any other value in a higher layer
replaces the lower one.

Environment variables:
- SKALD_CONFIG_DIR: Override user config directory (default: ~/.config/skald)
"""

import collections.abc as _abc
import copy as _copy
import os as _os
import pathlib as _pathlib
import typing as _typing

import pydantic.fields as _pydantic_fields
import pydantic_settings as _pydantic_settings
import yaml as _yaml

import skald.constants as constants
import skald.utils.home as home


class ConfigFileError(Exception):
    """Error loading or parsing a configuration file."""

    def __init__(self, path: _pathlib.Path, message: str) -> None:
        self.path = path
        super().__init__(f"Error in config file {path}: {message}")


def merge_layers(
    base: _abc.Mapping[str, _typing.Any],
    override: _abc.Mapping[str, _typing.Any],
) -> dict[str, _typing.Any]:
    """
    Merge two config layers.

    Mappings present in both layers are merged recursively; for any other
    value, ``override`` wins. Neither input is modified.

    Args:
        base: Lower-precedence layer.
        override: Higher-precedence layer.

    Returns:
        The merged layer.
    """
    merged: dict[str, _typing.Any] = _copy.deepcopy(dict(base))
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, _abc.Mapping) and isinstance(value, _abc.Mapping):
            merged[key] = merge_layers(current, value)
        else:
            merged[key] = _copy.deepcopy(value)
    return merged


def load_yaml_file(path: _pathlib.Path) -> dict[str, _typing.Any] | None:
    """
    Load a YAML config file.

    Args:
        path: Path to the YAML file.

    Returns:
        Parsed YAML contents, or None if the file is empty.

    Raises:
        ConfigFileError: If the file cannot be read, is malformed YAML,
            or contains non-dict content at the top level.
    """
    try:
        content = path.read_text(encoding="utf-8")
    except PermissionError as e:
        raise ConfigFileError(path, f"permission denied: {e}") from e
    except OSError as e:
        raise ConfigFileError(path, f"cannot read file: {e}") from e

    try:
        parsed = _yaml.safe_load(content)
    except _yaml.YAMLError as e:
        raise ConfigFileError(path, f"invalid YAML: {e}") from e

    if parsed is None:
        return None

    if not isinstance(parsed, dict):
        type_name = type(parsed).__name__
        raise ConfigFileError(
            path,
            f"config must be a YAML mapping (dict), got {type_name}",
        )

    return parsed


class YamlLayersSettingsSource(_pydantic_settings.PydanticBaseSettingsSource):
    """
    Settings source that loads from layered YAML config files.

    Layers (lowest to highest precedence):
    1. User config (~/.config/skald/config.yaml)
    2. Project config (.agents/skald.yaml)

    Both layers are optional.
    """

    def __init__(
        self,
        settings_cls: type[_pydantic_settings.BaseSettings],
        project_root: _pathlib.Path | None = None,
        *,
        user_config_path: _pathlib.Path | None = None,
        home_provider: home.HomeProvider | None = None,
    ) -> None:
        """
        Initialize the settings source.

        Args:
            settings_cls: The Settings class being populated.
            project_root: Optional project root path for project-level config.
            user_config_path: Override path for user config file (for testing).
                If not provided, uses SKALD_CONFIG_DIR or the XDG path.
            home_provider: Supplies the home directory for the XDG path.
        """
        super().__init__(settings_cls)
        self._project_root = project_root
        self._user_config_path = user_config_path
        self._home_provider = home_provider
        self._loaded_layers: list[tuple[str, _pathlib.Path]] = []
        self._data = self._load_config_layers()

    def _load_config_layers(self) -> dict[str, _typing.Any]:
        """Load and merge the config files that exist."""
        merged: dict[str, _typing.Any] = {}

        user_path = self._get_user_config_path()
        if user_path is not None and user_path.exists():
            content = load_yaml_file(user_path)
            if content:
                merged = merge_layers(merged, content)
                self._loaded_layers.append(("user", user_path))

        if self._project_root is not None:
            project_path = get_project_config_path(self._project_root)
            if project_path.exists():
                content = load_yaml_file(project_path)
                if content:
                    merged = merge_layers(merged, content)
                    self._loaded_layers.append(("project", project_path))

        return merged

    def _get_user_config_path(self) -> _pathlib.Path | None:
        """Get path to user config, respecting override and env var."""
        if self._user_config_path is not None:
            return self._user_config_path
        return get_user_config_path(self._home_provider)

    def get_loaded_layers(self) -> list[tuple[str, _pathlib.Path]]:
        """
        Get info about layers that were actually loaded.

        Returns:
            List of (layer_name, path) tuples, lowest precedence first.
        """
        return list(self._loaded_layers)

    def get_field_value(
        self,
        field: _pydantic_fields.FieldInfo,  # noqa: ARG002 - required by pydantic-settings interface
        field_name: str,
    ) -> tuple[_typing.Any, str, bool]:
        """
        Get value for a field from the merged layers.

        Returns:
            Tuple of (value, field_name, is_complex).
        """
        value = self._data.get(field_name)
        return value, field_name, isinstance(value, (_abc.Mapping, list))

    def __call__(self) -> dict[str, _typing.Any]:
        """Return merged config as a plain dict for Pydantic validation."""
        return _copy.deepcopy(self._data)


def get_user_config_dir(
    home_provider: home.HomeProvider | None = None,
) -> _pathlib.Path | None:
    """
    Get the user config directory.

    Respects SKALD_CONFIG_DIR environment variable if set,
    otherwise uses the XDG path under the home directory.

    Returns:
        Path to user config directory, or None without a home directory.
    """
    config_dir_env = _os.environ.get(constants.ENV_CONFIG_DIR)
    if config_dir_env:
        return _pathlib.Path(config_dir_env)

    provider = home_provider or home.default_home_provider()
    home_dir = provider()
    if home_dir is None:
        return None
    return home_dir / ".config" / "skald"


def get_user_config_path(
    home_provider: home.HomeProvider | None = None,
) -> _pathlib.Path | None:
    """Get the path to the user config file (None without a home directory)."""
    config_dir = get_user_config_dir(home_provider)
    if config_dir is None:
        return None
    return config_dir / "config.yaml"


def get_project_config_path(project_root: _pathlib.Path) -> _pathlib.Path:
    """
    Get the path to the project config file.

    Args:
        project_root: The project root directory.

    Returns:
        Path to .agents/skald.yaml within the project.
    """
    return project_root.joinpath(*constants.PROJECT_CONFIG_FILE)
