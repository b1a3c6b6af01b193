"""
Shared pytest fixtures for Skald tests.

This file is automatically loaded by pytest. Fixtures defined here are
available to all test files without explicit imports.
"""

import os as _os
import pathlib as _pathlib
import typing as _typing
import unittest.mock as _mock

import pytest as _pytest

import skald.config as config
import skald.utils.home as home

# Environment keys that should be cleared for isolated tests
ENV_KEYS_TO_CLEAR = [
    "SKALD_CONFIG_DIR",
    "SKALD_ENV_FILE",
    "SKALD_SKILLS",
    "SKALD_SKILLS__OVERRIDE_DIR",
    "SKALD_SKILLS__USER_DIRS",
]


def write_skill(skill_dir: _pathlib.Path, content: str) -> _pathlib.Path:
    """Create a skill directory with the given SKILL.md content."""
    skill_dir.mkdir(parents=True, exist_ok=True)
    (skill_dir / "SKILL.md").write_text(content, encoding="utf-8")
    return skill_dir


@_pytest.fixture
def clean_env() -> dict[str, str]:
    """
    Return environment dict with test-related keys removed.

    Use with mock.patch.dict to isolate tests from the actual environment.
    """
    return {k: v for k, v in _os.environ.items() if k not in ENV_KEYS_TO_CLEAR}


@_pytest.fixture
def isolated_env(clean_env: dict[str, str]) -> _typing.Any:
    """
    Context manager that isolates tests from environment variables.

    Usage:
        def test_something(isolated_env):
            with isolated_env:
                settings = config.Settings.construct_without_dotenv()
    """
    return _mock.patch.dict(_os.environ, clean_env, clear=True)


@_pytest.fixture
def fake_home(tmp_path: _pathlib.Path) -> _pathlib.Path:
    """An empty home directory under tmp_path."""
    home_dir = tmp_path / "home"
    home_dir.mkdir()
    return home_dir


@_pytest.fixture
def home_provider(fake_home: _pathlib.Path) -> home.HomeProvider:
    """Home provider pointing at fake_home."""
    return home.StaticHomeProvider(fake_home)


@_pytest.fixture
def isolated_workspace(tmp_path: _pathlib.Path) -> _pathlib.Path:
    """Create an isolated project workspace with a .agents directory."""
    workspace = tmp_path / "workspace"
    (workspace / ".agents").mkdir(parents=True)
    return workspace


@_pytest.fixture
def clean_settings(
    isolated_env: _typing.Any,
    isolated_workspace: _pathlib.Path,
    fake_home: _pathlib.Path,
    monkeypatch: _pytest.MonkeyPatch,
) -> config.Settings:
    """
    Settings instance isolated from environment, .env and real config files.
    """
    monkeypatch.chdir(isolated_workspace)
    with isolated_env:
        _os.environ["SKALD_CONFIG_DIR"] = str(fake_home / ".config" / "skald")
        return config.Settings.construct_without_dotenv()
