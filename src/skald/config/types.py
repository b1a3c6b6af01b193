"""Configuration type definitions for Skald settings.

These are the config sections nested within the main Settings class:
- SkillsConfig: override directory and user directory candidates
"""

import pathlib as _pathlib

import pydantic as _pydantic


class SkillsConfig(_pydantic.BaseModel):
    """
    Skill discovery settings.

    YAML section: skills.*
    Environment: SKALD_SKILLS__OVERRIDE_DIR, SKALD_SKILLS__USER_DIRS
    """

    model_config = _pydantic.ConfigDict(extra="forbid")

    override_dir: _pathlib.Path | None = None
    """Directory replacing the user and project skill roots (``~`` allowed)."""

    user_dirs: list[_pathlib.Path] | None = None
    """User skills directories to check, in order, instead of the defaults.

    Relative and ``~`` paths are taken relative to the home directory.
    """
