"""
Builtin skills that ship with skald.

Every subdirectory holding a SKILL.md is a skill available in all
projects. Builtin skills have the lowest priority: user, project and
override skills with the same name replace them.
"""

import pathlib as _pathlib


def get_builtin_skills_path() -> _pathlib.Path:
    """Get the path to builtin skills directory."""
    return _pathlib.Path(__file__).parent
