"""
Skald - skill discovery for agent runtimes

Finds skill directories across builtin, user and project roots, parses
their SKILL.md files and resolves same-named skills by root precedence.
"""

import importlib.metadata as _metadata

# Version is defined in pyproject.toml - read it and parse into tuple (primary representation)
_raw_version = _metadata.version("skald")
__version_info__: tuple[int, int, int] = tuple(int(x) for x in _raw_version.split(".")[:3])  # type: ignore[assignment]
__version__: str = ".".join(str(x) for x in __version_info__)
__author__ = "Skald Contributors"

from skald.config import Settings  # noqa: E402
from skald.skills import Skill, SkillRegistry, SkillType  # noqa: E402

__all__ = ["__version__", "__version_info__", "Settings", "Skill", "SkillRegistry", "SkillType"]
