"""
Skill registry for managing available skills.

The registry coordinates skill discovery and provides lookup and
prompt-building on top of the discovered skills.
"""

from __future__ import annotations

import collections.abc as _abc
import pathlib as _pathlib
import typing as _typing

import skald.skills.discovery as discovery
import skald.skills.skill as skill_module
import skald.utils.home as home

if _typing.TYPE_CHECKING:
    import skald.config.settings as _settings


class SkillRegistry:
    """
    Registry for managing skills.

    Handles:
    - Skill discovery from the layered roots (lazily, on first use)
    - Lookup by name
    - Skill metadata for system prompts
    """

    def __init__(
        self,
        project_root: _pathlib.Path | None = None,
        *,
        override_dir: _pathlib.Path | None = None,
        search_paths: list[_pathlib.Path] | None = None,
        home_provider: home.HomeProvider | None = None,
        user_candidates: _abc.Sequence[_pathlib.Path] | None = None,
    ) -> None:
        """
        Initialize the skill registry.

        Args:
            project_root: Project root for skill discovery.
            override_dir: Directory replacing the user and project roots.
            search_paths: Explicit roots (overrides everything else).
            home_provider: Supplies the home directory.
            user_candidates: User skills directories to check instead of
                the default ones.
        """
        self._project_root = project_root
        self._discovery = discovery.SkillDiscovery(
            project_root,
            override_dir=override_dir,
            search_paths=search_paths,
            home_provider=home_provider,
            user_candidates=user_candidates,
        )
        self._skills: dict[str, skill_module.Skill] | None = None

    @classmethod
    def from_settings(
        cls,
        settings: _settings.Settings,
        project_root: _pathlib.Path | None = None,
        *,
        home_provider: home.HomeProvider | None = None,
    ) -> SkillRegistry:
        """
        Create a registry configured from Settings.

        Args:
            settings: Loaded settings.
            project_root: Project root for skill discovery.
            home_provider: Supplies the home directory, also used to
                expand ``~`` in the configured override directory.

        Raises:
            SkillsRootNotFoundError: If the override directory starts with
                ``~`` and no home directory can be determined.
        """
        override_dir = settings.skills.override_dir
        if override_dir is not None:
            expanded = home.expand_home(override_dir, home_provider)
            if expanded is None:
                raise discovery.SkillsRootNotFoundError(override_dir)
            override_dir = expanded

        return cls(
            project_root,
            override_dir=override_dir,
            home_provider=home_provider,
            user_candidates=settings.skills.user_dirs,
        )

    def _ensure_discovered(self) -> dict[str, skill_module.Skill]:
        """Ensure skills have been discovered."""
        if self._skills is None:
            self._skills = self._discovery.discover()
        return self._skills

    def discover(self) -> None:
        """Force re-discovery of skills."""
        self._skills = None
        self._ensure_discovered()

    # Skill listing
    def list_skills(self) -> list[skill_module.Skill]:
        """
        List all discovered skills.

        Returns:
            List of Skill instances, sorted by name.
        """
        return list(self._ensure_discovered().values())

    def list_flow_skills(self) -> list[skill_module.Skill]:
        """List discovered skills that carry a flow, sorted by name."""
        return [s for s in self.list_skills() if s.is_flow]

    def get_skill(self, name: str) -> skill_module.Skill | None:
        """
        Get a skill by name.

        An exact match wins; otherwise the name is compared
        case-insensitively.

        Args:
            name: Skill name.

        Returns:
            Skill instance or None if not found.
        """
        skills = self._ensure_discovered()
        if name in skills:
            return skills[name]

        wanted = name.casefold()
        for skill_name, skill in skills.items():
            if skill_name.casefold() == wanted:
                return skill
        return None

    def has_skill(self, name: str) -> bool:
        """
        Check if a skill exists.

        Args:
            name: Skill name.

        Returns:
            True if skill exists.
        """
        return self.get_skill(name) is not None

    def get_load_errors(self) -> list[tuple[_pathlib.Path, Exception]]:
        """Get the skill directories that failed to load."""
        self._ensure_discovered()
        return self._discovery.errors

    def get_metadata_for_prompt(self) -> str:
        """
        Get metadata for all skills.

        Returns a compact string with name and description for each
        skill, suitable for inclusion in the system prompt.

        Returns:
            Formatted skill metadata, or "" when there are no skills.
        """
        skills = self.list_skills()
        if not skills:
            return ""

        lines = ["## Available Skills", ""]
        lines.extend(skill.get_metadata_for_prompt() for skill in skills)
        return "\n".join(lines)

    # Serialization
    def to_dict(self) -> dict[str, _typing.Any]:
        """Convert to dictionary for JSON serialization."""
        skills = self.list_skills()
        return {
            "project_root": str(self._project_root) if self._project_root else None,
            "skill_count": len(skills),
            "skills": [s.to_dict() for s in skills],
            "errors": [
                {"path": str(path), "error": str(error)}
                for path, error in self._discovery.errors
            ],
        }
