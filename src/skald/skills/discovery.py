"""
Skill discovery from layered root directories.

Skills are discovered from (in priority order, lowest first):
1. Builtin skills shipped with skald
2. User skills - the first existing of ~/.agents/skills, ~/.codex/skills,
   ~/.config/agents/skills
3. Project skills - <project>/.agents/skills

An explicit override directory replaces tiers 2 and 3. Later roots have
higher priority: a skill with the same name in a later root replaces the
earlier one entirely.
"""

from __future__ import annotations

import asyncio as _asyncio
import collections.abc as _abc
import dataclasses as _dataclasses
import logging as _logging
import pathlib as _pathlib
import typing as _typing

import skald.builtin_skills as builtin_skills
import skald.constants as constants
import skald.skills.skill as skill_module
import skald.utils.home as home

_logger = _logging.getLogger(__name__)


class SkillsRootNotFoundError(FileNotFoundError):
    """Raised when an explicitly requested skills directory does not exist."""

    def __init__(self, path: _pathlib.Path) -> None:
        self.path = path
        super().__init__(f"Skills directory not found: {path}")


@_dataclasses.dataclass
class RootScan:
    """Skills and per-directory failures found under one root."""

    root: _pathlib.Path
    skills: list[skill_module.Skill] = _dataclasses.field(default_factory=list)
    errors: list[tuple[_pathlib.Path, Exception]] = _dataclasses.field(default_factory=list)


# =============================================================================
# Root resolution
# =============================================================================


def get_builtin_skills_dir() -> _pathlib.Path:
    """Get the path to the builtin skills directory."""
    return builtin_skills.get_builtin_skills_path()


def get_project_skills_dir(project_dir: _pathlib.Path) -> _pathlib.Path:
    """Get the path to the project-local skills directory."""
    return project_dir.joinpath(*constants.PROJECT_SKILLS_SUBDIR)


def get_user_skills_candidates(home_dir: _pathlib.Path) -> list[_pathlib.Path]:
    """Get the user skills directory candidates, highest priority first."""
    return [home_dir.joinpath(*parts) for parts in constants.USER_SKILLS_CANDIDATES]


def _resolve_candidates(
    candidates: _abc.Sequence[_pathlib.Path],
    home_provider: home.HomeProvider,
) -> list[_pathlib.Path]:
    """Anchor configured candidates: ``~`` and relative paths are home-relative."""
    home_dir: _pathlib.Path | None = None
    resolved: list[_pathlib.Path] = []
    for candidate in candidates:
        candidate = _pathlib.Path(candidate)
        if candidate.is_absolute():
            resolved.append(candidate)
            continue
        if home_dir is None:
            home_dir = home_provider()
            if home_dir is None:
                continue
        parts = candidate.parts[1:] if candidate.parts[:1] == ("~",) else candidate.parts
        resolved.append(home_dir.joinpath(*parts))
    return resolved


def find_user_skills_dir(
    *,
    home_provider: home.HomeProvider | None = None,
    candidates: _abc.Sequence[_pathlib.Path] | None = None,
) -> _pathlib.Path | None:
    """
    Find the user skills directory.

    Args:
        home_provider: Supplies the home directory. Defaults to the
            process environment.
        candidates: Directories to check instead of the default ones.
            Relative and ``~`` paths are taken relative to the home
            directory.

    Returns:
        The first candidate that is an existing directory, or None.
    """
    provider = home_provider or home.default_home_provider()

    if candidates is None:
        home_dir = provider()
        if home_dir is None:
            _logger.debug("No home directory, skipping user skills")
            return None
        paths = get_user_skills_candidates(home_dir)
    else:
        paths = _resolve_candidates(candidates, provider)

    for path in paths:
        if path.is_dir():
            return path
    return None


def resolve_skills_roots(
    project_dir: _pathlib.Path,
    override_dir: _pathlib.Path | None = None,
    *,
    home_provider: home.HomeProvider | None = None,
    candidates: _abc.Sequence[_pathlib.Path] | None = None,
) -> list[_pathlib.Path]:
    """
    Get all skill roots in priority order.

    Args:
        project_dir: Project root directory.
        override_dir: Directory replacing the user and project roots.
        home_provider: Supplies the home directory for the user root.
        candidates: User skills directories to check instead of the
            default ones.

    Returns:
        List of roots to scan (lowest to highest priority).

    Raises:
        SkillsRootNotFoundError: If ``override_dir`` is not a directory.
    """
    roots = [get_builtin_skills_dir()]

    if override_dir is not None:
        if not override_dir.is_dir():
            raise SkillsRootNotFoundError(override_dir)
        roots.append(override_dir)
        return roots

    user_dir = find_user_skills_dir(home_provider=home_provider, candidates=candidates)
    if user_dir is not None:
        roots.append(user_dir)

    # Existence is checked when scanning
    roots.append(get_project_skills_dir(project_dir))

    return roots


# =============================================================================
# Scanning and merging
# =============================================================================


def iter_skill_dirs(root: _pathlib.Path) -> list[_pathlib.Path]:
    """
    List the immediate subdirectories of a root, sorted by name.

    A missing or unreadable root gives an empty list.
    """
    if not root.is_dir():
        _logger.debug("Skills directory does not exist, skipping: %s", root)
        return []

    try:
        return sorted(child for child in root.iterdir() if child.is_dir())
    except OSError as e:
        _logger.warning("Cannot list skills directory %s: %s", root, e)
        return []


def iter_root(
    root: _pathlib.Path,
) -> _typing.Iterator[skill_module.Skill | tuple[_pathlib.Path, Exception]]:
    """
    Load every skill directly under a root, in directory order.

    Directories without SKILL.md are skipped. A directory whose SKILL.md
    cannot be read is logged and yielded as a (path, exception) tuple.
    """
    for skill_dir in iter_skill_dirs(root):
        try:
            skill = skill_module.load_skill(skill_dir)
        except (OSError, ValueError) as e:
            _logger.warning("Failed to load skill from %s: %s", skill_dir, e)
            yield (skill_dir, e)
            continue
        if skill is not None:
            yield skill


def scan_root(root: _pathlib.Path) -> RootScan:
    """
    Load every skill directly under a root.

    A directory whose SKILL.md cannot be read is recorded in ``errors``
    and does not stop the scan.
    """
    scan = RootScan(root=root)
    for item in iter_root(root):
        if isinstance(item, tuple):
            scan.errors.append(item)
        else:
            scan.skills.append(item)
    return scan


def _merge_scans(scans: _abc.Iterable[RootScan]) -> dict[str, skill_module.Skill]:
    """Fold scans in order; a later skill replaces an earlier one by name."""
    skills: dict[str, skill_module.Skill] = {}
    for scan in scans:
        for skill in scan.skills:
            previous = skills.get(skill.name)
            if previous is not None and previous.dir.parent != skill.dir.parent:
                _logger.info(
                    "Skill '%s' from %s overrides %s",
                    skill.name,
                    skill.dir,
                    previous.dir,
                )
            skills[skill.name] = skill
    return skills


def _sorted_skills(skills: dict[str, skill_module.Skill]) -> list[skill_module.Skill]:
    return sorted(skills.values(), key=lambda s: s.name)


def discover_skills_from_roots(
    roots: _abc.Iterable[_pathlib.Path],
) -> list[skill_module.Skill]:
    """
    Discover skills from several roots.

    Args:
        roots: Roots in priority order (lowest first).

    Returns:
        Skills sorted by name, one per name, later roots winning.
    """
    return _sorted_skills(_merge_scans(scan_root(root) for root in roots))


def discover_skills(root: _pathlib.Path) -> list[skill_module.Skill]:
    """Discover skills from a single root, sorted by name."""
    return discover_skills_from_roots([root])


async def discover_skills_from_roots_async(
    roots: _abc.Iterable[_pathlib.Path],
) -> list[skill_module.Skill]:
    """
    Discover skills from several roots, scanning them concurrently.

    Each root is scanned in a worker thread. Results are merged in root
    order once all scans finish, so precedence matches
    ``discover_skills_from_roots``.
    """
    scans = await _asyncio.gather(
        *(_asyncio.to_thread(scan_root, root) for root in roots)
    )
    return _sorted_skills(_merge_scans(scans))


class SkillDiscovery:
    """
    Discovers skills from standard locations.

    Scans skill roots and returns discovered Skill instances.
    Later roots (project-local) have higher priority than earlier
    roots (builtin) - skills with the same name from later roots
    replace earlier ones.
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
        Initialize skill discovery.

        Args:
            project_root: Project root for local skill discovery.
                Defaults to the current directory.
            override_dir: Directory replacing the user and project roots.
            search_paths: Explicit roots (overrides everything else).
            home_provider: Supplies the home directory.
            user_candidates: User skills directories to check instead of
                the default ones.
        """
        self._project_root = project_root
        self._override_dir = override_dir
        self._search_paths = search_paths
        self._home_provider = home_provider
        self._user_candidates = user_candidates
        self._errors: list[tuple[_pathlib.Path, Exception]] = []

    def get_search_paths(self) -> list[_pathlib.Path]:
        """
        Get the roots in use.

        Raises:
            SkillsRootNotFoundError: If the override directory is missing.
        """
        if self._search_paths is not None:
            return list(self._search_paths)
        return resolve_skills_roots(
            self._project_root or _pathlib.Path.cwd(),
            self._override_dir,
            home_provider=self._home_provider,
            candidates=self._user_candidates,
        )

    @property
    def errors(self) -> list[tuple[_pathlib.Path, Exception]]:
        """Directories that failed to load during the last discover()."""
        return list(self._errors)

    def discover(self) -> dict[str, skill_module.Skill]:
        """
        Discover all skills from the roots.

        Later roots override earlier roots (by skill name). Failures are
        kept in ``errors``.

        Returns:
            Dict mapping skill name to Skill, in name order.
        """
        scans = [scan_root(root) for root in self.get_search_paths()]
        self._errors = [error for scan in scans for error in scan.errors]
        return {skill.name: skill for skill in _sorted_skills(_merge_scans(scans))}

    def discover_all(
        self,
        *,
        include_errors: bool = False,
    ) -> _typing.Iterator[
        skill_module.Skill | tuple[_pathlib.Path, Exception]
    ]:
        """
        Discover all skills without merging, optionally including errors.

        This is an iterator that yields skills as they're discovered,
        root by root, and optionally yields (path, exception) tuples for
        directories that failed to load. Failures are logged either way.

        Args:
            include_errors: If True, yield (path, exception) for failures.

        Yields:
            Skill instances, or (path, exception) tuples if include_errors.
        """
        for root in self.get_search_paths():
            for item in iter_root(root):
                if include_errors or not isinstance(item, tuple):
                    yield item
