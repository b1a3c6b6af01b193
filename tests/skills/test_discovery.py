"""
Tests for skill discovery.

Tests verify that:
- Skill roots are resolved from builtin, user, project and override paths
- Later roots override earlier roots by name
- Unreadable skill directories are skipped and reported
"""

import logging as _logging
import os as _os
import pathlib as _pathlib
import unittest.mock as _mock

import pytest as _pytest

import skald.skills.discovery as discovery
import skald.skills.skill as skill
import skald.utils.home as home
import tests.conftest as conftest


def _create_skill(
    parent: _pathlib.Path,
    dir_name: str,
    description: str = "Test skill",
    name: str | None = None,
) -> _pathlib.Path:
    """Helper to create a minimal skill directory."""
    return conftest.write_skill(
        parent / dir_name,
        f"---\nname: {name or dir_name}\ndescription: {description}\n---\n\n# {dir_name}\n",
    )


class TestDiscoverSkills:
    """Tests for discover_skills and discover_skills_from_roots."""

    def test_parses_frontmatter_and_defaults(self, tmp_path: _pathlib.Path) -> None:
        """Header values are used; missing ones fall back to defaults."""
        root = tmp_path / "skills"
        conftest.write_skill(
            root / "alpha",
            "---\nname: alpha-skill\ndescription: Alpha description\n---\n",
        )
        conftest.write_skill(root / "beta", "# No frontmatter")

        skills = discovery.discover_skills(root)

        assert skills == [
            skill.Skill(
                name="alpha-skill",
                description="Alpha description",
                skill_type=skill.SkillType.STANDARD,
                dir=root / "alpha",
                flow=None,
            ),
            skill.Skill(
                name="beta",
                description="No description provided.",
                skill_type=skill.SkillType.STANDARD,
                dir=root / "beta",
                flow=None,
            ),
        ]

    def test_parses_flow_type(self, tmp_path: _pathlib.Path) -> None:
        """type: flow with a valid diagram gives a flow skill."""
        root = tmp_path / "skills"
        conftest.write_skill(
            root / "flowy",
            "---\nname: flowy\ndescription: Flow skill\ntype: flow\n---\n"
            "```mermaid\nflowchart TD\nBEGIN([BEGIN]) --> A[Hello]\nA --> END([END])\n```\n",
        )

        skills = discovery.discover_skills(root)

        assert len(skills) == 1
        assert skills[0].skill_type is skill.SkillType.FLOW
        assert skills[0].flow is not None
        assert skills[0].flow.begin_id == "BEGIN"

    def test_flow_parse_failure_falls_back(self, tmp_path: _pathlib.Path) -> None:
        """An invalid flow diagram gives a standard skill."""
        root = tmp_path / "skills"
        conftest.write_skill(
            root / "broken-flow",
            "---\nname: broken-flow\ndescription: Broken flow skill\ntype: flow\n---\n"
            "```mermaid\nflowchart TD\nA --> B\n```\n",
        )

        skills = discovery.discover_skills(root)

        assert len(skills) == 1
        assert skills[0].skill_type is skill.SkillType.STANDARD
        assert skills[0].flow is None

    def test_later_root_wins(self, tmp_path: _pathlib.Path) -> None:
        """A skill in a later root replaces the earlier one entirely."""
        system_dir = tmp_path / "root" / "system"
        user_dir = tmp_path / "root" / "user"
        _create_skill(system_dir, "shared", description="System version")
        _create_skill(user_dir, "shared", description="User version")

        skills = discovery.discover_skills_from_roots([system_dir, user_dir])

        assert skills == [
            skill.Skill(
                name="shared",
                description="User version",
                skill_type=skill.SkillType.STANDARD,
                dir=user_dir / "shared",
                flow=None,
            )
        ]

    def test_override_matches_by_name_not_directory(self, tmp_path: _pathlib.Path) -> None:
        """Skills collide on their declared name."""
        low = tmp_path / "low"
        high = tmp_path / "high"
        _create_skill(low, "one", name="same", description="Low")
        _create_skill(high, "two", name="same", description="High")

        skills = discovery.discover_skills_from_roots([low, high])

        assert [(s.name, s.description) for s in skills] == [("same", "High")]

    def test_sorted_by_name(self, tmp_path: _pathlib.Path) -> None:
        """Results are sorted by skill name, not by root or directory."""
        low = tmp_path / "low"
        high = tmp_path / "high"
        _create_skill(low, "a-dir", name="zeta")
        _create_skill(high, "b-dir", name="alpha")
        _create_skill(low, "c-dir", name="mid")

        skills = discovery.discover_skills_from_roots([low, high])

        assert [s.name for s in skills] == ["alpha", "mid", "zeta"]

    def test_same_root_collision_last_directory_wins(self, tmp_path: _pathlib.Path) -> None:
        """Within one root, directories are read in name order."""
        root = tmp_path / "skills"
        _create_skill(root, "a", name="dup", description="From a")
        _create_skill(root, "b", name="dup", description="From b")

        skills = discovery.discover_skills(root)

        assert len(skills) == 1
        assert skills[0].dir == root / "b"

    def test_skips_non_skill_entries(self, tmp_path: _pathlib.Path) -> None:
        """Plain files and directories without SKILL.md are ignored."""
        root = tmp_path / "skills"
        _create_skill(root, "real")
        (root / "no-skill-md").mkdir()
        (root / "README.md").write_text("not a skill")

        skills = discovery.discover_skills(root)

        assert [s.name for s in skills] == ["real"]

    def test_nested_directories_are_not_scanned(self, tmp_path: _pathlib.Path) -> None:
        """Only immediate subdirectories of a root are skills."""
        root = tmp_path / "skills"
        _create_skill(root / "group", "nested")

        assert discovery.discover_skills(root) == []

    def test_missing_root_is_empty(self, tmp_path: _pathlib.Path) -> None:
        """A root that does not exist contributes nothing."""
        assert discovery.discover_skills(tmp_path / "missing") == []
        assert discovery.discover_skills_from_roots([]) == []

    def test_root_that_is_a_file_is_empty(self, tmp_path: _pathlib.Path) -> None:
        """A root that is a file contributes nothing."""
        root = tmp_path / "file"
        root.write_text("x")
        assert discovery.discover_skills(root) == []

    def test_unreadable_skill_is_skipped(self, tmp_path: _pathlib.Path) -> None:
        """A SKILL.md that cannot be decoded does not stop discovery."""
        root = tmp_path / "skills"
        _create_skill(root, "good")
        bad = root / "bad"
        bad.mkdir()
        (bad / "SKILL.md").write_bytes(b"\xff\xfe\xfa")

        skills = discovery.discover_skills(root)

        assert [s.name for s in skills] == ["good"]

    def test_repeated_discovery_is_identical(self, tmp_path: _pathlib.Path) -> None:
        """Discovering an unchanged tree twice gives the same result."""
        root = tmp_path / "skills"
        _create_skill(root, "one")
        _create_skill(root, "two")

        assert discovery.discover_skills(root) == discovery.discover_skills(root)


class TestScanRoot:
    """Tests for scan_root function."""

    def test_records_errors(self, tmp_path: _pathlib.Path) -> None:
        """Failures are kept per directory."""
        root = tmp_path / "skills"
        _create_skill(root, "good")
        bad = root / "bad"
        bad.mkdir()
        (bad / "SKILL.md").write_bytes(b"\xff\xfe\xfa")

        scan = discovery.scan_root(root)

        assert scan.root == root
        assert [s.name for s in scan.skills] == ["good"]
        assert len(scan.errors) == 1
        assert scan.errors[0][0] == bad
        assert isinstance(scan.errors[0][1], UnicodeDecodeError)

    def test_read_error_is_recorded(self, tmp_path: _pathlib.Path) -> None:
        """An OSError while reading is recorded, not raised."""
        root = tmp_path / "skills"
        _create_skill(root, "locked")

        with _mock.patch.object(
            _pathlib.Path, "read_text", side_effect=PermissionError("denied")
        ):
            scan = discovery.scan_root(root)

        assert scan.skills == []
        assert scan.errors[0][0] == root / "locked"
        assert isinstance(scan.errors[0][1], PermissionError)


class TestDiscoverSkillsAsync:
    """Tests for discover_skills_from_roots_async."""

    @_pytest.mark.asyncio
    async def test_matches_sync_result(self, tmp_path: _pathlib.Path) -> None:
        """Concurrent scanning keeps root precedence."""
        low = tmp_path / "low"
        high = tmp_path / "high"
        _create_skill(low, "shared", description="Low")
        _create_skill(high, "shared", description="High")
        _create_skill(low, "only-low")
        _create_skill(high, "only-high")

        result = await discovery.discover_skills_from_roots_async([low, high])

        assert result == discovery.discover_skills_from_roots([low, high])
        assert [s.name for s in result] == ["only-high", "only-low", "shared"]
        assert result[2].description == "High"

    @_pytest.mark.asyncio
    async def test_no_roots(self) -> None:
        """No roots gives no skills."""
        assert await discovery.discover_skills_from_roots_async([]) == []


class TestResolveSkillsRoots:
    """Tests for resolve_skills_roots function."""

    def test_uses_layers(self, tmp_path: _pathlib.Path) -> None:
        """Builtin, user and project roots, in that order."""
        home_dir = tmp_path / "home"
        user_dir = home_dir / ".config" / "agents" / "skills"
        user_dir.mkdir(parents=True)
        work_dir = tmp_path / "project"
        project_dir = work_dir / ".agents" / "skills"
        project_dir.mkdir(parents=True)

        roots = discovery.resolve_skills_roots(
            work_dir, home_provider=home.StaticHomeProvider(home_dir)
        )

        assert roots == [discovery.get_builtin_skills_dir(), user_dir, project_dir]

    def test_uses_home_from_environment(self, tmp_path: _pathlib.Path) -> None:
        """Without a provider the process environment supplies the home."""
        home_dir = tmp_path / "home"
        user_dir = home_dir / ".agents" / "skills"
        user_dir.mkdir(parents=True)

        with _mock.patch.dict(
            _os.environ, {"HOME": str(home_dir), "USERPROFILE": str(home_dir)}
        ):
            roots = discovery.resolve_skills_roots(tmp_path / "project")

        assert roots[1] == user_dir

    def test_respects_override(self, tmp_path: _pathlib.Path) -> None:
        """An override replaces the user and project roots."""
        override_dir = tmp_path / "override"
        override_dir.mkdir()
        home_dir = tmp_path / "home"
        (home_dir / ".agents" / "skills").mkdir(parents=True)

        roots = discovery.resolve_skills_roots(
            tmp_path,
            override_dir,
            home_provider=home.StaticHomeProvider(home_dir),
        )

        assert roots == [discovery.get_builtin_skills_dir(), override_dir]

    def test_missing_override_raises(self, tmp_path: _pathlib.Path) -> None:
        """A missing override directory is an error, not a silent fallback."""
        missing = tmp_path / "missing"

        with _pytest.raises(discovery.SkillsRootNotFoundError) as exc_info:
            discovery.resolve_skills_roots(tmp_path, missing)

        assert exc_info.value.path == missing
        assert isinstance(exc_info.value, FileNotFoundError)

    def test_project_root_listed_even_if_missing(self, tmp_path: _pathlib.Path) -> None:
        """The project root is always listed; scanning skips it if absent."""
        roots = discovery.resolve_skills_roots(
            tmp_path, home_provider=home.StaticHomeProvider(tmp_path / "home")
        )

        assert roots == [
            discovery.get_builtin_skills_dir(),
            tmp_path / ".agents" / "skills",
        ]

    def test_no_home_skips_user_root(self, tmp_path: _pathlib.Path) -> None:
        """Without a home directory only builtin and project roots remain."""
        roots = discovery.resolve_skills_roots(
            tmp_path, home_provider=home.StaticHomeProvider(None)
        )

        assert roots == [
            discovery.get_builtin_skills_dir(),
            discovery.get_project_skills_dir(tmp_path),
        ]


class TestFindUserSkillsDir:
    """Tests for find_user_skills_dir function."""

    def test_uses_agents_candidate(self, fake_home: _pathlib.Path) -> None:
        """~/.agents/skills is found."""
        agents_dir = fake_home / ".agents" / "skills"
        agents_dir.mkdir(parents=True)

        found = discovery.find_user_skills_dir(
            home_provider=home.StaticHomeProvider(fake_home)
        )

        assert found == agents_dir

    def test_uses_codex_candidate(self, fake_home: _pathlib.Path) -> None:
        """~/.codex/skills is found."""
        codex_dir = fake_home / ".codex" / "skills"
        codex_dir.mkdir(parents=True)

        found = discovery.find_user_skills_dir(
            home_provider=home.StaticHomeProvider(fake_home)
        )

        assert found == codex_dir

    def test_first_existing_candidate_wins(self, fake_home: _pathlib.Path) -> None:
        """~/.agents/skills takes precedence over the others."""
        for parts in [(".agents", "skills"), (".codex", "skills"), (".config", "agents", "skills")]:
            fake_home.joinpath(*parts).mkdir(parents=True)

        found = discovery.find_user_skills_dir(
            home_provider=home.StaticHomeProvider(fake_home)
        )

        assert found == fake_home / ".agents" / "skills"

    def test_candidate_must_be_directory(self, fake_home: _pathlib.Path) -> None:
        """A file at a candidate path is passed over."""
        (fake_home / ".agents").mkdir()
        (fake_home / ".agents" / "skills").write_text("not a dir")
        codex_dir = fake_home / ".codex" / "skills"
        codex_dir.mkdir(parents=True)

        found = discovery.find_user_skills_dir(
            home_provider=home.StaticHomeProvider(fake_home)
        )

        assert found == codex_dir

    def test_none_when_nothing_exists(self, fake_home: _pathlib.Path) -> None:
        """No candidate directory gives None."""
        assert (
            discovery.find_user_skills_dir(home_provider=home.StaticHomeProvider(fake_home))
            is None
        )

    def test_none_without_home(self) -> None:
        """No home directory gives None."""
        assert discovery.find_user_skills_dir(home_provider=home.StaticHomeProvider(None)) is None

    def test_custom_candidates(self, fake_home: _pathlib.Path, tmp_path: _pathlib.Path) -> None:
        """Configured candidates replace the defaults, home-relative or absolute."""
        (fake_home / ".agents" / "skills").mkdir(parents=True)
        mine = fake_home / "my-skills"
        mine.mkdir()
        absolute = tmp_path / "elsewhere"
        absolute.mkdir()
        provider = home.StaticHomeProvider(fake_home)

        assert (
            discovery.find_user_skills_dir(
                home_provider=provider,
                candidates=[_pathlib.Path("~/missing"), _pathlib.Path("~/my-skills")],
            )
            == mine
        )
        assert (
            discovery.find_user_skills_dir(
                home_provider=provider,
                candidates=[_pathlib.Path("my-skills")],
            )
            == mine
        )
        assert (
            discovery.find_user_skills_dir(
                home_provider=home.StaticHomeProvider(None),
                candidates=[_pathlib.Path("~/my-skills"), absolute],
            )
            == absolute
        )


class TestSkillDiscovery:
    """Tests for SkillDiscovery class."""

    def test_discovers_project_skills(
        self, isolated_workspace: _pathlib.Path, home_provider: home.HomeProvider
    ) -> None:
        """Skills in .agents/skills are discovered alongside builtins."""
        _create_skill(isolated_workspace / ".agents" / "skills", "local")

        found = discovery.SkillDiscovery(
            isolated_workspace, home_provider=home_provider
        ).discover()

        assert "local" in found
        assert "skill-authoring" in found
        assert list(found) == sorted(found)

    def test_project_overrides_user_and_builtin(
        self,
        isolated_workspace: _pathlib.Path,
        fake_home: _pathlib.Path,
        home_provider: home.HomeProvider,
    ) -> None:
        """Project skills replace user skills, which replace builtins."""
        user_root = fake_home / ".agents" / "skills"
        _create_skill(user_root, "skill-authoring", description="User authoring")
        _create_skill(user_root, "shared", description="User shared")
        _create_skill(isolated_workspace / ".agents" / "skills", "shared", description="Project")

        found = discovery.SkillDiscovery(
            isolated_workspace, home_provider=home_provider
        ).discover()

        assert found["skill-authoring"].description == "User authoring"
        assert found["shared"].description == "Project"

    def test_search_paths_override_everything(self, tmp_path: _pathlib.Path) -> None:
        """Explicit search paths are used as given."""
        root = tmp_path / "only"
        _create_skill(root, "lonely")

        disc = discovery.SkillDiscovery(search_paths=[root])

        assert disc.get_search_paths() == [root]
        assert list(disc.discover()) == ["lonely"]

    def test_defaults_to_cwd(
        self,
        isolated_workspace: _pathlib.Path,
        home_provider: home.HomeProvider,
        monkeypatch: _pytest.MonkeyPatch,
    ) -> None:
        """Without a project root the current directory is used."""
        monkeypatch.chdir(isolated_workspace)

        paths = discovery.SkillDiscovery(home_provider=home_provider).get_search_paths()

        assert paths[-1] == _pathlib.Path.cwd() / ".agents" / "skills"

    def test_errors_are_reported(self, tmp_path: _pathlib.Path) -> None:
        """Directories that fail to load are listed in errors."""
        root = tmp_path / "skills"
        _create_skill(root, "good")
        (root / "bad").mkdir()
        (root / "bad" / "SKILL.md").write_bytes(b"\xff")

        disc = discovery.SkillDiscovery(search_paths=[root])
        found = disc.discover()

        assert list(found) == ["good"]
        assert [path for path, _ in disc.errors] == [root / "bad"]

    def test_discover_all_yields_unmerged(self, tmp_path: _pathlib.Path) -> None:
        """discover_all yields every skill, root by root."""
        low = tmp_path / "low"
        high = tmp_path / "high"
        _create_skill(low, "shared", description="Low")
        _create_skill(high, "shared", description="High")
        (high / "bad").mkdir()
        (high / "bad" / "SKILL.md").write_bytes(b"\xff")

        disc = discovery.SkillDiscovery(search_paths=[low, high])

        assert [s.description for s in disc.discover_all()] == ["Low", "High"]

        with_errors = list(disc.discover_all(include_errors=True))
        assert len(with_errors) == 3
        assert isinstance(with_errors[0], skill.Skill)
        assert isinstance(with_errors[1], tuple)
        assert with_errors[1][0] == high / "bad"

    def test_discover_all_logs_skipped_failures(
        self, tmp_path: _pathlib.Path, caplog: _pytest.LogCaptureFixture
    ) -> None:
        """Failures are logged even when they are not yielded."""
        root = tmp_path / "skills"
        _create_skill(root, "good")
        (root / "bad").mkdir()
        (root / "bad" / "SKILL.md").write_bytes(b"\xff")

        disc = discovery.SkillDiscovery(search_paths=[root])
        with caplog.at_level(_logging.WARNING, logger="skald.skills.discovery"):
            found = list(disc.discover_all())

        assert [s.name for s in found] == ["good"]  # type: ignore[union-attr]
        assert "Failed to load skill from" in caplog.text
        assert str(root / "bad") in caplog.text

    def test_missing_override_raises(self, tmp_path: _pathlib.Path) -> None:
        """A missing override fails discovery."""
        disc = discovery.SkillDiscovery(tmp_path, override_dir=tmp_path / "nope")

        with _pytest.raises(discovery.SkillsRootNotFoundError):
            disc.discover()


class TestBuiltinSkills:
    """Tests for the skills shipped with skald."""

    def test_skill_authoring_is_a_flow(self) -> None:
        """The builtin authoring skill parses as a flow."""
        skills = {s.name: s for s in discovery.discover_skills(discovery.get_builtin_skills_dir())}

        authoring = skills["skill-authoring"]
        assert authoring.skill_type is skill.SkillType.FLOW
        assert authoring.flow is not None
        assert authoring.flow.begin_id == "BEGIN"
        assert authoring.flow.graph.end_ids == ["END"]
