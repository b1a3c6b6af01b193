"""
Skill definition and SKILL.md parsing.

Skills are defined by a SKILL.md file with an optional metadata header:

    ---
    name: release-notes
    description: Draft release notes from the changelog
    type: flow
    ---

The header holds ``key: value`` metadata; everything after it is the body.
Parsing is forgiving: a missing or broken header never fails a skill, it
just falls back to the directory name and a placeholder description.
"""

from __future__ import annotations

import dataclasses as _dataclasses
import enum as _enum
import logging as _logging
import pathlib as _pathlib
import re as _re
import typing as _typing

import pydantic as _pydantic
import yaml as _yaml

import skald.constants as constants
import skald.skills.flow as flow_module

_logger = _logging.getLogger(__name__)

# Fallback for headers that are not valid YAML: plain "key: value" lines
_HEADER_LINE_RE = _re.compile(r"^\s*(?P<key>[A-Za-z_][\w-]*)\s*:\s*(?P<value>.*?)\s*$")


class _HeaderLoader(_yaml.SafeLoader):
    """SafeLoader that resolves plain scalars to strings, except null.

    "yes", "1.10" and "2024-01-01" load as written.
    """

    yaml_implicit_resolvers = {
        first: [(tag, regexp) for tag, regexp in resolvers if tag == "tag:yaml.org,2002:null"]
        for first, resolvers in _yaml.SafeLoader.yaml_implicit_resolvers.items()
    }


class SkillType(str, _enum.Enum):
    """Kind of skill."""

    STANDARD = "standard"
    """Free-form guidance, no flow graph."""

    FLOW = "flow"
    """Carries a parsed flow graph."""


class SkillFrontmatter(_pydantic.BaseModel):
    """
    Metadata header of a SKILL.md file.

    Every field is optional. Unknown keys are dropped, and values that are
    not scalars are treated as absent rather than rejected.
    """

    model_config = _pydantic.ConfigDict(extra="ignore", populate_by_name=True)

    name: str | None = None
    """Skill name; defaults to the directory name."""

    description: str | None = None
    """What the skill does."""

    type_hint: str | None = _pydantic.Field(default=None, alias="type")
    """Declared skill type ("standard" or "flow")."""

    @_pydantic.field_validator("name", "description", "type_hint", mode="before")
    @classmethod
    def _coerce_scalar(cls, value: _typing.Any) -> str | None:
        """Turn scalars into stripped strings, anything else into None."""
        if isinstance(value, (bool, int, float)):
            value = str(value)
        if not isinstance(value, str):
            return None
        return value.strip() or None


@_dataclasses.dataclass(frozen=True)
class ParsedSkillMarkdown:
    """Result of parsing SKILL.md text."""

    name: str | None
    description: str | None
    type_hint: str | None
    body: str


@_dataclasses.dataclass(frozen=True)
class Skill:
    """
    A discovered skill.

    Built once per skill directory and never modified. ``dir`` is a plain
    path; nothing stays open after loading.
    """

    name: str
    """Skill name from the header, or the directory name."""

    description: str
    """Skill description from the header, or a placeholder."""

    skill_type: SkillType
    """Whether the skill carries a usable flow."""

    dir: _pathlib.Path
    """Path to the skill directory."""

    flow: flow_module.FlowDefinition | None = None
    """Parsed flow, set only for flow skills."""

    @property
    def skill_md_file(self) -> _pathlib.Path:
        """Path to the SKILL.md file."""
        return self.dir / constants.SKILL_FILE_NAME

    @property
    def is_flow(self) -> bool:
        """Whether this is a flow skill."""
        return self.skill_type is SkillType.FLOW

    def get_metadata_for_prompt(self) -> str:
        """
        Get a one-line summary for a system prompt.

        Returns name and description only.
        """
        return f"**{self.name}**: {self.description}"

    def to_dict(self) -> dict[str, _typing.Any]:
        """Convert to dictionary for JSON serialization."""
        data: dict[str, _typing.Any] = {
            "name": self.name,
            "description": self.description,
            "type": self.skill_type.value,
            "dir": str(self.dir),
        }
        if self.flow is not None:
            data["flow"] = {
                "begin_id": self.flow.begin_id,
                "nodes": list(self.flow.graph.nodes),
                "edge_count": len(self.flow.graph.edges),
            }
        return data


def _split_header(content: str) -> tuple[str | None, str]:
    """Split SKILL.md text into header text (or None) and body."""
    text = content.removeprefix("\ufeff")
    lines = text.splitlines(keepends=True)
    if not lines or lines[0].rstrip() != constants.METADATA_DELIMITER:
        return None, text

    for index in range(1, len(lines)):
        if lines[index].strip() == constants.METADATA_DELIMITER:
            return "".join(lines[1:index]), "".join(lines[index + 1 :])

    # Opening marker without a closing one: not a header
    return None, text


def _parse_header_lines(header: str) -> dict[str, str]:
    """Read ``key: value`` lines, skipping anything else."""
    data: dict[str, str] = {}
    for line in header.splitlines():
        match = _HEADER_LINE_RE.match(line)
        if not match:
            continue
        value = match.group("value")
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
            value = value[1:-1]
        data[match.group("key")] = value
    return data


def _load_header(header: str) -> dict[str, _typing.Any]:
    """Load header text as YAML, falling back to line-by-line reading."""
    try:
        data = _yaml.load(header, Loader=_HeaderLoader)
    except _yaml.YAMLError as e:
        _logger.debug("Header is not valid YAML, reading lines: %s", e)
        return _parse_header_lines(header)

    if isinstance(data, dict):
        return {str(key): value for key, value in data.items()}
    if data is None:
        return {}
    return _parse_header_lines(header)


def parse_skill_markdown(content: str) -> ParsedSkillMarkdown:
    """
    Parse SKILL.md text into metadata and body.

    Never raises. Without a header the whole text is the body and all
    metadata is None.

    Args:
        content: Raw markdown content.

    Returns:
        Parsed name, description, type hint and body.
    """
    header, body = _split_header(content)
    if header is None:
        return ParsedSkillMarkdown(name=None, description=None, type_hint=None, body=body)

    frontmatter = SkillFrontmatter.model_validate(_load_header(header))
    return ParsedSkillMarkdown(
        name=frontmatter.name,
        description=frontmatter.description,
        type_hint=frontmatter.type_hint,
        body=body,
    )


def load_skill(skill_dir: _pathlib.Path) -> Skill | None:
    """
    Load a skill from a directory.

    Args:
        skill_dir: Path to skill directory.

    Returns:
        Parsed Skill, or None if the directory has no SKILL.md.

    Raises:
        OSError: If SKILL.md exists but cannot be read.
        UnicodeDecodeError: If SKILL.md is not valid UTF-8.
    """
    skill_file = skill_dir / constants.SKILL_FILE_NAME
    if not skill_file.is_file():
        return None

    content = skill_file.read_text(encoding="utf-8")
    parsed = parse_skill_markdown(content)

    name = parsed.name or skill_dir.name
    description = parsed.description or constants.DEFAULT_SKILL_DESCRIPTION

    flow: flow_module.FlowDefinition | None = None
    if parsed.type_hint is not None and parsed.type_hint.lower() == constants.FLOW_TYPE_MARKER:
        flow = flow_module.parse_flow_block(parsed.body)
        if flow is None:
            _logger.info(
                "Skill %s is declared as a flow but has no valid flow diagram, "
                "loading it as a standard skill",
                name,
            )

    return Skill(
        name=name,
        description=description,
        skill_type=SkillType.FLOW if flow is not None else SkillType.STANDARD,
        dir=skill_dir,
        flow=flow,
    )
