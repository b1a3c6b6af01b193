"""
Agent skills discovery for Skald.

Skills are directories containing a SKILL.md file: an optional metadata
header (name, description, type) followed by free-form instructions.
Flow skills also embed a mermaid flowchart describing their steps.

Skill roots (in priority order, lowest first):
1. Builtin skills shipped with skald
2. The first existing of ~/.agents/skills, ~/.codex/skills,
   ~/.config/agents/skills
3. Project .agents/skills/

An explicit override directory replaces roots 2 and 3.
"""

from skald.skills.discovery import (
    RootScan,
    SkillDiscovery,
    SkillsRootNotFoundError,
    discover_skills,
    discover_skills_from_roots,
    discover_skills_from_roots_async,
    find_user_skills_dir,
    get_builtin_skills_dir,
    get_project_skills_dir,
    get_user_skills_candidates,
    iter_root,
    iter_skill_dirs,
    resolve_skills_roots,
    scan_root,
)
from skald.skills.flow import (
    FlowDefinition,
    FlowEdge,
    FlowGraph,
    FlowNode,
    FlowNodeKind,
    FlowParseError,
    find_flow_block,
    parse_flow_block,
    parse_flowchart,
)
from skald.skills.registry import SkillRegistry
from skald.skills.skill import (
    ParsedSkillMarkdown,
    Skill,
    SkillFrontmatter,
    SkillType,
    load_skill,
    parse_skill_markdown,
)

__all__ = [
    # Core
    "Skill",
    "SkillFrontmatter",
    "SkillType",
    "ParsedSkillMarkdown",
    # Parsing
    "load_skill",
    "parse_skill_markdown",
    # Flows
    "FlowDefinition",
    "FlowEdge",
    "FlowGraph",
    "FlowNode",
    "FlowNodeKind",
    "FlowParseError",
    "find_flow_block",
    "parse_flow_block",
    "parse_flowchart",
    # Discovery
    "RootScan",
    "SkillDiscovery",
    "SkillsRootNotFoundError",
    "discover_skills",
    "discover_skills_from_roots",
    "discover_skills_from_roots_async",
    "find_user_skills_dir",
    "get_builtin_skills_dir",
    "get_project_skills_dir",
    "get_user_skills_candidates",
    "iter_root",
    "iter_skill_dirs",
    "resolve_skills_roots",
    "scan_root",
    # Registry
    "SkillRegistry",
]
