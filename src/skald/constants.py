"""
Shared constants for Skald.

This module provides a single source of truth for file names, markers
and default values used across the skills and config modules.
"""

# Skill definition files
SKILL_FILE_NAME = "SKILL.md"
"""Name of the definition file that marks a directory as a skill."""

METADATA_DELIMITER = "---"
"""Line that opens and closes the metadata header of SKILL.md."""

DEFAULT_SKILL_DESCRIPTION = "No description provided."
"""Description used when SKILL.md does not provide one."""

FLOW_TYPE_MARKER = "flow"
"""Value of the ``type`` header key that requests flow parsing."""

FLOW_FENCE_LANGUAGE = "mermaid"
"""Language tag of the fenced block holding a flow diagram."""

FLOW_BEGIN_MARKER = "BEGIN"
"""Node id or label (case-insensitive) of the single entry node of a flow."""

FLOW_END_MARKER = "END"
"""Node id or label (case-insensitive) of the terminal nodes of a flow."""

# Directory layout
PROJECT_SKILLS_SUBDIR = (".agents", "skills")
"""Project-local skills directory, relative to the project root."""

USER_SKILLS_CANDIDATES = (
    (".agents", "skills"),
    (".codex", "skills"),
    (".config", "agents", "skills"),
)
"""User skills directory candidates under the home directory.

Checked in order; the first one that exists is used.
"""

# Configuration
ENV_PREFIX = "SKALD_"
"""Prefix for all Skald environment variables."""

ENV_CONFIG_DIR = "SKALD_CONFIG_DIR"
"""Environment variable overriding the user config directory."""

ENV_ENV_FILE = "SKALD_ENV_FILE"
"""Environment variable selecting a .env file to load."""

PROJECT_CONFIG_FILE = (".agents", "skald.yaml")
"""Project-level config file, relative to the project root."""
