"""Fixed locations, patterns and field tables used across the validators."""

from __future__ import annotations

import re

# Document locations
MARKETPLACE_FILE = ".claude-plugin/marketplace.json"
PLUGIN_MANIFEST_FILE = ".claude-plugin/plugin.json"
PLUGIN_META_DIR = ".claude-plugin"
SKILL_FILE = "SKILL.md"
README_FILE = "README.md"
DEFAULT_HOOKS_FILE = "hooks/hooks.json"
DEFAULT_MCP_FILE = ".mcp.json"

# Default component directories, relative to the plugin root
DEFAULT_SKILLS_DIR = "skills"
DEFAULT_AGENTS_DIR = "agents"
DEFAULT_COMMANDS_DIR = "commands"

KEBAB_CASE_PATTERN = r"^[a-z0-9]+(-[a-z0-9]+)*$"
KEBAB_CASE_RE = re.compile(KEBAB_CASE_PATTERN)

SEMVER_PATTERN = (
    r"^\d+\.\d+\.\d+"
    r"(-[0-9A-Za-z-]+(\.[0-9A-Za-z-]+)*)?"
    r"(\+[0-9A-Za-z-]+(\.[0-9A-Za-z-]+)*)?$"
)
SEMVER_RE = re.compile(SEMVER_PATTERN)

HEADER_DELIMITER = "---"
MAX_NAME_LENGTH = 64
MAX_DESCRIPTION_LENGTH = 1024

# Phrases that tell the agent when a capability should be activated
ACTIVATION_TRIGGER_RE = re.compile(
    r"\b(use (this |it )?(when|for|to)|trigger(ed)? (with|when|by)|invoke (when|for)"
    r"|activate(s)? when|when (the )?user|when asked|proactively)\b",
    re.IGNORECASE,
)

VALID_AGENT_MODELS = {"haiku", "sonnet", "opus", "inherit"}

# Valid hook event types from official docs
VALID_HOOK_EVENTS = {
    "PreToolUse",
    "PostToolUse",
    "UserPromptSubmit",
    "Notification",
    "Stop",
    "SubagentStop",
    "SessionStart",
    "SessionEnd",
    "PreCompact",
}

# Valid hook types
VALID_HOOK_TYPES = {"command", "validation", "notification", "prompt"}

PLUGIN_ROOT_VAR = "${CLAUDE_PLUGIN_ROOT}"

# Remote source kinds that can be fetched for validation
SUPPORTED_REMOTE_SOURCES = {"github"}
KNOWN_REMOTE_SOURCES = {"github", "url"}

# Fields that only make sense in a marketplace entry, never in plugin.json
REGISTRY_ONLY_FIELDS = ("dependencies", "category", "strict", "source", "tags")

# Metadata fields a manifest should carry; absence is only a warning
RECOMMENDED_MANIFEST_FIELDS = ("version", "description", "license")

# Fields compared between a marketplace entry and the plugin's own manifest
COMPARABLE_FIELDS = (
    "version",
    "description",
    "author",
    "homepage",
    "repository",
    "license",
    "keywords",
)

# Conflicts in these fields are informational only
INFO_ONLY_CONFLICT_FIELDS = {"author"}

# Expected JSON type(s) of every optional plugin field.
# Shared by marketplace entries and plugin manifests; schema.py builds the
# JSON Schema documents from this table.
FIELD_TYPES: dict[str, tuple[str, ...]] = {
    "description": ("string",),
    "version": ("string",),
    "author": ("object",),
    "homepage": ("string",),
    "repository": ("string",),
    "license": ("string",),
    "keywords": ("array",),
    "category": ("string",),
    "tags": ("array",),
    "strict": ("boolean",),
    "skills": ("array",),
    "commands": ("string", "array"),
    "agents": ("string", "array"),
    "hooks": ("string", "object"),
    "mcpServers": ("string", "object"),
    "dependencies": ("array",),
}

# Array fields whose items must all be strings
STRING_LIST_FIELDS = {"keywords", "tags", "skills", "commands", "agents", "dependencies"}
