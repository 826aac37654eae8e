"""Pytest configuration and shared fixtures for marketplace-check tests."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

VALID_SKILL = """---
name: {name}
description: Formats release notes. Use when the user asks for a changelog.
---

# {name}
"""


def write_json(path: Path, data: Any) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    return path


@pytest.fixture
def make_plugin(tmp_path: Path) -> Callable[..., Path]:
    """Factory creating a plugin directory with an optional plugin.json."""

    def _make(
        name: str,
        manifest: dict[str, Any] | None = None,
        *,
        with_manifest: bool = True,
        skills: list[str] | None = None,
        readme: bool = True,
    ) -> Path:
        plugin_dir = tmp_path / name
        plugin_dir.mkdir(parents=True, exist_ok=True)
        if with_manifest:
            data = manifest if manifest is not None else {
                "name": name,
                "version": "1.0.0",
                "description": f"The {name} plugin",
                "license": "MIT",
            }
            write_json(plugin_dir / ".claude-plugin" / "plugin.json", data)
        if readme:
            (plugin_dir / "README.md").write_text(f"# {name}\n", encoding="utf-8")
        for skill in skills or []:
            skill_dir = plugin_dir / "skills" / skill
            skill_dir.mkdir(parents=True)
            (skill_dir / "SKILL.md").write_text(VALID_SKILL.format(name=skill), encoding="utf-8")
        return plugin_dir

    return _make


@pytest.fixture
def write_registry(tmp_path: Path) -> Callable[[dict[str, Any]], Path]:
    """Write a marketplace.json under tmp_path/.claude-plugin/."""

    def _write(data: dict[str, Any]) -> Path:
        return write_json(tmp_path / ".claude-plugin" / "marketplace.json", data)

    return _write


@pytest.fixture
def demo_registry() -> dict[str, Any]:
    """Two local plugins, ``ext`` depending on ``core``."""
    return {
        "name": "demo",
        "owner": {"name": "x"},
        "plugins": [
            {"name": "core", "source": "./core"},
            {"name": "ext", "source": "./ext", "dependencies": ["core"]},
        ],
    }
