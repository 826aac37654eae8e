"""Tests for the paired version bump check."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest

from marketplace_check.versions import (
    affected_plugins,
    check_version_bumps,
    plugin_source_dirs,
)

BASE = "origin/main"
MANIFEST = "plugins/a/.claude-plugin/plugin.json"
REGISTRY = ".claude-plugin/marketplace.json"


def write_json(path: Path, data: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding="utf-8")


def registry_doc(version: str | None = "1.1.0") -> dict[str, Any]:
    entry: dict[str, Any] = {"name": "a", "source": "./plugins/a"}
    if version is not None:
        entry["version"] = version
    return {"name": "demo", "owner": {"name": "x"}, "plugins": [entry]}


def git_at_base(files: dict[str, Any]) -> MagicMock:
    """Git double serving ``files`` (dicts are JSON-encoded) at the base revision."""
    git = MagicMock()

    def show_file_at(ref: str, path: str) -> bytes | None:
        assert ref == BASE
        content = files.get(path)
        if content is None:
            return None
        if isinstance(content, bytes):
            return content
        return json.dumps(content).encode("utf-8")

    git.show_file_at.side_effect = show_file_at
    return git


@pytest.fixture
def repo(tmp_path: Path):
    """Working tree with plugin ``a`` at version 1.1.0 by default."""

    def _write(version: str = "1.1.0") -> Path:
        write_json(tmp_path / MANIFEST, {"name": "a", "version": version})
        return tmp_path

    return _write


def run(repo_root: Path, git: MagicMock, head_registry: dict[str, Any]):
    return check_version_bumps(
        BASE,
        ["plugins/a/skills/x/SKILL.md"],
        head_registry,
        plugin_source_dirs(head_registry),
        git,
        repo_root=repo_root,
    )


class TestPluginSourceDirs:
    """Tests for mapping plugins to directories."""

    def test_local_sources(self) -> None:
        doc = {
            "plugins": [
                {"name": "a", "source": "./plugins/a"},
                {"name": "b", "source": "plugins/b/"},
                {"name": "remote", "source": {"source": "github", "repo": "x/y"}},
            ]
        }
        assert plugin_source_dirs(doc) == {"a": "plugins/a/", "b": "plugins/b/"}

    def test_plugin_root(self) -> None:
        doc = {"metadata": {"pluginRoot": "./plugins"}, "plugins": [{"name": "a", "source": "a"}]}
        assert plugin_source_dirs(doc) == {"a": "plugins/a/"}


class TestAffectedPlugins:
    """Tests for affected_plugins."""

    def test_prefix_match_is_directory_aware(self) -> None:
        plugin_map = {"a": "plugins/a/", "ab": "plugins/ab/"}
        assert affected_plugins(["plugins/ab/README.md"], plugin_map) == ["ab"]

    def test_unrelated_files(self) -> None:
        assert affected_plugins(["README.md", "docs/x.md"], {"a": "plugins/a/"}) == []


class TestCheckVersionBumps:
    """Tests for check_version_bumps."""

    def test_nothing_affected(self, tmp_path: Path) -> None:
        report = check_version_bumps(
            BASE, ["README.md"], registry_doc(), {"a": "plugins/a/"}, MagicMock(), tmp_path
        )
        assert report.ok
        assert report.info == ["No plugin files changed"]

    def test_both_bumped_and_equal(self, repo) -> None:
        git = git_at_base(
            {MANIFEST: {"name": "a", "version": "1.0.0"}, REGISTRY: registry_doc("1.0.0")}
        )
        report = run(repo("1.1.0"), git, registry_doc("1.1.0"))
        assert report.errors == []
        assert report.info == ["a: '1.0.0' -> '1.1.0'"]

    def test_manifest_not_bumped(self, repo) -> None:
        git = git_at_base(
            {MANIFEST: {"name": "a", "version": "1.0.0"}, REGISTRY: registry_doc("1.0.0")}
        )
        report = run(repo("1.0.0"), git, registry_doc("1.1.0"))
        assert len(report.errors) == 2
        assert report.errors[0] == (
            "a: plugin.json version not bumped (still '1.0.0' since origin/main)"
        )
        assert "version mismatch" in report.errors[1]

    def test_marketplace_not_bumped(self, repo) -> None:
        git = git_at_base(
            {MANIFEST: {"name": "a", "version": "1.0.0"}, REGISTRY: registry_doc("1.0.0")}
        )
        report = run(repo("1.1.0"), git, registry_doc("1.0.0"))
        assert report.errors[0] == (
            "a: marketplace.json version not bumped (still '1.0.0' since origin/main)"
        )
        assert report.errors[1] == (
            "a: version mismatch - plugin.json '1.1.0', marketplace.json '1.0.0'"
        )

    def test_both_bumped_but_disagree(self, repo) -> None:
        git = git_at_base(
            {MANIFEST: {"name": "a", "version": "1.0.0"}, REGISTRY: registry_doc("1.0.0")}
        )
        report = run(repo("1.1.0"), git, registry_doc("2.0.0"))
        assert report.errors == [
            "a: version mismatch - plugin.json '1.1.0', marketplace.json '2.0.0'"
        ]

    def test_new_plugin_without_base_manifest(self, repo) -> None:
        git = git_at_base({REGISTRY: registry_doc("1.0.0")})
        report = run(repo("0.1.0"), git, registry_doc("0.1.0"))
        assert report.ok
        assert report.info == ["a: new plugin since origin/main, no bump required"]

    def test_new_plugin_missing_from_base_registry(self, repo) -> None:
        base_registry = {"name": "demo", "owner": {"name": "x"}, "plugins": []}
        git = git_at_base({MANIFEST: {"name": "a", "version": "1.0.0"}, REGISTRY: base_registry})
        report = run(repo("1.0.0"), git, registry_doc("1.0.0"))
        assert report.ok

    def test_unreadable_base_manifest_warns(self, repo) -> None:
        git = git_at_base({MANIFEST: b"{not json", REGISTRY: registry_doc("1.0.0")})
        report = run(repo("1.1.0"), git, registry_doc("1.1.0"))
        assert report.errors == []
        assert len(report.warnings) == 1
        assert report.warnings[0].startswith("a: cannot compare versions")

    def test_unreadable_base_registry_only_warns(self, repo) -> None:
        git = git_at_base({MANIFEST: {"name": "a", "version": "1.0.0"}, REGISTRY: b"[]"})
        report = run(repo("1.1.0"), git, registry_doc("1.1.0"))
        assert report.errors == []
        assert report.warnings == [
            "Cannot read marketplace at origin/main: Document must be a JSON object, got list"
        ]

    def test_missing_versions_are_reported_as_unset(self, repo) -> None:
        git = git_at_base({MANIFEST: {"name": "a"}, REGISTRY: registry_doc(None)})
        repo_root = repo()
        write_json(repo_root / MANIFEST, {"name": "a"})
        report = run(repo_root, git, registry_doc(None))
        assert report.errors == [
            "a: plugin.json version not bumped (still unset since origin/main)",
            "a: marketplace.json version not bumped (still unset since origin/main)",
        ]
