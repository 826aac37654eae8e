"""Materialize plugin sources (local paths or remote repositories) for validation."""

from __future__ import annotations

import shutil
import tempfile
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from marketplace_check.console import DebugConsole
from marketplace_check.constants import PLUGIN_META_DIR, SUPPORTED_REMOTE_SOURCES
from marketplace_check.content import resolve_plugin_path
from marketplace_check.errors import GitError, SourceFetchError
from marketplace_check.git import Git


def _noop() -> None:
    return None


@dataclass
class ResolvedSource:
    """A plugin root on disk plus the callable that releases it."""

    root: Path
    cleanup: Callable[[], None] = field(default=_noop)
    remote: bool = False


def registry_root(registry_path: Path | str) -> Path:
    """Directory plugin paths are relative to (parent of ``.claude-plugin/``)."""
    registry_path = Path(registry_path).resolve()
    parent = registry_path.parent
    return parent.parent if parent.name == PLUGIN_META_DIR else parent


def github_clone_url(repo: str) -> str:
    if repo.startswith(("https://", "http://", "git@", "ssh://", "file://")):
        return repo
    return f"https://github.com/{repo.removesuffix('.git')}.git"


def _resolve_local(
    source: str, plugin_name: str, root: Path, plugin_root: str | None
) -> ResolvedSource:
    relative = source
    # metadata.pluginRoot applies to bare names, not explicit ./ paths
    if plugin_root and not source.startswith(("./", "../", "/")):
        relative = f"{plugin_root.rstrip('/')}/{source}"

    plugin_dir, error = resolve_plugin_path(root, relative, "source")
    if plugin_dir is None:
        raise SourceFetchError(plugin_name, error or f"Invalid source path: {source}")
    if not plugin_dir.is_dir():
        raise SourceFetchError(plugin_name, f"Source directory not found: {source}")
    return ResolvedSource(root=plugin_dir)


def _clone_remote(source: dict[str, Any], plugin_name: str, git: Git) -> ResolvedSource:
    kind = source.get("source")
    if kind not in SUPPORTED_REMOTE_SOURCES:
        raise SourceFetchError(
            plugin_name, f"Source kind {kind!r} cannot be fetched for validation"
        )
    repo = source.get("repo")
    if not isinstance(repo, str) or not repo:
        raise SourceFetchError(plugin_name, "GitHub source is missing 'repo'")
    branch = source.get("branch")
    subdir = source.get("path")
    for key, value in (("branch", branch), ("path", subdir)):
        if value is not None and not isinstance(value, str):
            raise SourceFetchError(
                plugin_name, f"GitHub source '{key}' must be a string, got {type(value).__name__}"
            )

    sandbox = Path(tempfile.mkdtemp(prefix=f"marketplace-check-{plugin_name}-"))
    DebugConsole.debug(f"Cloning {repo} for '{plugin_name}' into {sandbox}")
    released = False

    def cleanup() -> None:
        nonlocal released
        if released:
            return
        released = True
        DebugConsole.debug(f"Removing sandbox {sandbox}")
        shutil.rmtree(sandbox, ignore_errors=True)

    # any failure past this point releases the sandbox
    try:
        try:
            git.clone(github_clone_url(repo), sandbox, branch=branch)
        except GitError as e:
            raise SourceFetchError(plugin_name, f"git clone of {repo} failed: {e.stderr}") from e

        root = sandbox
        if subdir:
            resolved, error = resolve_plugin_path(sandbox, subdir, "path")
            if resolved is None or not resolved.is_dir():
                raise SourceFetchError(
                    plugin_name, error or f"Path '{subdir}' not found in repository {repo}"
                )
            root = resolved
    except BaseException:
        cleanup()
        raise

    return ResolvedSource(root=root, cleanup=cleanup, remote=True)


def resolve_source(
    source: Any,
    plugin_name: str,
    root: Path,
    git: Git | None = None,
    plugin_root: str | None = None,
) -> ResolvedSource:
    """Resolve a plugin's ``source`` to a directory.

    Args:
        source: Relative path string or remote source descriptor
        plugin_name: Plugin name for messages and the sandbox prefix
        root: Marketplace root directory
        git: Git wrapper used for cloning (defaults to ``Git()``)
        plugin_root: ``metadata.pluginRoot`` from the marketplace, if any

    Returns:
        ResolvedSource whose ``cleanup`` the caller must always invoke

    Raises:
        SourceFetchError: If the source cannot be materialized.
    """
    if isinstance(source, str):
        return _resolve_local(source, plugin_name, root, plugin_root)
    if isinstance(source, dict):
        return _clone_remote(source, plugin_name, git or Git())
    raise SourceFetchError(plugin_name, f"Unsupported source type: {type(source).__name__}")


@contextmanager
def materialized_source(
    source: Any,
    plugin_name: str,
    root: Path,
    git: Git | None = None,
    plugin_root: str | None = None,
) -> Iterator[ResolvedSource]:
    """Context manager around :func:`resolve_source` that always releases the sandbox."""
    resolved = resolve_source(source, plugin_name, root, git=git, plugin_root=plugin_root)
    try:
        yield resolved
    finally:
        resolved.cleanup()
