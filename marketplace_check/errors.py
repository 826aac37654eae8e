"""Exceptions that abort validation of a single target."""

from __future__ import annotations


class MarketplaceCheckError(Exception):
    """Base class for all marketplace-check failures."""


class ParseError(MarketplaceCheckError):
    """A document is missing, unreadable or not a valid JSON object."""

    def __init__(self, path: str, message: str) -> None:
        self.path = path
        self.message = message
        super().__init__(f"{path}: {message}")


class SourceFetchError(MarketplaceCheckError):
    """A remote plugin source could not be materialized for validation."""

    def __init__(self, plugin_name: str, message: str) -> None:
        self.plugin_name = plugin_name
        self.message = message
        super().__init__(f"Plugin '{plugin_name}': {message}")


class GitError(MarketplaceCheckError):
    """A git command exited with a non-zero status."""

    def __init__(self, command: list[str], returncode: int, stderr: str) -> None:
        self.command = command
        self.returncode = returncode
        self.stderr = stderr.strip()
        super().__init__(
            f"{' '.join(command)} failed with exit code {returncode}"
            + (f": {self.stderr}" if self.stderr else "")
        )
