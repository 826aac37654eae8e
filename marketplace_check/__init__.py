"""Validate Claude Code plugin marketplaces, plugin manifests and capability documents."""

from marketplace_check.errors import GitError, MarketplaceCheckError, ParseError, SourceFetchError
from marketplace_check.report import BatchResult, Report

__version__ = "0.1.0"

__all__ = [
    "BatchResult",
    "GitError",
    "MarketplaceCheckError",
    "ParseError",
    "Report",
    "SourceFetchError",
]
