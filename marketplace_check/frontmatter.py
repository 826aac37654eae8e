"""YAML header extraction for SKILL.md, agent and command documents."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from marketplace_check.constants import HEADER_DELIMITER
from marketplace_check.report import Report


def split_header(content: str) -> tuple[str, str] | None:
    """Split a document into its header block and body.

    The first line must be the delimiter and a later line must close it.
    Returns None when the document does not open with a delimiter line.

    Raises:
        ValueError: If the opening delimiter is never closed.
    """
    lines = content.splitlines(keepends=True)
    if not lines or lines[0].rstrip("\r\n").rstrip() != HEADER_DELIMITER:
        return None

    for index in range(1, len(lines)):
        if lines[index].rstrip("\r\n").rstrip() == HEADER_DELIMITER:
            return "".join(lines[1:index]), "".join(lines[index + 1 :])

    raise ValueError("missing closing delimiter")


def read_header(file_path: Path, context: str, report: Report) -> dict[str, Any] | None:
    """Read a markdown document and parse its YAML header block.

    Problems are recorded on ``report`` as errors naming ``context``; the
    return value is None whenever the header could not be obtained.
    """
    try:
        content = file_path.read_text(encoding="utf-8")
    except PermissionError:
        # Best-effort attempt to get file mode for diagnostics
        try:
            mode = f"{file_path.stat().st_mode:o}"
        except OSError:
            mode = "unknown"
        report.error(
            f"{context}: Permission denied reading file\n  Check file permissions (current: {mode})"
        )
        return None
    except UnicodeDecodeError as e:
        report.error(
            f"{context}: File is not valid UTF-8\n"
            f"  Ensure file is text, not binary. Error at byte {e.start}: {e.reason}"
        )
        return None
    except OSError as e:
        report.error(f"{context}: Cannot read file: {e}")
        return None

    try:
        parts = split_header(content)
    except ValueError:
        report.error(f"{context}: Malformed frontmatter (missing closing {HEADER_DELIMITER})")
        return None

    if parts is None:
        report.error(
            f"{context}: Missing YAML frontmatter (must start with {HEADER_DELIMITER})"
        )
        return None

    try:
        header = yaml.safe_load(parts[0])
    except yaml.YAMLError as e:
        report.error(f"{context}: Invalid YAML in frontmatter\n  {e}")
        return None

    if not isinstance(header, dict):
        report.error(
            f"{context}: Frontmatter must be a YAML mapping (key-value pairs), "
            f"got {type(header).__name__}"
        )
        return None

    return header
