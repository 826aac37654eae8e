"""Validation reports and exit-code calculation."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class Report:
    """Errors, warnings and info lines collected by one validation run.

    Errors fail the run. Warnings fail it only in strict mode. Info lines
    never fail it.
    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    info: list[str] = field(default_factory=list)

    def error(self, message: str) -> None:
        self.errors.append(message)

    def warning(self, message: str) -> None:
        self.warnings.append(message)

    def note(self, message: str) -> None:
        self.info.append(message)

    def extend(self, other: Report) -> None:
        """Append everything from another report, keeping order."""
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)
        self.info.extend(other.info)

    @property
    def ok(self) -> bool:
        return not self.errors

    def failed(self, *, strict: bool = False) -> bool:
        return bool(self.errors) or (strict and bool(self.warnings))


@dataclass
class BatchResult:
    """Reports for a whole marketplace run.

    ``registry`` holds marketplace-level findings (schema, dependencies),
    ``plugins`` maps each plugin name to its own report in registry order.
    """

    registry: Report = field(default_factory=Report)
    plugins: dict[str, Report] = field(default_factory=dict)

    def all_reports(self) -> list[Report]:
        return [self.registry, *self.plugins.values()]

    def passed(self, name: str, *, strict: bool = False) -> bool:
        return not self.plugins[name].failed(strict=strict)


def calculate_exit_code(
    reports: list[Report], *, strict: bool = False
) -> tuple[int, int, int, int]:
    """Calculate exit code and totals based on errors and warnings.

    Args:
        reports: Reports produced by one invocation
        strict: If True, warnings cause failure

    Returns:
        Tuple of (exit_code, total_errors, total_warnings, total_info)
    """
    total_errors = sum(len(r.errors) for r in reports)
    total_warnings = sum(len(r.warnings) for r in reports)
    total_info = sum(len(r.info) for r in reports)

    # Strict mode: warnings are failures (but info never fails)
    exit_code = 1 if strict and total_warnings > 0 or total_errors > 0 else 0

    return exit_code, total_errors, total_warnings, total_info
