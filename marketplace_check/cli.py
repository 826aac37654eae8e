"""
Command line interface for marketplace-check.

Sub-commands:
    validate-registry      Schema-check marketplace.json
    validate-plugin        Validate one plugin (by manifest path, or by name via --from-registry)
    validate-dependencies  Check plugin dependencies exist and contain no cycles
    check-version-bumps    Require paired version bumps for changed plugins
    validate-all           Validate the marketplace and every plugin it lists
    format-registry        Sort marketplace plugins by name

Exit codes:
    0 - All checks passed (warnings allowed unless --strict)
    1 - Validation errors found (or warnings in strict mode)
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from marketplace_check.console import DebugConsole, console
from marketplace_check.constants import MARKETPLACE_FILE
from marketplace_check.dependencies import resolve_dependencies
from marketplace_check.documents import get_field, load_document
from marketplace_check.errors import GitError, ParseError, SourceFetchError
from marketplace_check.formatting import format_registry
from marketplace_check.git import Git
from marketplace_check.plugin import (
    validate_all,
    validate_manifest_target,
    validate_registry_plugin,
)
from marketplace_check.report import BatchResult, Report, calculate_exit_code
from marketplace_check.schema import validate_registry
from marketplace_check.sources import registry_root
from marketplace_check.versions import (
    changed_files_since,
    check_version_bumps,
    plugin_source_dirs,
)


def print_report(report: Report, *, strict: bool = False, indent: str = "  ") -> None:
    """Print errors, warnings and info lines of one report."""
    warning_style = "red" if strict else "yellow"
    for error in report.errors:
        console.print(f"{indent}[red]• {escape(error)}[/red]")
    for warning in report.warnings:
        console.print(f"{indent}[{warning_style}]• {escape(warning)}[/{warning_style}]")
    for info in report.info:
        console.print(f"{indent}[dim]• {escape(info)}[/dim]")


def print_verdict(reports: list[Report], *, strict: bool = False) -> int:
    """Print the final pass/fail panel and return the exit code."""
    exit_code, total_errors, total_warnings, _ = calculate_exit_code(reports, strict=strict)

    if exit_code != 0:
        # Warnings-only failure in strict mode
        if total_errors == 0 and strict and total_warnings > 0:
            message = (
                f"✗ Validation failed due to {total_warnings} warning(s) "
                "(warnings treated as errors in strict mode)"
            )
        else:
            message = f"✗ Validation failed with {total_errors} error(s)"
            if total_warnings > 0:
                message += f" and {total_warnings} warning(s)"
            if strict and total_warnings > 0:
                message += " (warnings treated as errors in strict mode)"

        console.print(
            Panel.fit(
                f"[bold red]{message}[/bold red]\nSee details above for specific issues.",
                border_style="red",
            )
        )
    else:
        message = "✅ All checks passed!"
        if total_warnings > 0:
            message += f"\n{total_warnings} warning(s) found but not failing (normal mode)"
        console.print(Panel.fit(f"[bold green]{message}[/bold green]", border_style="green"))

    return exit_code


def print_single(title: str, report: Report, *, strict: bool = False) -> int:
    console.print(f"\n[bold cyan]{escape(title)}[/bold cyan]\n")
    if report.errors or report.warnings or report.info:
        print_report(report, strict=strict)
        console.print()
    return print_verdict([report], strict=strict)


def print_fatal(error: Exception) -> int:
    console.print(f"[bold red]✗ {escape(str(error))}[/bold red]")
    return 1


def print_batch(result: BatchResult, *, strict: bool = False) -> int:
    """Print a summary table plus details for a whole-marketplace run."""
    if result.registry.errors or result.registry.warnings or result.registry.info:
        console.print("[bold red]Marketplace Structure:[/bold red]\n")
        print_report(result.registry, strict=strict)
        console.print()

    if result.plugins:
        table = Table(title="Plugin Validation Summary", show_header=True, header_style="bold cyan")
        table.add_column("Plugin", style="cyan")
        table.add_column("Status", justify="center")
        table.add_column("Errors", justify="center")
        table.add_column("Warnings", justify="center")

        for name, report in result.plugins.items():
            table.add_row(
                escape(name),
                "[red]✗[/red]" if report.failed(strict=strict) else "[green]✓[/green]",
                f"[red]{len(report.errors)}[/red]" if report.errors else "[green]0[/green]",
                f"[yellow]{len(report.warnings)}[/yellow]"
                if report.warnings
                else "[green]0[/green]",
            )

        console.print(table)
        console.print()

        for name, report in result.plugins.items():
            if report.errors or report.warnings or report.info:
                console.print(f"[bold yellow]{escape(name)}:[/bold yellow]")
                print_report(report, strict=strict, indent="    ")
                console.print()

    return print_verdict(result.all_reports(), strict=strict)


def cmd_validate_registry(args: argparse.Namespace) -> int:
    try:
        registry = load_document(args.path)
    except ParseError as e:
        return print_fatal(e)
    return print_single(f"Validating {args.path}", validate_registry(registry), strict=args.strict)


def cmd_validate_plugin(args: argparse.Namespace) -> int:
    try:
        if args.from_registry:
            report = validate_registry_plugin(args.from_registry, args.target)
        else:
            report = validate_manifest_target(args.target)
    except (ParseError, SourceFetchError) as e:
        return print_fatal(e)
    return print_single(f"Validating plugin {args.target}", report, strict=args.strict)


def cmd_validate_dependencies(args: argparse.Namespace) -> int:
    try:
        registry = load_document(args.path)
    except ParseError as e:
        return print_fatal(e)
    plugins = get_field(registry, "plugins", "array") or []
    return print_single(f"Checking dependencies in {args.path}", resolve_dependencies(plugins))


def cmd_check_version_bumps(args: argparse.Namespace) -> int:
    registry_path = Path(args.registry)
    repo_root = registry_root(registry_path)
    git = Git(repo_root)

    try:
        changed = changed_files_since(git, args.base)
    except GitError as e:
        return print_fatal(e)
    if not changed:
        console.print(
            f"[green]No changed files since {escape(args.base)}; nothing to check.[/green]"
        )
        return 0
    DebugConsole.debug(f"Changed files: {changed}")

    try:
        registry = load_document(registry_path)
        registry_file = registry_path.resolve().relative_to(repo_root).as_posix()
        report = check_version_bumps(
            args.base,
            changed,
            registry,
            plugin_source_dirs(registry),
            git,
            repo_root=repo_root,
            registry_file=registry_file,
        )
    except (ParseError, GitError) as e:
        return print_fatal(e)
    return print_single(f"Checking version bumps against {args.base}", report)


def cmd_validate_all(args: argparse.Namespace) -> int:
    mode_text = "[bold cyan]Verifying marketplace structure"
    if args.strict:
        mode_text += " (strict mode)"
    mode_text += "...[/bold cyan]\n"
    console.print("\n" + mode_text)

    try:
        result = validate_all(args.path)
    except ParseError as e:
        return print_fatal(e)
    return print_batch(result, strict=args.strict)


def cmd_format_registry(args: argparse.Namespace) -> int:
    path = Path(args.path)
    try:
        registry = load_document(path)
    except ParseError as e:
        return print_fatal(e)

    formatted = format_registry(registry)
    current = path.read_text(encoding="utf-8")
    if formatted == current:
        console.print(f"[green]✓ {escape(str(path))} is already formatted[/green]")
        return 0
    if args.check:
        console.print(f"[red]✗ {escape(str(path))} is not formatted[/red]")
        return 1

    path.write_text(formatted, encoding="utf-8")
    console.print(f"[green]✓ Formatted {escape(str(path))}[/green]")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="marketplace-check",
        description="Validate Claude Code plugin marketplaces and plugins",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Exit codes:
  0 - Validation passed
  1 - Validation failed (errors found, or warnings in strict mode)

Examples:
  marketplace-check validate-all                       # Normal mode (warnings allowed)
  marketplace-check validate-all --strict              # Strict mode (warnings fail)
  marketplace-check validate-plugin my-plugin --from-registry .claude-plugin/marketplace.json
  marketplace-check check-version-bumps --base origin/main
        """,
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Print debug output")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # Shared by every sub-command so --verbose works after the command name too
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--verbose", "-v", action="store_true", default=argparse.SUPPRESS, help="Print debug output"
    )
    strict = argparse.ArgumentParser(add_help=False)
    strict.add_argument(
        "--strict", action="store_true", help="Treat warnings as errors (useful for CI/CD)"
    )

    p = subparsers.add_parser(
        "validate-registry", parents=[common, strict], help="Schema-check marketplace.json"
    )
    p.add_argument("path", nargs="?", default=MARKETPLACE_FILE)
    p.set_defaults(func=cmd_validate_registry)

    p = subparsers.add_parser(
        "validate-plugin", parents=[common, strict], help="Validate a single plugin"
    )
    p.add_argument("target", help="plugin.json path, plugin directory, or plugin name")
    p.add_argument(
        "--from-registry",
        metavar="PATH",
        help="Resolve TARGET as a plugin name through this marketplace.json",
    )
    p.set_defaults(func=cmd_validate_plugin)

    p = subparsers.add_parser(
        "validate-dependencies", parents=[common], help="Check plugin dependencies"
    )
    p.add_argument("path", nargs="?", default=MARKETPLACE_FILE)
    p.set_defaults(func=cmd_validate_dependencies)

    p = subparsers.add_parser(
        "check-version-bumps", parents=[common], help="Require paired version bumps"
    )
    p.add_argument("--base", default="origin/main", help="Base revision (default: origin/main)")
    p.add_argument("--registry", default=MARKETPLACE_FILE, help="Path to marketplace.json")
    p.set_defaults(func=cmd_check_version_bumps)

    p = subparsers.add_parser(
        "validate-all", parents=[common, strict], help="Validate marketplace and all plugins"
    )
    p.add_argument("path", nargs="?", default=MARKETPLACE_FILE)
    p.set_defaults(func=cmd_validate_all)

    p = subparsers.add_parser(
        "format-registry", parents=[common], help="Sort marketplace plugins by name"
    )
    p.add_argument("path", nargs="?", default=MARKETPLACE_FILE)
    p.add_argument("--check", action="store_true", help="Fail instead of rewriting")
    p.set_defaults(func=cmd_format_registry)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Run the selected sub-command."""
    args = build_parser().parse_args(argv)
    DebugConsole.enabled = args.verbose
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
