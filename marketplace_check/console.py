"""Shared rich consoles and verbose diagnostics."""

from __future__ import annotations

import subprocess

from rich.console import Console

console = Console()
err_console = Console(stderr=True)


class DebugConsole:
    """Debug output enabled by ``--verbose``, written to stderr."""

    enabled = False

    @classmethod
    def debug(cls, msg: str) -> None:
        """Print debug message only when debug mode is enabled."""
        if not cls.enabled:
            return

        err_console.print(f"[DEBUG] {msg}", style="dim", markup=False)

    @classmethod
    def debug_cmd(cls, cmd: list[str]) -> None:
        """Print command that will be executed."""
        if not cls.enabled:
            return

        err_console.print("[DEBUG] Executing command:", style="dim", markup=False)
        err_console.print(f"        {' '.join(cmd)}", style="dim", markup=False)

    @classmethod
    def debug_subprocess(cls, result: subprocess.CompletedProcess[str]) -> None:
        """Print subprocess result details."""
        if not cls.enabled:
            return

        err_console.print("[DEBUG] Subprocess result:", style="dim", markup=False)
        err_console.print(f"        returncode: {result.returncode}", style="dim", markup=False)
        for label, stream in (("stdout", result.stdout), ("stderr", result.stderr)):
            if not stream:
                continue
            preview = stream[:1000]
            if len(stream) > 1000:
                preview += "..."
            err_console.print(f"        {label}: {preview}", style="dim", markup=False)
