"""Thin typed wrapper around the git command line."""

from __future__ import annotations

import subprocess
from pathlib import Path

from marketplace_check.console import DebugConsole
from marketplace_check.errors import GitError

# git show prints one of these when the path is absent at that revision
_MISSING_PATH_MARKERS = (
    "does not exist in",
    "exists on disk, but not in",
    "path not in",
)


class Git:
    """Run git commands against one working directory."""

    def __init__(self, cwd: Path | str | None = None, executable: str = "git") -> None:
        self.cwd = Path(cwd) if cwd is not None else None
        self.executable = executable

    def _run(self, args: list[str], *, text: bool = True) -> subprocess.CompletedProcess:
        cmd = [self.executable, *args]
        DebugConsole.debug_cmd(cmd)
        try:
            result = subprocess.run(cmd, cwd=self.cwd, capture_output=True, text=text)
        except FileNotFoundError as e:
            raise GitError(cmd, 127, f"{self.executable} is not installed") from e
        if text:
            DebugConsole.debug_subprocess(result)
        return result

    def _check(self, args: list[str]) -> str:
        result = self._run(args)
        if result.returncode != 0:
            raise GitError([self.executable, *args], result.returncode, result.stderr or "")
        return result.stdout

    def clone(self, url: str, dest: Path | str, branch: str | None = None) -> None:
        """Shallow, quiet clone of ``url`` into ``dest``."""
        args = ["clone", "--depth", "1", "--quiet"]
        if branch:
            args.extend(["--branch", branch])
        args.extend([url, str(dest)])
        self._check(args)

    def diff(self, base: str, head: str | None = None) -> list[str]:
        """List paths changed between ``base`` and ``head``.

        With ``head=None`` the working tree is compared against ``base``.
        """
        args = ["diff", "--name-only", base]
        if head is not None:
            args.append(head)
        output = self._check(args)
        return [line.strip() for line in output.splitlines() if line.strip()]

    def show_file_at(self, ref: str, path: str) -> bytes | None:
        """Return the contents of ``path`` at ``ref``, or None if it does not exist there."""
        args = ["show", f"{ref}:{path}"]
        result = self._run(args, text=False)
        if result.returncode == 0:
            return result.stdout

        stderr = result.stderr.decode("utf-8", errors="replace")
        DebugConsole.debug(f"git show {ref}:{path} failed: {stderr.strip()}")
        if any(marker in stderr for marker in _MISSING_PATH_MARKERS):
            return None
        raise GitError([self.executable, *args], result.returncode, stderr)
