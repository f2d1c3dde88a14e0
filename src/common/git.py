from __future__ import annotations

import logging
import subprocess
from typing import Callable, List

from .errors import GitError


logger = logging.getLogger(__name__)

Runner = Callable[..., "subprocess.CompletedProcess[str]"]


class GitOperations:
    """Thin wrapper over the `git` executable; the runner is injectable for tests."""

    def __init__(self, *, git: str = "git", runner: Runner = subprocess.run) -> None:
        self._git = git
        self._runner = runner

    def current_branch(self) -> str:
        proc = self._run(["rev-parse", "--abbrev-ref", "HEAD"], capture=True)
        if proc.returncode != 0:
            raise GitError(
                f"Failed to get current branch (exit {proc.returncode}): {(proc.stderr or '').strip()}",
                returncode=proc.returncode,
            )
        return (proc.stdout or "").strip()

    def commit(self, message: str) -> None:
        # Output goes straight to the terminal so hooks and editors behave normally
        proc = self._run(["commit", "-m", message], capture=False)
        if proc.returncode != 0:
            raise GitError(f"git commit failed (exit {proc.returncode})", returncode=proc.returncode)

    def _run(self, args: List[str], *, capture: bool) -> "subprocess.CompletedProcess[str]":
        cmd = [self._git, *args]
        logger.debug("Running %s", " ".join(cmd[:3]))
        try:
            return self._runner(cmd, capture_output=capture, text=True, check=False)
        except OSError as exc:
            raise GitError(f"Failed to execute {self._git}: {exc}") from exc


__all__ = ["GitOperations"]
