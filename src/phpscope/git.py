"""Local source checkout provider.

Supplies the directory trees the builders walk and reads provenance (commit
and branch label) from git. Values are recorded in the index, never
interpreted.
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path

from .config import IndexConfig

logger = logging.getLogger("phpscope.git")


def _run_git(repo_root: Path, *args: str, timeout: int = 30) -> str:
    """Run a git command and return stripped stdout, or "" on failure."""
    try:
        result = subprocess.run(
            ["git", *args],
            cwd=str(repo_root),
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except (subprocess.TimeoutExpired, FileNotFoundError, NotADirectoryError):
        return ""
    if result.returncode != 0:
        logger.debug("git %s failed in %s: %s", " ".join(args), repo_root, result.stderr.strip())
        return ""
    return result.stdout.strip()


@dataclass
class Provenance:
    commit: str | None = None
    branch: str | None = None
    committed_at: str | None = None


class LocalSourceProvider:
    """Directory trees under a local checkout of the PHP codebase."""

    def __init__(self, config: IndexConfig | None = None):
        self.config = config or IndexConfig()

    @property
    def checkout_dir(self) -> Path:
        return self.config.checkout_dir

    @property
    def libraries_path(self) -> Path:
        return self.config.source_root

    @property
    def sql_path(self) -> Path:
        return self.config.sql_root

    @property
    def media_path(self) -> Path:
        return self.config.media_root

    def has_sources(self) -> bool:
        return self.libraries_path.is_dir()

    def provenance(self) -> Provenance:
        """Commit, branch and commit date of the checkout; all None outside git."""
        root = self.checkout_dir if self.checkout_dir.is_dir() else self.libraries_path
        if not root.is_dir():
            return Provenance()

        commit = _run_git(root, "rev-parse", "HEAD") or None
        if commit is None:
            return Provenance()

        branch = _run_git(root, "rev-parse", "--abbrev-ref", "HEAD") or None
        if branch == "HEAD":
            # Detached checkout
            branch = None
        committed_at = _run_git(root, "log", "-1", "--format=%cI") or None
        return Provenance(commit=commit, branch=branch, committed_at=committed_at)
