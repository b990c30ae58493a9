"""Read-only git queries against the source tree."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from .process import run_command

UNKNOWN_SHA = "unknown"


@dataclass(frozen=True)
class GitContext:
    sha: str
    is_dirty: bool


def _query(repo_root: Path, *args: str) -> str | None:
    res = run_command(["git", *args], repo_root)
    return res.stdout.strip() if res.ok else None


def read_git_context(repo_root: Path) -> GitContext:
    status = _query(repo_root, "status", "--porcelain")
    # outside a work tree the state cannot be vouched for
    return GitContext(
        sha=_query(repo_root, "rev-parse", "--short", "HEAD") or UNKNOWN_SHA,
        is_dirty=True if status is None else bool(status),
    )


def read_head_commit(repo_root: Path) -> str | None:
    return _query(repo_root, "rev-parse", "HEAD") or None
