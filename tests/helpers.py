from __future__ import annotations

import shutil
import subprocess
from pathlib import Path

import pytest

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")


def git(*args: str, cwd: Path | None = None) -> str:
    return subprocess.run(["git", *args], cwd=cwd, text=True, capture_output=True, check=True).stdout.strip()


def remote_files(remote: Path, branch: str = "gh-pages") -> dict[str, str]:
    names = git("--git-dir", str(remote), "ls-tree", "-r", "--name-only", branch).splitlines()
    return {name: git("--git-dir", str(remote), "show", f"{branch}:{name}") for name in names}


def remote_head(remote: Path, branch: str = "gh-pages") -> str | None:
    proc = subprocess.run(
        ["git", "--git-dir", str(remote), "rev-parse", "--verify", "--quiet", f"refs/heads/{branch}"],
        text=True,
        capture_output=True,
        check=False,
    )
    return proc.stdout.strip() or None


def commit_count(remote: Path, branch: str = "gh-pages") -> int:
    return int(git("--git-dir", str(remote), "rev-list", "--count", branch))


def seed_branch(remote: Path, files: dict[str, str], work: Path, branch: str = "gh-pages") -> str:
    """Push an initial commit with `files` to `branch` of `remote`."""
    work.mkdir(parents=True, exist_ok=True)
    git("init", "--quiet", cwd=work)
    git("symbolic-ref", "HEAD", f"refs/heads/{branch}", cwd=work)
    for rel, content in files.items():
        path = work / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    git("add", "--all", cwd=work)
    git("-c", "user.name=seed", "-c", "user.email=seed@example.com", "-c", "commit.gpgsign=false", "commit", "--quiet", "-m", "seed", cwd=work)
    git("push", "--quiet", str(remote), f"HEAD:refs/heads/{branch}", cwd=work)
    return git("rev-parse", "HEAD", cwd=work)
