"""Replace-semantics publishing of an artifact tree to a git branch.

The publisher builds the new commit in a throwaway repository whose index
starts empty, so the committed tree is exactly the artifact: files from the
previous tip that are absent from the artifact are dropped rather than merged.
The previous tip, when the branch exists, becomes the commit's parent.
"""

from __future__ import annotations

import re
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from ..config import PublishConfig
from ..core.context import RunContext
from ..core.env import getenv
from ..core.errors import AuthFailure, ScriptError, TransportFailure
from ..core.exit_codes import ERR_CONFIG
from ..core.logging import log_event
from ..core.process import CommandResult, redact, run_command
from .artifact import BuildArtifact

Runner = Callable[..., CommandResult]

_SLUG_RE = re.compile(r"^[A-Za-z0-9_.-]+/[A-Za-z0-9_.-]+$")
_AUTH_MARKERS = (
    "authentication failed",
    "could not read username",
    "could not read password",
    "invalid username or password",
    "bad credentials",
    "permission to",
    "permission denied (publickey",
    "access denied",
    "terminal prompts disabled",
    "error: 401",
    "error: 403",
)
_GIT_ENV = {"GIT_TERMINAL_PROMPT": "0"}


def classify_git_failure(step: str, res: CommandResult) -> ScriptError:
    text = res.combined_output
    lowered = text.lower()
    if any(marker in lowered for marker in _AUTH_MARKERS):
        return AuthFailure(f"remote rejected credential during {step}: {text}")
    return TransportFailure(f"git {step} failed (exit {res.code}): {text}")


@dataclass(frozen=True)
class PublishResult:
    branch: str
    commit: str
    tree: str
    skipped: bool
    previous: str | None
    file_count: int

    def to_payload(self) -> dict[str, object]:
        return {
            "branch": self.branch,
            "commit": self.commit,
            "tree": self.tree,
            "skipped": self.skipped,
            "previous": self.previous,
            "file_count": self.file_count,
        }


class Publisher:
    def __init__(self, ctx: RunContext, config: PublishConfig, runner: Runner = run_command) -> None:
        self.ctx = ctx
        self.config = config
        self.runner = runner
        self._secrets: tuple[str, ...] = ()

    def remote_url(self) -> str:
        repository = self.config.repository
        if not repository:
            raise ScriptError(
                "no publish repository configured; set publish.repository or GITHUB_REPOSITORY",
                ERR_CONFIG,
                kind="config_error",
                stage="publish",
            )
        local = Path(repository)
        local = local if local.is_absolute() else self.ctx.source_root / local
        if local.exists():
            return str(local.resolve())
        if _SLUG_RE.match(repository):
            return f"https://github.com/{repository}.git"
        return repository

    def authenticated_url(self, url: str, token: str) -> str:
        if not url.startswith("https://"):
            return url
        if not token:
            raise AuthFailure(f"no credential in ${self.config.token_env} for {url}")
        return url.replace("https://", f"https://x-access-token:{token}@", 1)

    def _git(self, workdir: Path, *args: str) -> CommandResult:
        return self.runner(["git", *args], workdir, env=_GIT_ENV, secrets=self._secrets, ctx=self.ctx)

    def _git_ok(self, workdir: Path, *args: str) -> str:
        res = self._git(workdir, *args)
        if not res.ok:
            raise TransportFailure(f"git {args[0]} failed (exit {res.code}): {res.combined_output}")
        return res.stdout.strip()

    def _remote(self, workdir: Path, step: str, *args: str) -> CommandResult:
        res = self._git(workdir, *args)
        if not res.ok:
            raise classify_git_failure(step, res)
        return res

    def _stage(self, artifact: BuildArtifact, workdir: Path) -> None:
        shutil.copytree(artifact.root, workdir, dirs_exist_ok=True, ignore=shutil.ignore_patterns(".git"))
        if self.config.nojekyll:
            (workdir / ".nojekyll").touch()
        if self.config.cname:
            (workdir / "CNAME").write_text(self.config.cname.strip() + "\n", encoding="utf-8")

    def publish(self, artifact: BuildArtifact, commit: str) -> PublishResult:
        files = artifact.require_publishable()
        token = getenv(self.config.token_env) or ""
        self._secrets = (token,) if token else ()
        remote = self.remote_url()
        auth_url = self.authenticated_url(remote, token)
        branch = self.config.branch
        ref = f"refs/heads/{branch}"
        workdir = Path(tempfile.mkdtemp(prefix="docsctl-publish-"))
        try:
            self._git_ok(workdir, "init", "--quiet")
            self._git_ok(workdir, "symbolic-ref", "HEAD", ref)
            self._git_ok(workdir, "remote", "add", "origin", auth_url)
            listing = self._remote(workdir, "ls-remote", "ls-remote", "--heads", "origin", ref)
            previous: str | None = None
            if listing.stdout.strip():
                self._remote(workdir, "fetch", "fetch", "--quiet", "--no-tags", "origin", ref)
                previous = self._git_ok(workdir, "rev-parse", "FETCH_HEAD")
                self._git_ok(workdir, "update-ref", ref, previous)
            self._stage(artifact, workdir)
            self._git_ok(workdir, "add", "--all", "--force")
            tree = self._git_ok(workdir, "write-tree")
            if previous is not None and not self.config.allow_empty_commit:
                if self._git_ok(workdir, "rev-parse", f"{previous}^{{tree}}") == tree:
                    log_event(self.ctx, "info", "publish", "unchanged", branch=branch, commit=previous, tree=tree)
                    return PublishResult(branch, previous, tree, True, previous, len(files))
            self._git_ok(
                workdir,
                "-c",
                f"user.name={self.config.user_name}",
                "-c",
                f"user.email={self.config.user_email}",
                "-c",
                "commit.gpgsign=false",
                "commit",
                "--quiet",
                "--allow-empty",
                "--no-verify",
                "-m",
                self.config.render_message(commit or "unknown"),
            )
            new_commit = self._git_ok(workdir, "rev-parse", "HEAD")
            self._remote(workdir, "push", "push", "--force", "origin", f"HEAD:{ref}")
            log_event(
                self.ctx,
                "info",
                "publish",
                "pushed",
                branch=branch,
                remote=redact(remote, self._secrets),
                commit=new_commit,
                previous=previous or "",
                tree=tree,
            )
            return PublishResult(branch, new_commit, tree, False, previous, len(files))
        finally:
            shutil.rmtree(workdir, ignore_errors=True)
