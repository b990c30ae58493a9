from __future__ import annotations

import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

from ..core.context import RunContext
from ..core.errors import SourceFailure
from ..core.git import read_head_commit
from ..core.logging import log_event
from ..core.process import CommandResult, run_command
from .trigger import TriggerEvent

MANIFEST_NAME = "Cargo.toml"

Runner = Callable[..., CommandResult]


@dataclass(frozen=True)
class SourceTree:
    root: Path
    commit: str
    manifest: Path
    modules: tuple[str, ...]


def _read_manifest(path: Path) -> dict[str, Any]:
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise SourceFailure(f"cannot parse manifest {path}: {exc}") from exc


def _package_module(data: dict[str, Any]) -> str | None:
    package = data.get("package")
    if not isinstance(package, dict) or not package.get("name"):
        return None
    lib = data.get("lib")
    if isinstance(lib, dict) and lib.get("name"):
        return str(lib["name"])
    return str(package["name"]).replace("-", "_")


def _workspace_members(root: Path, data: dict[str, Any]) -> list[Path]:
    workspace = data.get("workspace")
    if not isinstance(workspace, dict):
        return []
    excluded = {(root / rel).resolve() for rel in workspace.get("exclude", [])}
    members: list[Path] = []
    for pattern in workspace.get("members", []):
        for candidate in sorted(root.glob(pattern)):
            resolved = candidate.resolve()
            if resolved in excluded or not (candidate / MANIFEST_NAME).is_file():
                continue
            if resolved not in members:
                members.append(resolved)
    return members


def read_public_modules(root: Path) -> tuple[str, ...]:
    """Library targets the documentation generator emits one index page for."""
    manifest = root / MANIFEST_NAME
    data = _read_manifest(manifest)
    modules: list[str] = []
    own = _package_module(data)
    if own:
        modules.append(own)
    for member in _workspace_members(root, data):
        name = _package_module(_read_manifest(member / MANIFEST_NAME))
        if name and name not in modules:
            modules.append(name)
    if not modules:
        raise SourceFailure(f"manifest {manifest} declares no package and no workspace members")
    return tuple(sorted(modules))


class SourceAcquirer:
    def __init__(self, ctx: RunContext, runner: Runner = run_command) -> None:
        self.ctx = ctx
        self.runner = runner

    def _checkout(self, root: Path, commit: str) -> str:
        head = read_head_commit(root) if (root / ".git").exists() else None
        if head is None:
            log_event(self.ctx, "warn", "source", "not-a-git-checkout", root=str(root), commit=commit)
            return commit
        if not commit or head.startswith(commit) or commit.startswith(head):
            return head
        res = self.runner(["git", "checkout", "--quiet", "--detach", commit], root, ctx=self.ctx)
        if not res.ok:
            raise SourceFailure(f"cannot check out {commit}: {res.combined_output or res.code}")
        return read_head_commit(root) or commit

    def acquire(self, event: TriggerEvent) -> SourceTree:
        root = self.ctx.source_root
        if not root.is_dir():
            raise SourceFailure(f"source tree not found: {root}")
        commit = self._checkout(root, event.commit)
        manifest = root / MANIFEST_NAME
        if not manifest.is_file():
            raise SourceFailure(f"missing project manifest: {manifest}")
        modules = read_public_modules(root)
        log_event(self.ctx, "info", "source", "ready", commit=commit, modules=",".join(modules))
        return SourceTree(root=root, commit=commit, manifest=manifest, modules=modules)
