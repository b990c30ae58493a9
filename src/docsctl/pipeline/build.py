from __future__ import annotations

import shutil
from pathlib import Path
from typing import Callable

from ..config import BuildConfig
from ..core.context import RunContext
from ..core.errors import BuildFailure
from ..core.logging import log_event
from ..core.process import CommandResult, run_command
from .artifact import BuildArtifact, artifact_root
from .source import MANIFEST_NAME, SourceTree

Runner = Callable[..., CommandResult]

_OUTPUT_TAIL_LINES = 20
_SOURCE_SUFFIXES = {".rs", ".proto"}


def _tail(text: str, lines: int = _OUTPUT_TAIL_LINES) -> str:
    return "\n".join(text.splitlines()[-lines:])


def _holds_sources(out: Path) -> bool:
    if not out.is_dir():
        return False
    for path in out.rglob("*"):
        if path.name in (MANIFEST_NAME, ".git") or (path.suffix in _SOURCE_SUFFIXES and path.is_file()):
            return True
    return False


class DocBuilder:
    def __init__(self, ctx: RunContext, config: BuildConfig, runner: Runner = run_command) -> None:
        self.ctx = ctx
        self.config = config
        self.runner = runner

    def output_path(self, source_root: Path) -> Path:
        try:
            return artifact_root(source_root, self.config.output_dir)
        except ValueError as exc:
            raise BuildFailure(str(exc)) from exc

    def _discard(self, out: Path) -> None:
        if out.exists():
            shutil.rmtree(out)

    def _check_output_dir(self, root: Path, out: Path) -> None:
        if out.resolve() == root.resolve() or root.resolve() not in out.resolve().parents:
            raise BuildFailure(f"output dir {out} must be a subdirectory of the source tree {root}")
        if _holds_sources(out):
            raise BuildFailure(f"refusing to replace {out}: it holds project sources, not generated docs")

    def build(self, tree: SourceTree) -> BuildArtifact:
        out = self.output_path(tree.root)
        self._check_output_dir(tree.root, out)
        self._discard(out)
        log_event(self.ctx, "info", "build", "start", command=" ".join(self.config.command), output=str(out))
        res = self.runner(
            list(self.config.command),
            tree.root,
            timeout_seconds=self.config.timeout_seconds,
            env=self.config.env or None,
            ctx=self.ctx,
        )
        if not res.ok:
            self._discard(out)
            raise BuildFailure(f"documentation generator failed (exit {res.code}):\n{_tail(res.combined_output)}".rstrip())
        artifact = BuildArtifact(out)
        if artifact.is_empty:
            self._discard(out)
            raise BuildFailure(f"documentation generator produced no files in {out}")
        missing = [name for name in tree.modules if not (out / name / "index.html").is_file()]
        if missing:
            self._discard(out)
            raise BuildFailure(f"no generated documentation for public modules: {', '.join(missing)}")
        log_event(self.ctx, "info", "build", "done", files=len(artifact.files()), modules=",".join(tree.modules))
        return artifact
