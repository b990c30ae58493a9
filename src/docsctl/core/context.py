from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from .clock import utc_stamp
from .env import getenv
from .git import read_git_context

OutputFormat = Literal["text", "json"]

DEFAULT_EVIDENCE_DIR = "artifacts/docsctl"


@dataclass(frozen=True)
class RunContext:
    run_id: str
    source_root: Path
    evidence_root: Path
    output_format: OutputFormat
    verbose: bool
    quiet: bool
    log_json: bool
    git_sha: str
    git_dirty: bool

    @property
    def run_dir(self) -> Path:
        return self.evidence_root / self.run_id

    @classmethod
    def from_args(
        cls,
        run_id: str | None,
        source: str | None,
        evidence_root: str | None,
        output_format: OutputFormat = "text",
        verbose: bool = False,
        quiet: bool = False,
        log_json: bool = False,
    ) -> "RunContext":
        source_root = Path(source or ".").resolve()
        git_ctx = read_git_context(source_root)
        default_run = f"docs-{utc_stamp()}-{git_ctx.sha}"
        resolved_run_id = run_id or getenv("RUN_ID") or default_run
        raw_evidence = Path(evidence_root or getenv("EVIDENCE_ROOT") or DEFAULT_EVIDENCE_DIR)
        resolved_evidence = raw_evidence.resolve() if raw_evidence.is_absolute() else (source_root / raw_evidence).resolve()
        return cls(
            run_id=resolved_run_id,
            source_root=source_root,
            evidence_root=resolved_evidence,
            output_format=output_format,
            verbose=verbose,
            quiet=quiet,
            log_json=log_json,
            git_sha=git_ctx.sha,
            git_dirty=git_ctx.is_dirty,
        )
