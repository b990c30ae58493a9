from __future__ import annotations

import os
import subprocess
import time
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from .logging import log_event

if TYPE_CHECKING:
    from .context import RunContext

TIMEOUT_CODE = 124
NOT_FOUND_CODE = 127


@dataclass(frozen=True)
class CommandResult:
    code: int
    stdout: str
    stderr: str
    duration_ms: int

    @property
    def combined_output(self) -> str:
        return (self.stdout + self.stderr).strip()

    @property
    def ok(self) -> bool:
        return self.code == 0


def redact(text: str, secrets: Iterable[str]) -> str:
    for secret in secrets:
        if secret:
            text = text.replace(secret, "***")
    return text


def run_command(
    cmd: list[str],
    cwd: Path,
    timeout_seconds: int = 0,
    env: Mapping[str, str] | None = None,
    secrets: tuple[str, ...] = (),
    ctx: RunContext | None = None,
) -> CommandResult:
    started = time.monotonic()
    merged_env = None if env is None else {**os.environ, **env}
    try:
        proc = subprocess.run(
            cmd,
            cwd=cwd,
            env=merged_env,
            text=True,
            capture_output=True,
            check=False,
            timeout=(timeout_seconds if timeout_seconds > 0 else None),
        )
        result = CommandResult(
            code=proc.returncode,
            stdout=proc.stdout or "",
            stderr=proc.stderr or "",
            duration_ms=int((time.monotonic() - started) * 1000),
        )
    except subprocess.TimeoutExpired as exc:
        result = CommandResult(
            code=TIMEOUT_CODE,
            stdout=_as_text(exc.stdout),
            stderr=(_as_text(exc.stderr) + f"\ncommand timed out after {timeout_seconds}s").strip(),
            duration_ms=int((time.monotonic() - started) * 1000),
        )
    except (FileNotFoundError, PermissionError) as exc:
        result = CommandResult(
            code=NOT_FOUND_CODE,
            stdout="",
            stderr=f"cannot execute {cmd[0]}: {exc.strerror or exc}",
            duration_ms=int((time.monotonic() - started) * 1000),
        )
    if secrets:
        result = CommandResult(
            code=result.code,
            stdout=redact(result.stdout, secrets),
            stderr=redact(result.stderr, secrets),
            duration_ms=result.duration_ms,
        )
    if ctx is not None:
        log_event(
            ctx,
            "info",
            "process",
            "run-command",
            command=redact(" ".join(cmd), secrets),
            cwd=str(cwd),
            code=result.code,
            duration_ms=result.duration_ms,
        )
    return result


def _as_text(value: str | bytes | None) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value
