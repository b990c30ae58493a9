from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from .context import RunContext
from .errors import ScriptError
from .exit_codes import ERR_CONFIG


def dumps_json(payload: Any, pretty: bool = False) -> str:
    """Sorted-key JSON; pretty output is what lands on disk and on a terminal."""
    return json.dumps(payload, indent=2 if pretty else None, sort_keys=True)


def resolve_evidence_path(ctx: RunContext, path: Path) -> Path:
    resolved = path.resolve() if path.is_absolute() else (ctx.source_root / path).resolve()
    root = ctx.evidence_root.resolve()
    if resolved == root or root in resolved.parents:
        return resolved
    raise ScriptError(f"forbidden write path outside evidence root: {resolved}", ERR_CONFIG, kind="forbidden_write_path", stage="config")


def ensure_evidence_path(ctx: RunContext, path: Path) -> Path:
    resolved = resolve_evidence_path(ctx, path)
    resolved.parent.mkdir(parents=True, exist_ok=True)
    return resolved


def write_text(ctx: RunContext, path: Path, content: str, encoding: str = "utf-8") -> Path:
    out = ensure_evidence_path(ctx, path)
    out.write_text(content, encoding=encoding)
    return out


def write_json(ctx: RunContext, path: Path, payload: dict[str, object]) -> Path:
    return write_text(ctx, path, dumps_json(payload, pretty=True) + "\n")
