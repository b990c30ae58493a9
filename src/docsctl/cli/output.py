"""CLI payload output helpers."""

from __future__ import annotations

from ..core.context import RunContext
from ..core.fs import dumps_json


def emit(payload: dict[str, object], as_json: bool) -> None:
    print(dumps_json(payload, pretty=not as_json))


def build_base_payload(ctx: RunContext, status: str = "ok") -> dict[str, object]:
    return {
        "schema_version": 1,
        "tool": "docsctl",
        "status": status,
        "run_id": ctx.run_id,
        "source_root": str(ctx.source_root),
        "evidence_root": str(ctx.evidence_root),
        "format": ctx.output_format,
        "git_sha": ctx.git_sha,
        "git_dirty": ctx.git_dirty,
    }


def resolve_output_format(*, cli_json: bool, cli_format: str | None, ci_present: bool) -> str:
    if cli_json:
        return "json"
    if cli_format:
        return cli_format
    return "json" if ci_present else "text"


def render_error(*, as_json: bool, message: str, code: int, kind: str = "generic_error", stage: str = "internal") -> str:
    if as_json:
        return dumps_json(
            {
                "schema_version": 1,
                "tool": "docsctl",
                "status": "fail",
                "error": {"code": code, "kind": kind, "stage": stage, "message": message},
            },
            pretty=False,
        )
    return f"{stage} failed [{kind}]: {message}"
