from __future__ import annotations

import argparse
import sys

from .. import __version__
from ..commands.config import configure_config_parser, run_config_command
from ..commands.doctor import run_doctor
from ..commands.pipeline import configure_pipeline_parsers, run_pipeline_command, run_publish_command
from ..core.context import RunContext
from ..core.env import getenv
from ..core.errors import ScriptError
from ..core.exit_codes import ERR_INTERNAL, ERR_USAGE
from ..core.logging import log_event
from .output import build_base_payload, emit, render_error, resolve_output_format


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="docsctl", description="regenerate API docs and publish them to a hosting branch")
    p.add_argument("--version", action="version", version=f"docsctl {__version__}")
    p.add_argument("--json", action="store_true", help="emit JSON output")
    p.add_argument("--run-id", help="run identifier for logs and reports")
    p.add_argument("--source", help="source tree to document (default: current directory)")
    p.add_argument("--config", help="pipeline config file (default: <source>/docsctl.yaml when present)")
    p.add_argument("--evidence-root", help="directory for run reports")
    p.add_argument("--format", choices=["text", "json"], default=None, help="output format")
    p.add_argument("--log-json", action="store_true", help="write structured logs as JSON lines")
    vg = p.add_mutually_exclusive_group()
    vg.add_argument("--verbose", action="store_true", help="enable verbose diagnostics")
    vg.add_argument("--quiet", action="store_true", help="only emit errors")
    sub = p.add_subparsers(dest="cmd", required=True)

    version_p = sub.add_parser("version", help="print version and git context")
    version_p.add_argument("--json", action="store_true", help="emit JSON output")
    configure_pipeline_parsers(sub)
    configure_config_parser(sub)
    doctor_p = sub.add_parser("doctor", help="report toolchain availability")
    doctor_p.add_argument("--json", action="store_true", help="emit JSON output")
    return p


def main(argv: list[str] | None = None) -> int:
    raw_argv = argv if argv is not None else sys.argv[1:]
    p = build_parser()
    ns = p.parse_args(raw_argv)
    fmt = resolve_output_format(cli_json=("--json" in raw_argv), cli_format=ns.format, ci_present=bool(getenv("CI")))
    ctx: RunContext | None = None
    try:
        ctx = RunContext.from_args(
            ns.run_id,
            ns.source,
            ns.evidence_root,
            fmt,  # type: ignore[arg-type]
            ns.verbose,
            ns.quiet,
            ns.log_json,
        )
        log_event(ctx, "debug", "cli", "start", cmd=ns.cmd, fmt=ctx.output_format)
        as_json = ctx.output_format == "json" or bool(getattr(ns, "json", False))
        if ns.cmd == "version":
            emit({**build_base_payload(ctx), "version": __version__}, as_json)
            return 0
        if ns.cmd in {"run", "build"}:
            return run_pipeline_command(ctx, ns)
        if ns.cmd == "publish":
            return run_publish_command(ctx, ns)
        if ns.cmd == "config":
            return run_config_command(ctx, ns)
        if ns.cmd == "doctor":
            return run_doctor(ctx, as_json, ns.config)
        return ERR_USAGE
    except ScriptError as exc:
        if ctx is not None:
            log_event(ctx, "error", "cli", "fail", cmd=ns.cmd, kind=exc.kind, stage=exc.stage, code=exc.code)
        print(render_error(as_json=(fmt == "json"), message=str(exc), code=exc.code, kind=exc.kind, stage=exc.stage), file=sys.stderr)
        return exc.code
    except Exception as exc:  # pragma: no cover
        print(render_error(as_json=(fmt == "json"), message=f"internal error: {exc}", code=ERR_INTERNAL), file=sys.stderr)
        return ERR_INTERNAL


if __name__ == "__main__":
    raise SystemExit(main())
