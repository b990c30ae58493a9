from __future__ import annotations

import argparse
from dataclasses import replace

from ..cli.output import emit
from ..config import PipelineConfig, load_config
from ..core.context import RunContext
from ..core.errors import ScriptError
from ..core.exit_codes import ERR_CONFIG
from ..core.git import read_head_commit
from ..core.logging import log_event
from ..pipeline import (
    BuildArtifact,
    PipelineController,
    Publisher,
    RunReport,
    TriggerEvent,
    artifact_root,
    report_path,
    write_report,
)


def _event_from_args(ctx: RunContext, ns: argparse.Namespace) -> TriggerEvent:
    return TriggerEvent.resolve(
        branch=getattr(ns, "branch", None),
        commit=getattr(ns, "commit", None),
        event=getattr(ns, "event", None),
        fallback_commit=read_head_commit(ctx.source_root),
    )


def _apply_overrides(config: PipelineConfig, ns: argparse.Namespace) -> PipelineConfig:
    publish = config.publish
    if getattr(ns, "repository", None):
        publish = replace(publish, repository=ns.repository)
    if getattr(ns, "publish_branch", None):
        publish = replace(publish, branch=ns.publish_branch)
    return replace(config, publish=publish)


def _finish(ctx: RunContext, report: RunReport, as_json: bool) -> int:
    if not report.skipped:
        written = write_report(ctx, report)
        log_event(ctx, "info", "pipeline", "report-written", path=str(written))
    payload = report.to_payload()
    if as_json:
        emit(payload, True)
    elif report.skipped:
        print(f"skipped: event `{report.trigger.event}` on branch `{report.trigger.branch}` is not tracked")
    elif report.failure is None:
        line = f"{report.status}: state={report.state} commit={report.trigger.commit or 'unknown'}"
        if report.publish is not None:
            line += f" published={report.publish.commit} branch={report.publish.branch}"
            if report.publish.skipped:
                line += " (tree unchanged)"
        print(line)
    return report.exit_code


def run_pipeline_command(ctx: RunContext, ns: argparse.Namespace) -> int:
    config = _apply_overrides(load_config(ctx.source_root, ns.config), ns)
    as_json = ctx.output_format == "json" or bool(getattr(ns, "json", False))
    event = _event_from_args(ctx, ns)
    report_path(ctx)
    controller = PipelineController(ctx, config)
    if ns.cmd == "run":
        report = controller.run(event, publish=True, skip_provision=ns.skip_provision)
    else:
        report = controller.run(event, publish=False, skip_provision=ns.skip_provision, filter_trigger=False)
    code = _finish(ctx, report, as_json)
    if report.failure is not None:
        raise report.failure
    return code


def run_publish_command(ctx: RunContext, ns: argparse.Namespace) -> int:
    config = _apply_overrides(load_config(ctx.source_root, ns.config), ns)
    as_json = ctx.output_format == "json" or bool(getattr(ns, "json", False))
    try:
        root = artifact_root(ctx.source_root, ns.artifact or config.build.output_dir)
    except ValueError as exc:
        raise ScriptError(str(exc), ERR_CONFIG, kind="config_error", stage="publish") from exc
    commit = ns.commit or read_head_commit(ctx.source_root) or ""
    result = Publisher(ctx, config.publish).publish(BuildArtifact(root), commit)
    if as_json:
        emit({"schema_version": 1, "tool": "docsctl", "status": "ok", "run_id": ctx.run_id, "publish": result.to_payload()}, True)
    else:
        suffix = " (tree unchanged)" if result.skipped else ""
        print(f"ok: published={result.commit} branch={result.branch}{suffix}")
    return 0


def configure_pipeline_parsers(sub: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    run = sub.add_parser("run", help="provision, build and publish docs for a trigger event")
    run.add_argument("--branch", help="branch or ref that triggered the run (default: $GITHUB_REF)")
    run.add_argument("--commit", help="commit that triggered the run (default: $GITHUB_SHA or HEAD)")
    run.add_argument("--event", help="trigger event name (default: $GITHUB_EVENT_NAME or push)")
    run.add_argument("--repository", help="publish target: owner/name slug, git URL or local path")
    run.add_argument("--publish-branch", help="branch whose content is replaced by the artifact")
    run.add_argument("--skip-provision", action="store_true", help="assume the toolchain is already installed")
    run.add_argument("--json", action="store_true", help="emit JSON output")

    build = sub.add_parser("build", help="provision and build docs without publishing")
    build.add_argument("--commit", help="commit to build (default: HEAD)")
    build.add_argument("--skip-provision", action="store_true", help="assume the toolchain is already installed")
    build.add_argument("--json", action="store_true", help="emit JSON output")

    publish = sub.add_parser("publish", help="publish an existing artifact directory")
    publish.add_argument("--artifact", help="artifact directory relative to the source tree")
    publish.add_argument("--commit", help="source commit recorded in the deploy message")
    publish.add_argument("--repository", help="publish target: owner/name slug, git URL or local path")
    publish.add_argument("--publish-branch", help="branch whose content is replaced by the artifact")
    publish.add_argument("--json", action="store_true", help="emit JSON output")
