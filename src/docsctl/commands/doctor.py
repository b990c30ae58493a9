from __future__ import annotations

import platform
import shutil
import sys

from ..cli.output import build_base_payload, emit
from ..config import load_config
from ..core.context import RunContext
from ..core.env import getenv
from ..pipeline.provision import tool_version


def build_report(ctx: RunContext, config_path: str | None) -> dict[str, object]:
    config = load_config(ctx.source_root, config_path)
    required = list(dict.fromkeys([*config.provision.tools, "git"]))
    tools = {tool: (tool_version(ctx, tool) if shutil.which(tool) else "missing") for tool in required}
    report = build_base_payload(ctx, status="ok" if "missing" not in tools.values() else "fail")
    report.update(
        {
            "python": sys.version.split()[0],
            "platform": platform.platform(),
            "tools": tools,
            "checks": {
                "manifest_present": (ctx.source_root / "Cargo.toml").is_file(),
                "rustup_present": shutil.which("rustup") is not None,
                "token_present": bool(getenv(config.publish.token_env)),
            },
        }
    )
    return report


def run_doctor(ctx: RunContext, as_json: bool, config_path: str | None) -> int:
    report = build_report(ctx, config_path)
    if as_json:
        emit(report, True)
    else:
        for tool, version in sorted(report["tools"].items()):  # type: ignore[union-attr]
            print(f"{tool}: {version}")
        for check, ok in sorted(report["checks"].items()):  # type: ignore[union-attr]
            print(f"{check}: {'yes' if ok else 'no'}")
    return 0 if report["status"] == "ok" else 1
