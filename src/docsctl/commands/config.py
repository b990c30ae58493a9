from __future__ import annotations

import argparse

from ..cli.output import build_base_payload, emit
from ..config import load_config
from ..core.context import RunContext
from ..core.exit_codes import ERR_USAGE


def run_config_command(ctx: RunContext, ns: argparse.Namespace) -> int:
    config = load_config(ctx.source_root, ns.config)
    as_json = ctx.output_format == "json" or bool(getattr(ns, "json", False))
    if ns.config_cmd == "dump":
        payload = build_base_payload(ctx)
        payload["config_path"] = str(config.path) if config.path else None
        payload["config"] = config.to_payload()
        emit(payload, as_json)
        return 0
    if ns.config_cmd == "validate":
        if as_json:
            emit({**build_base_payload(ctx), "config_path": str(config.path) if config.path else None}, True)
        else:
            print(f"config ok: {config.path or 'defaults'}")
        return 0
    return ERR_USAGE


def configure_config_parser(sub: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    p = sub.add_parser("config", help="inspect the resolved pipeline configuration")
    config_sub = p.add_subparsers(dest="config_cmd", required=True)
    dump = config_sub.add_parser("dump", help="print the resolved configuration")
    dump.add_argument("--json", action="store_true", help="emit JSON output")
    validate = config_sub.add_parser("validate", help="validate the configuration file against its schema")
    validate.add_argument("--json", action="store_true", help="emit JSON output")
