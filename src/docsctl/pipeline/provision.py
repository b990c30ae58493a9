from __future__ import annotations

import shutil
from dataclasses import dataclass, field
from typing import Callable

from ..config import ProvisionConfig
from ..core.context import RunContext
from ..core.errors import ProvisionFailure
from ..core.logging import log_event
from ..core.process import CommandResult, run_command

Runner = Callable[..., CommandResult]


@dataclass(frozen=True)
class ToolchainReport:
    tools: dict[str, str] = field(default_factory=dict)
    installed: tuple[str, ...] = ()


def tool_version(ctx: RunContext, tool: str, runner: Runner = run_command) -> str:
    res = runner([tool, "--version"], ctx.source_root)
    out = res.combined_output
    return out.splitlines()[0] if res.ok and out else "unknown"


class ToolchainProvisioner:
    def __init__(self, ctx: RunContext, config: ProvisionConfig, runner: Runner = run_command) -> None:
        self.ctx = ctx
        self.config = config
        self.runner = runner

    def _install_rust(self) -> tuple[str, ...]:
        cmd = ["rustup", "toolchain", "install", self.config.rust_toolchain, "--profile", "minimal"]
        for component in self.config.rust_components:
            cmd += ["--component", component]
        res = self.runner(cmd, self.ctx.source_root, ctx=self.ctx)
        if not res.ok:
            raise ProvisionFailure(f"rust toolchain install failed: {res.combined_output or res.code}")
        override = self.runner(["rustup", "override", "set", self.config.rust_toolchain], self.ctx.source_root, ctx=self.ctx)
        if not override.ok:
            raise ProvisionFailure(f"rust toolchain override failed: {override.combined_output or override.code}")
        return (f"rust-{self.config.rust_toolchain}",)

    def provision(self) -> ToolchainReport:
        installed: tuple[str, ...] = ()
        if self.config.install:
            if shutil.which("rustup") is None:
                raise ProvisionFailure("rustup not found on PATH; cannot install rust toolchain")
            installed = self._install_rust()
        missing = [tool for tool in self.config.tools if shutil.which(tool) is None]
        if missing:
            raise ProvisionFailure(f"required tools not found on PATH: {', '.join(missing)}")
        tools = {tool: tool_version(self.ctx, tool, self.runner) for tool in self.config.tools}
        log_event(self.ctx, "info", "provision", "tools-ready", tools=",".join(sorted(tools)))
        return ToolchainReport(tools=tools, installed=installed)
