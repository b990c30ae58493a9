"""Fail-fast sequencing of provision, source, build and publish."""

from __future__ import annotations

from enum import Enum

from ..config import PipelineConfig
from ..core.clock import utc_now_iso
from ..core.context import RunContext
from ..core.errors import ScriptError
from ..core.exit_codes import ERR_INTERNAL
from ..core.logging import log_event
from .build import DocBuilder
from .provision import ToolchainProvisioner
from .publish import Publisher
from .report import RunReport
from .source import SourceAcquirer
from .trigger import TriggerEvent, should_run


class PipelineState(str, Enum):
    IDLE = "idle"
    PROVISIONING = "provisioning"
    SOURCE_READY = "source_ready"
    BUILT = "built"
    PUBLISHED = "published"
    FAILED = "failed"


_TRANSITIONS: dict[PipelineState, frozenset[PipelineState]] = {
    PipelineState.IDLE: frozenset({PipelineState.PROVISIONING, PipelineState.FAILED}),
    PipelineState.PROVISIONING: frozenset({PipelineState.SOURCE_READY, PipelineState.FAILED}),
    PipelineState.SOURCE_READY: frozenset({PipelineState.BUILT, PipelineState.FAILED}),
    PipelineState.BUILT: frozenset({PipelineState.PUBLISHED, PipelineState.FAILED}),
    PipelineState.PUBLISHED: frozenset(),
    PipelineState.FAILED: frozenset(),
}


class InvalidTransition(ScriptError):
    def __init__(self, current: PipelineState, target: PipelineState) -> None:
        super().__init__(f"invalid pipeline transition {current.value} -> {target.value}", ERR_INTERNAL, "internal_error", "internal")


class PipelineController:
    """One instance per trigger event; never reused across runs."""

    def __init__(
        self,
        ctx: RunContext,
        config: PipelineConfig,
        provisioner: ToolchainProvisioner | None = None,
        acquirer: SourceAcquirer | None = None,
        builder: DocBuilder | None = None,
        publisher: Publisher | None = None,
    ) -> None:
        self.ctx = ctx
        self.config = config
        self.provisioner = provisioner or ToolchainProvisioner(ctx, config.provision)
        self.acquirer = acquirer or SourceAcquirer(ctx)
        self.builder = builder or DocBuilder(ctx, config.build)
        self.publisher = publisher or Publisher(ctx, config.publish)
        self.state = PipelineState.IDLE
        self.history: list[dict[str, str]] = [{"state": self.state.value, "ts": utc_now_iso()}]

    def _transition(self, target: PipelineState) -> None:
        if target not in _TRANSITIONS[self.state]:
            raise InvalidTransition(self.state, target)
        log_event(self.ctx, "info", "pipeline", "transition", previous=self.state.value, state=target.value)
        self.state = target
        self.history.append({"state": target.value, "ts": utc_now_iso()})

    def run(
        self,
        event: TriggerEvent,
        publish: bool = True,
        skip_provision: bool = False,
        filter_trigger: bool = True,
    ) -> RunReport:
        report = RunReport(run_id=self.ctx.run_id, trigger=event, state=self.state.value, history=self.history)
        if filter_trigger and not should_run(event, self.config.tracked_branch):
            log_event(
                self.ctx,
                "info",
                "pipeline",
                "skipped",
                branch=event.branch,
                event=event.event,
                tracked_branch=self.config.tracked_branch,
            )
            report.skipped = True
            return report
        log_event(self.ctx, "info", "pipeline", "start", branch=event.branch, commit=event.commit, event=event.event)
        try:
            self._transition(PipelineState.PROVISIONING)
            if skip_provision:
                log_event(self.ctx, "info", "provision", "skipped")
            else:
                self.provisioner.provision()
            tree = self.acquirer.acquire(event)
            self._transition(PipelineState.SOURCE_READY)
            artifact = self.builder.build(tree)
            report.artifact = artifact.summary()
            self._transition(PipelineState.BUILT)
            if publish:
                report.publish = self.publisher.publish(artifact, tree.commit or event.commit)
                self._transition(PipelineState.PUBLISHED)
        except ScriptError as exc:
            self._fail(report, exc)
        except Exception as exc:
            self._fail(report, ScriptError(f"internal error: {type(exc).__name__}: {exc}", ERR_INTERNAL, "internal_error", "internal"))
        report.state = self.state.value
        if report.failure is None:
            log_event(self.ctx, "info", "pipeline", "done", state=self.state.value, commit=event.commit)
        return report

    def _fail(self, report: RunReport, exc: ScriptError) -> None:
        if exc.stage == "internal":
            exc.stage = self.state.value
        log_event(self.ctx, "error", "pipeline", "fail", kind=exc.kind, stage=exc.stage, code=exc.code, message=exc.message)
        report.failure = exc
        if self.state not in (PipelineState.PUBLISHED, PipelineState.FAILED):
            self.state = PipelineState.FAILED
            self.history.append({"state": self.state.value, "ts": utc_now_iso()})
