from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from ..core.context import RunContext
from ..core.errors import ScriptError
from ..core.exit_codes import OK
from ..core.fs import resolve_evidence_path, write_json
from ..core.schema import validate_payload
from .publish import PublishResult
from .trigger import TriggerEvent

REPORT_NAME = "run-report.json"


@dataclass
class RunReport:
    run_id: str
    trigger: TriggerEvent
    state: str
    history: list[dict[str, str]] = field(default_factory=list)
    failure: ScriptError | None = None
    artifact: dict[str, object] | None = None
    publish: PublishResult | None = None
    skipped: bool = False

    @property
    def status(self) -> str:
        if self.skipped:
            return "skipped"
        return "fail" if self.failure is not None else "ok"

    @property
    def exit_code(self) -> int:
        return self.failure.code if self.failure is not None else OK

    def to_payload(self) -> dict[str, object]:
        return {
            "schema_version": 1,
            "tool": "docsctl",
            "run_id": self.run_id,
            "status": self.status,
            "state": self.state,
            "trigger": self.trigger.to_payload(),
            "history": list(self.history),
            "failure": (
                {
                    "kind": self.failure.kind,
                    "stage": self.failure.stage,
                    "code": self.failure.code,
                    "message": self.failure.message,
                }
                if self.failure is not None
                else None
            ),
            "artifact": self.artifact,
            "publish": self.publish.to_payload() if self.publish is not None else None,
        }


def report_path(ctx: RunContext) -> Path:
    """Resolve the report location without creating it."""
    return resolve_evidence_path(ctx, ctx.run_dir / REPORT_NAME)


def write_report(ctx: RunContext, report: RunReport) -> Path:
    payload = report.to_payload()
    validate_payload(payload, "run-report.schema.json", what="run report")
    return write_json(ctx, report_path(ctx), payload)
