"""docsctl core package."""
from .clock import utc_now_iso
from .context import RunContext
from .errors import (
    AuthFailure,
    BuildFailure,
    EmptyArtifact,
    ProvisionFailure,
    ScriptError,
    SourceFailure,
    TransportFailure,
)
from .fs import dumps_json, ensure_evidence_path, resolve_evidence_path, write_json
from .logging import log_event
from .process import CommandResult, run_command

__all__ = [
    "AuthFailure",
    "BuildFailure",
    "CommandResult",
    "EmptyArtifact",
    "ProvisionFailure",
    "RunContext",
    "ScriptError",
    "SourceFailure",
    "TransportFailure",
    "dumps_json",
    "ensure_evidence_path",
    "log_event",
    "resolve_evidence_path",
    "run_command",
    "utc_now_iso",
    "write_json",
]
