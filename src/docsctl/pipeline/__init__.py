"""Documentation pipeline stages and the controller that sequences them."""

from .artifact import BuildArtifact, artifact_root
from .build import DocBuilder
from .controller import PipelineController, PipelineState
from .provision import ToolchainProvisioner
from .publish import PublishResult, Publisher
from .report import RunReport, report_path, write_report
from .source import SourceAcquirer, SourceTree
from .trigger import TriggerEvent, should_run

__all__ = [
    "BuildArtifact",
    "DocBuilder",
    "PipelineController",
    "PipelineState",
    "PublishResult",
    "Publisher",
    "RunReport",
    "SourceAcquirer",
    "SourceTree",
    "ToolchainProvisioner",
    "TriggerEvent",
    "artifact_root",
    "should_run",
    "report_path",
    "write_report",
]
