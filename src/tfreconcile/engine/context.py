"""Explicit state carried through one reconciliation run."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

from tfreconcile.commands.runner import CommandRunResult
from tfreconcile.config.models import ReconcileConfig
from tfreconcile.engine.aggregator import AggregatedResults
from tfreconcile.engine.registry import VerifierRegistry
from tfreconcile.integrity.manager import ArtifactRole, IntegrityManager, IntegrityReport
from tfreconcile.report.renderer import ArtifactRef, ReportData
from tfreconcile.state.models import StateSnapshot, WorkItem
from tfreconcile.state.source import StateSource


@dataclass
class RunContext:
    """Everything a run has produced so far.

    Each phase fills in its fields. The recovery handler reads whatever is
    present to write a best-effort report after a failure.
    """
    config: ReconcileConfig
    run_timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    clients: Optional[object] = None
    registry: Optional[VerifierRegistry] = None
    source: Optional[StateSource] = None
    snapshot: Optional[StateSnapshot] = None
    items: List[WorkItem] = field(default_factory=list)
    integrity: Optional[IntegrityManager] = None
    results: Optional[AggregatedResults] = None
    command_result: Optional[CommandRunResult] = None
    integrity_report: Optional[IntegrityReport] = None
    published: bool = False
    application_error: Optional[str] = None

    @property
    def has_original_backup(self) -> bool:
        return self.integrity is not None and self.integrity.original_hash is not None

    @property
    def commands_failed(self) -> bool:
        return self.command_result is not None and not self.command_result.succeeded

    def _ref(self, role: ArtifactRole, extension: Optional[str] = None) -> ArtifactRef:
        if self.integrity is None:
            return ArtifactRef()
        artifact = self.integrity.artifact(role, extension)
        if artifact is None:
            return ArtifactRef()
        return ArtifactRef(path=str(artifact.path), checksum=artifact.content_hash)

    def report_data(self) -> ReportData:
        """Snapshot the context as report input."""
        report = self.integrity_report
        return ReportData(
            state=self.config.state_identifier,
            region=self.config.region,
            concurrency=self.config.concurrency,
            backups_dir=self.config.backups_dir,
            local_state_file=str(self.source.working_path) if self.source else "",
            tool_version=(self.snapshot.tool_version or "") if self.snapshot else "",
            format_version=self.snapshot.format_version if self.snapshot else None,
            results=self.results or AggregatedResults(),
            original_hash=(self.integrity.original_hash or "") if self.integrity else "",
            new_hash=(report.new_hash or "") if report else "",
            content_changed=report.content_changed if report else False,
            published=self.published,
            original=self._ref(ArtifactRole.ORIGINAL),
            new=self._ref(ArtifactRole.NEW),
            report=self._ref(ArtifactRole.REPORT, '.txt'),
            json_report=self._ref(ArtifactRole.REPORT, '.json'),
            degraded=[error.message for error in self.integrity.degraded] if self.integrity else [],
            application_error=self.application_error,
        )
