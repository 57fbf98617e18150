"""Text and JSON rendering of a reconciliation run."""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from tfreconcile.engine.aggregator import AggregatedResults
from tfreconcile.engine.models import Category, ClassifiedResult

RULE = "-------------------------------------------"

# Section order of the text report
TEXT_SECTIONS = (
    (Category.INFO, "INFO Results"),
    (Category.OK, "OK Results"),
    (Category.WARNING, "WARNING Results"),
    (Category.ERROR, "ERROR Results"),
    (Category.REGION_MISMATCH, "REGION MISMATCH Results"),
    (Category.POTENTIAL_IMPORT, "POTENTIAL IMPORT Results"),
    (Category.DANGEROUS, "DANGEROUS Results"),
)


@dataclass
class ArtifactRef:
    """Path and checksum of a written artifact, empty when absent."""
    path: str = ""
    checksum: str = ""


@dataclass
class ReportData:
    """Everything a report shows about one run."""
    state: str
    region: str
    concurrency: int
    backups_dir: str
    local_state_file: str = ""
    tool_version: str = ""
    format_version: Optional[int] = None
    results: AggregatedResults = field(default_factory=AggregatedResults)
    original_hash: str = ""
    new_hash: str = ""
    content_changed: bool = False
    published: bool = False
    original: ArtifactRef = field(default_factory=ArtifactRef)
    new: ArtifactRef = field(default_factory=ArtifactRef)
    report: ArtifactRef = field(default_factory=ArtifactRef)
    json_report: ArtifactRef = field(default_factory=ArtifactRef)
    degraded: List[str] = field(default_factory=list)
    application_error: Optional[str] = None


def render_text(data: ReportData) -> str:
    """Render the human-readable report."""
    lines = ["--- Terraform State Reconciliation Report ---"]
    version = data.format_version if data.format_version is not None else "unknown"
    tool = data.tool_version or "unknown"
    lines.append(f"State File: {data.state} (State Version: {version}, Terraform Version: {tool})")
    lines.append(f"AWS Region: {data.region}")
    lines.append(f"Concurrency: {data.concurrency}")
    lines.append(f"Backups Directory: {data.backups_dir}")
    lines.append(RULE)
    lines.append("")

    if data.original_hash:
        lines.append(f"Original State File Hash (SHA256): {data.original_hash}")
    if data.new_hash:
        lines.append(f"Modified State File Hash (SHA256): {data.new_hash}")
    lines.append(f"State File Content Changed: {'YES' if data.content_changed else 'NO'}")
    lines.append(RULE)
    lines.append("")

    for category, title in TEXT_SECTIONS:
        bucket = data.results.bucket(category)
        if bucket:
            lines.append(f"\n--- {title} ({len(bucket)}) ---")
            lines.extend(f"{result.category.value}: {result.message}" for result in bucket)

    if data.results.commands:
        lines.append(f"\n--- SUGGESTED REMEDIATION COMMANDS ({len(data.results.commands)}) ---")
        lines.extend(f"   {command}" for command in data.results.commands)

    if data.results.command_logs:
        lines.append(f"\n--- COMMAND EXECUTION LOGS ({len(data.results.command_logs)}) ---")
        for log in data.results.command_logs:
            lines.append(f"Command: {log.command}")
            lines.append(f"Exit Code: {log.exit_code}")
            if log.error:
                lines.append(f"Error: {log.error}")
            if log.stdout:
                lines.append(f"Stdout:\n{log.stdout}")
            if log.stderr:
                lines.append(f"Stderr:\n{log.stderr}")
            lines.append("---")

    if data.degraded:
        lines.append(f"\n--- BACKUP WARNINGS ({len(data.degraded)}) ---")
        lines.extend(data.degraded)

    if data.application_error:
        lines.append(f"\n--- APPLICATION ERROR ---\n{data.application_error}")

    return "\n".join(lines) + "\n"


def result_item(result: ClassifiedResult) -> Dict[str, Any]:
    item = {
        'kind': result.category.value,
        'resource': result.address,
        'resource_type': result.resource_type,
        'tf_id': result.declared_id,
        'aws_id': result.live_id,
        'command': result.remediation_command or "",
        'message': result.message,
    }
    if result.error:
        item['error'] = result.error
    if result.warning:
        item['warning'] = result.warning
    return item


def build_json(data: ReportData) -> Dict[str, Any]:
    """Build the machine-readable report document."""
    document: Dict[str, Any] = {
        'state': data.state,
        'state_checksum': data.new_hash or data.original_hash,
        'region': data.region,
        'local_statefile': data.local_state_file,
        'tf_version': data.tool_version,
        'state_version': data.format_version,
        'concurrency': data.concurrency,
        'content_changed': data.content_changed,
        'published': data.published,
        'backup': {
            'original_path': data.original.path,
            'original_checksum': data.original.checksum,
            'new_path': data.new.path,
            'new_checksum': data.new.checksum,
            'report_path': data.report.path,
            'report_checksum': data.report.checksum,
            'json_report_path': data.json_report.path,
            'json_report_checksum': data.json_report.checksum,
        },
        'commands': list(data.results.commands),
        'execution_logs': [log.to_dict() for log in data.results.command_logs],
        'region_mismatch_count': data.results.region_mismatch_count,
        'results': {
            category.value: [result_item(result) for result in data.results.bucket(category)]
            for category, _ in TEXT_SECTIONS
        },
    }
    if data.degraded:
        document['backup_warnings'] = list(data.degraded)
    if data.application_error:
        document['application_error'] = data.application_error
    return document


def render_json(data: ReportData) -> str:
    return json.dumps(build_json(data), indent=2) + "\n"
