"""Tests for report rendering."""

import io
import json

from rich.console import Console

from tfreconcile.engine.aggregator import aggregate
from tfreconcile.engine.models import Category, ClassifiedResult, CommandExecutionLog
from tfreconcile.report.console import print_summary
from tfreconcile.report.renderer import ArtifactRef, ReportData, build_json, render_json, render_text


def sample_data(**overrides):
    results = aggregate([
        ClassifiedResult(address="aws_vpc.main", resource_type="aws_vpc", category=Category.OK,
                         message="aws_vpc.main (ID: vpc-1) exists in state and AWS", live_id="vpc-1"),
        ClassifiedResult(address="aws_s3_bucket.old", resource_type="aws_s3_bucket", category=Category.DANGEROUS,
                         message="aws_s3_bucket.old (ID: old) is in state but NOT FOUND in AWS",
                         remediation_command="terraform state rm aws_s3_bucket.old", declared_id="old"),
        ClassifiedResult(address="random_id.x", resource_type="random_id", category=Category.INFO,
                         message="random_id.x is a local or data-only kind, no AWS check performed"),
    ])
    values = dict(
        state="terraform.tfstate",
        region="us-west-2",
        concurrency=10,
        backups_dir="backups",
        tool_version="1.5.7",
        format_version=4,
        results=results,
        original_hash="a" * 64,
        original=ArtifactRef(path="backups/original.terraform.tfstate", checksum="a" * 64),
    )
    values.update(overrides)
    return ReportData(**values)


def test_text_header_and_section_order():
    text = render_text(sample_data())

    assert text.startswith("--- Terraform State Reconciliation Report ---\n")
    assert "State File: terraform.tfstate (State Version: 4, Terraform Version: 1.5.7)" in text
    assert text.index("--- INFO Results (1) ---") < text.index("--- OK Results (1) ---")
    assert text.index("--- OK Results (1) ---") < text.index("--- DANGEROUS Results (1) ---")
    assert "DANGEROUS: aws_s3_bucket.old (ID: old) is in state but NOT FOUND in AWS" in text
    assert "--- SUGGESTED REMEDIATION COMMANDS (1) ---\n   terraform state rm aws_s3_bucket.old" in text
    assert "WARNING Results" not in text
    assert "APPLICATION ERROR" not in text


def test_text_includes_logs_warnings_and_error():
    data = sample_data(degraded=["Failed to write report artifact"], application_error="upload failed")
    data.results.attach_command_logs([
        CommandExecutionLog(command="terraform state rm aws_s3_bucket.old", exit_code=1,
                            stderr="no such resource", error="exit status 1"),
    ])

    text = render_text(data)

    assert "--- COMMAND EXECUTION LOGS (1) ---" in text
    assert "Error: exit status 1" in text
    assert "Stderr:\nno such resource" in text
    assert "--- BACKUP WARNINGS (1) ---\nFailed to write report artifact" in text
    assert text.rstrip().endswith("--- APPLICATION ERROR ---\nupload failed")


def test_json_document():
    document = build_json(sample_data())

    assert document["state_checksum"] == "a" * 64
    assert document["backup"]["original_path"] == "backups/original.terraform.tfstate"
    assert document["backup"]["new_path"] == ""
    assert document["commands"] == ["terraform state rm aws_s3_bucket.old"]
    assert document["results"]["DANGEROUS"] == [{
        "kind": "DANGEROUS",
        "resource": "aws_s3_bucket.old",
        "resource_type": "aws_s3_bucket",
        "tf_id": "old",
        "aws_id": "",
        "command": "terraform state rm aws_s3_bucket.old",
        "message": "aws_s3_bucket.old (ID: old) is in state but NOT FOUND in AWS",
    }]
    assert set(document["results"]) == {category.value for category in Category}
    assert "application_error" not in document
    assert json.loads(render_json(sample_data())) == document


def test_console_summary_escapes_markup():
    buffer = io.StringIO()
    console = Console(file=buffer, width=160, force_terminal=False)

    print_summary(sample_data(state="[bold]weird.tfstate"), console)

    output = buffer.getvalue()
    assert "[bold]weird.tfstate" in output
    assert "aws_s3_bucket.old" in output
