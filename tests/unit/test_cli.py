"""Tests for the command-line interface."""

import json
import logging
from pathlib import Path

import pytest
from click.testing import CliRunner

from conftest import make_instance, make_resource, make_state, state_bytes
from tfreconcile import __version__
from tfreconcile.cli.main import cli
from tfreconcile.integrity.manager import hash_bytes


@pytest.fixture(autouse=True)
def reset_logging():
    """check installs root handlers bound to the runner's streams."""
    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()


def test_version():
    result = CliRunner().invoke(cli, ["version"])

    assert result.exit_code == 0
    assert f"tfreconcile {__version__}" in result.output


def test_kinds_lists_verified_and_local_kinds():
    result = CliRunner().invoke(cli, ["kinds"])

    assert result.exit_code == 0
    assert "aws_s3_bucket" in result.output
    assert "random_id" in result.output


def test_verify_artifact_ok_and_mismatch():
    runner = CliRunner()
    with runner.isolated_filesystem():
        artifact = Path("original.dev.tfstate")
        artifact.write_bytes(b"{}")
        Path("original.dev.tfstate.sha256").write_text(f"{hash_bytes(b'{}')}  original.dev.tfstate\n")

        ok = runner.invoke(cli, ["verify-artifact", str(artifact)])
        artifact.write_bytes(b"{ }")
        mismatch = runner.invoke(cli, ["verify-artifact", str(artifact)])

    assert ok.exit_code == 0
    assert "OK" in ok.output
    assert mismatch.exit_code == 1
    assert "MISMATCH" in mismatch.output


def test_check_json_for_local_only_state(aws_credentials):
    runner = CliRunner()
    document = make_state([
        make_resource("random_id", "suffix", [make_instance({"id": "abcd"})]),
        make_resource("null_resource", "hook", [make_instance({"id": "123"})]),
    ])
    with runner.isolated_filesystem():
        Path("terraform.tfstate").write_bytes(state_bytes(document))

        result = runner.invoke(cli, ["--log-level", "error", "check", "--json", "--region", "eu-west-1"])

        assert result.exit_code == 0, result.output
        report = json.loads(result.output)
        assert report["region"] == "eu-west-1"
        assert report["state_version"] == 4
        assert [item["resource"] for item in report["results"]["INFO"]] == [
            "null_resource.hook",
            "random_id.suffix",
        ]
        assert report["commands"] == []
        assert Path(report["backup"]["original_path"]).exists()


def test_check_rejects_invalid_config():
    runner = CliRunner()
    with runner.isolated_filesystem():
        result = runner.invoke(cli, ["check", "--concurrency", "0"])

    assert result.exit_code == 2
    assert "concurrency" in result.output


def test_check_missing_config_file():
    runner = CliRunner()
    with runner.isolated_filesystem():
        result = runner.invoke(cli, ["check", "--config", "missing.yaml"])

    assert result.exit_code == 2
    assert "not found" in result.output
