"""Tests for configuration loading."""

import pytest

from tfreconcile.config import ConfigValidationError, ReconcileConfig, load_config, read_config_file


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path, monkeypatch):
    """Keep a stray tfreconcile.yaml in the real cwd out of these tests."""
    monkeypatch.chdir(tmp_path)


def test_defaults():
    config = load_config()

    assert config.state == "terraform.tfstate"
    assert config.region == "us-west-2"
    assert config.concurrency == 10
    assert config.execute_commands is False
    assert config.backups_dir == "backups"
    assert config.is_s3_state is False
    assert config.state_identifier == "terraform.tfstate"


def test_yaml_file_with_dashed_keys(tmp_path):
    path = tmp_path / "custom.yaml"
    path.write_text(
        "region: eu-west-1\n"
        "concurrency: 4\n"
        "backups-dir: /var/backups/tf\n"
        "local-kinds:\n"
        "  - tls_private_key\n"
    )

    config = load_config(str(path))

    assert config.region == "eu-west-1"
    assert config.concurrency == 4
    assert config.backups_dir == "/var/backups/tf"
    assert config.local_kinds == ["tls_private_key"]


def test_default_file_is_picked_up(tmp_path):
    (tmp_path / "tfreconcile.yaml").write_text("region: ap-southeast-2\n")
    assert load_config().region == "ap-southeast-2"


def test_overrides_win_but_none_is_ignored(tmp_path):
    path = tmp_path / "custom.yaml"
    path.write_text("region: eu-west-1\nconcurrency: 4\n")

    config = load_config(str(path), {"region": "us-east-1", "concurrency": None})

    assert config.region == "us-east-1"
    assert config.concurrency == 4


def test_s3_state():
    config = load_config(overrides={"s3_state": "s3://tf-state/envs/prod/terraform.tfstate"})

    assert config.is_s3_state is True
    assert config.s3_bucket == "tf-state"
    assert config.state_identifier == "s3://tf-state/envs/prod/terraform.tfstate"


@pytest.mark.parametrize("overrides,field", [
    ({"region": "mars-north-1x"}, "region"),
    ({"concurrency": 0}, "concurrency"),
    ({"s3_state": "https://bucket/key"}, "s3_state"),
    ({"s3_state": "s3://bucket-only"}, "s3_state"),
    ({"command_timeout": 0}, "command_timeout"),
])
def test_invalid_values(overrides, field):
    with pytest.raises(ConfigValidationError) as excinfo:
        load_config(overrides=overrides)

    assert any(field in error["loc"] for error in excinfo.value.errors)
    assert field in str(excinfo.value)


def test_mirror_requires_s3_state():
    with pytest.raises(ConfigValidationError) as excinfo:
        load_config(overrides={"mirror_backups": True})
    assert "mirror_backups requires s3_state" in str(excinfo.value)


def test_gov_cloud_region_is_valid():
    assert ReconcileConfig(region="us-gov-west-1").region == "us-gov-west-1"


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_config_file(tmp_path / "nope.yaml")


def test_non_mapping_yaml(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- a\n- b\n")

    with pytest.raises(ConfigValidationError):
        read_config_file(path)


def test_invalid_yaml(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("region: [unclosed\n")

    with pytest.raises(ConfigValidationError) as excinfo:
        read_config_file(path)
    assert "Failed to parse YAML" in excinfo.value.message
