"""Pydantic models for run configuration."""

import re
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

REGION_PATTERN = re.compile(r"^[a-z]{2}(-gov|-iso[a-z]?)?-[a-z]+-\d$")


class ReconcileConfig(BaseModel):
    """Settings for one reconciliation run."""

    state: Optional[str] = Field("terraform.tfstate", description="Path to the local state file")
    s3_state: Optional[str] = Field(None, description="S3 URI of the state file, e.g. s3://bucket/key")
    region: str = Field("us-west-2", description="AWS region to check resources against")
    concurrency: int = Field(10, ge=1, description="Number of concurrent AWS lookups")
    execute_commands: bool = Field(False, description="Run the suggested terraform commands")
    backups_dir: str = Field("backups", description="Directory for backups and reports")
    json_output: bool = False
    terraform_dir: str = Field(".", description="Directory where terraform commands run")
    profile: Optional[str] = Field(None, description="AWS profile name")
    publish_on_attempt: bool = Field(
        False,
        description="Upload S3 state whenever a state-altering command ran, even if unchanged"
    )
    local_kinds: List[str] = Field(default_factory=list, description="Extra kinds treated as local-only")
    mirror_backups: bool = Field(False, description="Mirror backups to the state bucket")
    backup_prefix: str = Field("tfreconcile-backups", description="S3 key prefix for mirrored backups")
    command_timeout: Optional[float] = Field(None, gt=0, description="Per-command timeout in seconds")

    @field_validator("region")
    @classmethod
    def validate_region(cls, v: str) -> str:
        """Validate AWS region format."""
        if not REGION_PATTERN.match(v):
            raise ValueError(f"Invalid AWS region: {v}")
        return v

    @field_validator("s3_state")
    @classmethod
    def validate_s3_state(cls, v: Optional[str]) -> Optional[str]:
        if not v:
            return None
        if not v.startswith("s3://"):
            raise ValueError(f"s3_state must be an s3:// URI: {v}")
        bucket, _, key = v[len("s3://"):].partition("/")
        if not bucket or not key:
            raise ValueError(f"s3_state must name a bucket and a key: {v}")
        return v

    @model_validator(mode="after")
    def validate_state_source(self):
        """Exactly one state location must be usable."""
        if not self.s3_state and not self.state:
            raise ValueError("Either 'state' or 's3_state' must be provided")
        if self.mirror_backups and not self.s3_state:
            raise ValueError("mirror_backups requires s3_state")
        return self

    @property
    def is_s3_state(self) -> bool:
        return bool(self.s3_state)

    @property
    def state_identifier(self) -> str:
        """Name shown in reports: the S3 URI when set, otherwise the path."""
        return self.s3_state or self.state or ""

    @property
    def s3_bucket(self) -> Optional[str]:
        if not self.s3_state:
            return None
        return self.s3_state[len("s3://"):].partition("/")[0]
