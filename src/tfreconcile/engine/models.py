"""Result types shared by the reconciliation engine."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from tfreconcile.utils.errors import ErrorKind, VerificationError


class Category(Enum):
    """Action category assigned to every work item."""
    INFO = "INFO"
    OK = "OK"
    WARNING = "WARNING"
    ERROR = "ERROR"
    POTENTIAL_IMPORT = "POTENTIAL_IMPORT"
    DANGEROUS = "DANGEROUS"
    REGION_MISMATCH = "REGION_MISMATCH"


# Report order
CATEGORY_ORDER = (
    Category.INFO,
    Category.OK,
    Category.WARNING,
    Category.ERROR,
    Category.POTENTIAL_IMPORT,
    Category.DANGEROUS,
    Category.REGION_MISMATCH,
)

# Categories that carry a remediation command
ACTIONABLE_CATEGORIES = frozenset({
    Category.POTENTIAL_IMPORT,
    Category.DANGEROUS,
    Category.REGION_MISMATCH,
})


@dataclass(frozen=True)
class VerificationOutcome:
    """Three-valued answer from an inventory verifier.

    Either error is set, or exists (and live_id when exists) is meaningful.
    warning is a side channel for policy decisions such as treating an
    access-denied lookup as existing.
    """
    live_id: str = ""
    exists: bool = False
    error: Optional[VerificationError] = None
    warning: Optional[str] = None

    def __post_init__(self):
        if self.error is not None and self.exists:
            raise ValueError("a failed verification cannot also report existence")

    @classmethod
    def found(cls, live_id: str, warning: Optional[str] = None) -> 'VerificationOutcome':
        return cls(live_id=live_id, exists=True, warning=warning)

    @classmethod
    def not_found(cls) -> 'VerificationOutcome':
        return cls(exists=False)

    @classmethod
    def failed(cls, error: VerificationError) -> 'VerificationOutcome':
        return cls(error=error)

    @property
    def is_error(self) -> bool:
        return self.error is not None


@dataclass(frozen=True)
class FastPathDecision:
    """Result of the region pre-check for one work item."""
    embedded_identifier: str = ""
    state_region: str = ""
    target_region: str = ""
    mismatch: bool = False


class ClassifiedResult(BaseModel):
    """Terminal classification of one work item."""

    model_config = ConfigDict(frozen=True)

    address: str = Field(..., description="Resource instance address")
    resource_type: str = Field(..., description="Resource kind")
    mode: str = Field("managed", description="managed or data")
    category: Category
    message: str = ""
    remediation_command: Optional[str] = Field(None, description="Suggested terraform command")
    declared_id: str = Field("", description="ID recorded in the state file")
    live_id: str = Field("", description="ID found in AWS")
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    warning: Optional[str] = None

    def to_dict(self) -> dict:
        return self.model_dump(mode="json", exclude_none=True)


@dataclass
class CommandExecutionLog:
    """Execution record for one remediation command."""
    command: str
    stdout: str = ""
    stderr: str = ""
    exit_code: int = 0
    error: Optional[str] = None

    def is_success(self) -> bool:
        return self.exit_code == 0 and self.error is None

    def to_dict(self) -> dict:
        return {
            'command': self.command,
            'stdout': self.stdout,
            'stderr': self.stderr,
            'exit_code': self.exit_code,
            'error': self.error,
        }
