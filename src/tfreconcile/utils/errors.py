"""Exception hierarchy and AWS error translation for reconciliation runs.

Every failure the tool reports is a ReconcileError. Where it surfaces
decides how bad it is:

* DecodeError, StateSourceError and ConfigurationError abort the run.
* VerificationError is recorded against one state item and the run goes on.
* BackupWriteError is collected as a degraded-integrity warning.
* CommandExecutionError is recorded in the command log; later commands still run.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    EndpointConnectionError,
    NoCredentialsError,
    PartialCredentialsError,
)
from tfreconcile.utils.logging import get_logger

logger = get_logger(__name__)


class ErrorCategory(Enum):
    """Where an error came from."""
    CONFIGURATION = "configuration"
    DECODE = "decode"
    STATE_SOURCE = "state_source"
    VERIFICATION = "verification"
    BACKUP = "backup"
    COMMAND = "command"
    CREDENTIAL = "credential"
    PERMISSION = "permission"
    THROTTLING = "throttling"
    NETWORK = "network"
    AWS = "aws"
    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    CRITICAL = "critical"  # aborts the run
    ERROR = "error"
    WARNING = "warning"


class ErrorKind(Enum):
    """Classification an inventory provider gives its own failures."""
    NOT_FOUND = "not_found"
    OTHER = "other"


class DecodeReason(Enum):
    """Why a state snapshot could not be decoded."""
    EMPTY_STATE = "empty_state"
    LEGACY_BINARY_FORMAT = "legacy_binary_format"
    UNSUPPORTED_VERSION = "unsupported_version"
    MALFORMED = "malformed"


@dataclass
class ErrorContext:
    """Where in the run an error happened."""
    address: Optional[str] = None
    resource_type: Optional[str] = None
    operation: Optional[str] = None
    aws_service: Optional[str] = None
    error_code: Optional[str] = None
    request_id: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def describe(self) -> str:
        parts = []
        if self.address:
            parts.append(f"resource={self.address}")
        elif self.resource_type:
            parts.append(f"type={self.resource_type}")
        if self.aws_service:
            parts.append(f"service={self.aws_service}")
        if self.operation:
            parts.append(f"operation={self.operation}")
        if self.error_code:
            parts.append(f"code={self.error_code}")
        return " ".join(parts)


class ReconcileError(Exception):
    """Base exception for reconciliation errors.

    Args:
        message: Human-readable error message
        category: Where the error came from
        severity: How the run reacts to it
        context: Resource and AWS call the error relates to
        cause: Underlying exception, if any
        suggestions: Hints shown to the operator
    """

    category = ErrorCategory.UNKNOWN
    severity = ErrorSeverity.ERROR

    def __init__(
        self,
        message: str,
        category: Optional[ErrorCategory] = None,
        severity: Optional[ErrorSeverity] = None,
        context: Optional[ErrorContext] = None,
        cause: Optional[BaseException] = None,
        suggestions: Optional[List[str]] = None
    ):
        super().__init__(message)
        self.message = message
        if category is not None:
            self.category = category
        if severity is not None:
            self.severity = severity
        self.context = context or ErrorContext()
        self.cause = cause
        self.suggestions = list(suggestions or [])

    def summary(self) -> str:
        """Multi-line description for the console log."""
        lines = [self.message]
        where = self.context.describe()
        if where:
            lines.append(f"  ({where})")
        for hint in self.suggestions:
            lines.append(f"  hint: {hint}")
        return "\n".join(lines)

    def log_fields(self) -> Dict[str, Any]:
        """Structured fields for the JSON log file."""
        fields = {
            'category': self.category.value,
            'error_type': type(self).__name__,
        }
        if self.context.address:
            fields['address'] = self.context.address
        if self.context.resource_type:
            fields['resource_type'] = self.context.resource_type
        if self.context.operation:
            fields['operation'] = self.context.operation
        return fields


class ConfigurationError(ReconcileError):
    """Invalid settings, config file or verifier registration."""
    category = ErrorCategory.CONFIGURATION
    severity = ErrorSeverity.CRITICAL


class DecodeError(ReconcileError):
    """The state snapshot cannot be decoded."""
    category = ErrorCategory.DECODE
    severity = ErrorSeverity.CRITICAL

    def __init__(self, message: str, reason: DecodeReason, **kwargs):
        super().__init__(message, **kwargs)
        self.reason = reason


class StateSourceError(ReconcileError):
    """The state file could not be read, downloaded or uploaded."""
    category = ErrorCategory.STATE_SOURCE
    severity = ErrorSeverity.CRITICAL


class VerificationError(ReconcileError):
    """A single existence check failed."""
    category = ErrorCategory.VERIFICATION

    def __init__(self, message: str, kind: ErrorKind = ErrorKind.OTHER, **kwargs):
        super().__init__(message, **kwargs)
        self.kind = kind


class MissingIdentifyingAttribute(VerificationError):
    """The attributes a verifier needs are absent from the state."""

    def __init__(self, resource_type: str, attribute_names: List[str], **kwargs):
        names = "', '".join(attribute_names)
        super().__init__(f"could not find '{names}' attribute for {resource_type}", **kwargs)
        self.resource_type = resource_type
        self.attribute_names = list(attribute_names)


class BackupWriteError(ReconcileError):
    """A backup, report or mirror artifact could not be written."""
    category = ErrorCategory.BACKUP
    severity = ErrorSeverity.WARNING


class CommandExecutionError(ReconcileError):
    """A remediation command failed or could not be started."""
    category = ErrorCategory.COMMAND

    def __init__(self, message: str, exit_code: int = 1, **kwargs):
        super().__init__(message, **kwargs)
        self.exit_code = exit_code


def client_error_code(error: ClientError) -> str:
    """Return the AWS error code carried by a ClientError."""
    return error.response.get('Error', {}).get('Code', 'Unknown')


def client_error_message(error: ClientError) -> str:
    """Return the AWS error message carried by a ClientError."""
    return error.response.get('Error', {}).get('Message', str(error))


_PERMISSION_HINTS = (
    "The checking identity needs read-only describe/list/get access",
    "Service control policies can deny reads even when IAM allows them",
)
_THROTTLING_HINTS = ("Lower --concurrency and run again",)
_CREDENTIAL_HINTS = ("Check --profile or the AWS_* environment variables",)


class ErrorHandler:
    """Turns botocore and unexpected exceptions into ReconcileError instances."""

    # code -> (category, label, hints)
    AWS_ERROR_CODES: Dict[str, Tuple[ErrorCategory, str, Tuple[str, ...]]] = {
        'InvalidClientTokenId': (ErrorCategory.CREDENTIAL, "AWS credentials were rejected", _CREDENTIAL_HINTS),
        'SignatureDoesNotMatch': (ErrorCategory.CREDENTIAL, "AWS request signature was rejected", _CREDENTIAL_HINTS),
        'ExpiredToken': (ErrorCategory.CREDENTIAL, "AWS session token has expired", _CREDENTIAL_HINTS),
        'AccessDenied': (ErrorCategory.PERMISSION, "Access denied", _PERMISSION_HINTS),
        'AccessDeniedException': (ErrorCategory.PERMISSION, "Access denied", _PERMISSION_HINTS),
        'UnauthorizedOperation': (ErrorCategory.PERMISSION, "Operation not authorized", _PERMISSION_HINTS),
        'Throttling': (ErrorCategory.THROTTLING, "AWS API rate limit exceeded", _THROTTLING_HINTS),
        'ThrottlingException': (ErrorCategory.THROTTLING, "AWS API rate limit exceeded", _THROTTLING_HINTS),
        'TooManyRequestsException': (ErrorCategory.THROTTLING, "AWS API rate limit exceeded", _THROTTLING_HINTS),
        'RequestLimitExceeded': (ErrorCategory.THROTTLING, "AWS API rate limit exceeded", _THROTTLING_HINTS),
        'ValidationError': (
            ErrorCategory.VERIFICATION, "AWS rejected the identifier from state",
            ("The identifier may belong to another region or account",),
        ),
        'InvalidParameterValue': (
            ErrorCategory.VERIFICATION, "AWS rejected the identifier from state",
            ("The identifier may belong to another region or account",),
        ),
    }

    def handle_exception(
        self,
        error: BaseException,
        context: Optional[ErrorContext] = None
    ) -> ReconcileError:
        """Translate an exception into a ReconcileError.

        Args:
            error: The exception to translate
            context: Where the error happened

        Returns:
            The error itself when it already is a ReconcileError
        """
        if isinstance(error, ReconcileError):
            return error

        context = context or ErrorContext()

        if isinstance(error, ClientError):
            return self._from_client_error(error, context)

        if isinstance(error, (NoCredentialsError, PartialCredentialsError)):
            return ReconcileError(
                "No usable AWS credentials found",
                category=ErrorCategory.CREDENTIAL,
                context=context,
                cause=error,
                suggestions=list(_CREDENTIAL_HINTS)
            )

        if isinstance(error, (EndpointConnectionError, ConnectionError, TimeoutError)):
            return ReconcileError(
                f"Could not reach AWS: {error}",
                category=ErrorCategory.NETWORK,
                context=context,
                cause=error
            )

        if isinstance(error, BotoCoreError):
            return ReconcileError(f"AWS SDK error: {error}", category=ErrorCategory.AWS, context=context, cause=error)

        return ReconcileError(f"{type(error).__name__}: {error}", context=context, cause=error)

    def _from_client_error(self, error: ClientError, context: ErrorContext) -> ReconcileError:
        code = client_error_code(error)
        aws_message = client_error_message(error)
        context.error_code = code
        context.request_id = error.response.get('ResponseMetadata', {}).get('RequestId')
        context.extra.setdefault('aws_operation', error.operation_name)

        known = self.AWS_ERROR_CODES.get(code)
        if known is None:
            return ReconcileError(
                f"AWS error {code}: {aws_message}",
                category=ErrorCategory.AWS,
                context=context,
                cause=error
            )

        category, label, hints = known
        return ReconcileError(
            f"{label} ({code}): {aws_message}",
            category=category,
            context=context,
            cause=error,
            suggestions=list(hints)
        )

    def log_error(self, error: ReconcileError) -> None:
        """Log at the level matching the error's severity."""
        level = 'warning' if error.severity == ErrorSeverity.WARNING else 'error'
        getattr(logger, level)(error.summary(), extra=error.log_fields())


error_handler = ErrorHandler()
