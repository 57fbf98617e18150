"""Shared infrastructure: logging, errors, AWS clients and retries."""

from tfreconcile.utils.aws_client import AWSClientManager
from tfreconcile.utils.retry import RetryStrategy, with_retry
from tfreconcile.utils.errors import (
    ErrorCategory,
    ErrorSeverity,
    ErrorKind,
    ErrorContext,
    DecodeReason,
    ReconcileError,
    ConfigurationError,
    DecodeError,
    StateSourceError,
    VerificationError,
    MissingIdentifyingAttribute,
    BackupWriteError,
    CommandExecutionError,
    ErrorHandler,
    error_handler
)
from tfreconcile.utils.logging import get_logger, setup_logging

__all__ = [
    'AWSClientManager',
    'RetryStrategy',
    'with_retry',
    'ErrorCategory',
    'ErrorSeverity',
    'ErrorKind',
    'ErrorContext',
    'DecodeReason',
    'ReconcileError',
    'ConfigurationError',
    'DecodeError',
    'StateSourceError',
    'VerificationError',
    'MissingIdentifyingAttribute',
    'BackupWriteError',
    'CommandExecutionError',
    'ErrorHandler',
    'error_handler',
    'get_logger',
    'setup_logging',
]
