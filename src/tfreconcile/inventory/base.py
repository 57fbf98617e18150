"""Base class for boto3-backed existence checks."""

from abc import ABC, abstractmethod
from typing import Any, Callable, FrozenSet, Optional, TypeVar

from botocore.exceptions import ClientError

from tfreconcile.engine.models import VerificationOutcome
from tfreconcile.state.models import AttributeView
from tfreconcile.utils.errors import (
    ErrorContext,
    ErrorKind,
    VerificationError,
    client_error_code,
    error_handler,
)
from tfreconcile.utils.logging import get_logger
from tfreconcile.utils.retry import RetryStrategy

logger = get_logger(__name__)

T = TypeVar('T')


class AwsVerifier(ABC):
    """Existence check for one resource kind against one AWS service.

    Subclasses name the boto3 service, the error codes that mean "not found",
    and implement lookup(). Not-found codes are matched exactly against the
    botocore error code; error text is never inspected.
    """

    # boto3 service name, e.g. 'ec2'
    service: str = ''

    # ClientError codes meaning the resource does not exist
    not_found_codes: FrozenSet[str] = frozenset()

    def __init__(self, client: Any, retry: Optional[RetryStrategy] = None):
        """Initialize verifier.

        Args:
            client: boto3 client for self.service, created before workers start
            retry: Retry strategy for throttling and transient failures
        """
        self.client = client
        self.retry = retry or RetryStrategy()

    @classmethod
    def from_clients(cls, clients, retry: Optional[RetryStrategy] = None) -> 'AwsVerifier':
        """Build from an AWSClientManager (or anything with get_client)."""
        return cls(clients.get_client(cls.service), retry=retry)

    @property
    def kind_name(self) -> str:
        return type(self).__name__

    def verify(self, attributes: AttributeView) -> VerificationOutcome:
        """Run the lookup and map failures onto the typed outcome contract."""
        try:
            return self.lookup(attributes)
        except ClientError as e:
            kind = self.error_kind(e)
            if kind == ErrorKind.NOT_FOUND:
                return VerificationOutcome.not_found()
            return VerificationOutcome.failed(self._wrap(e, attributes, kind))

    def error_kind(self, error: ClientError) -> ErrorKind:
        """Classify a ClientError for this service."""
        if client_error_code(error) in self.not_found_codes:
            return ErrorKind.NOT_FOUND
        return ErrorKind.OTHER

    def call(self, operation: Callable[..., T], **kwargs) -> T:
        """Invoke a client operation under the retry strategy."""
        return self.retry.execute_with_retry(operation, **kwargs)

    @abstractmethod
    def lookup(self, attributes: AttributeView) -> VerificationOutcome:
        """Describe the live resource identified by attributes.

        Raises:
            ClientError: Propagated to verify() for classification
            MissingIdentifyingAttribute: If identifying attributes are absent
        """
        pass

    def _wrap(self, error: ClientError, attributes: AttributeView, kind: ErrorKind) -> VerificationError:
        wrapped = error_handler.handle_exception(
            error,
            ErrorContext(resource_type=attributes.resource_type, aws_service=self.service, operation='verify')
        )
        return VerificationError(
            wrapped.message,
            kind=kind,
            context=wrapped.context,
            cause=error,
            suggestions=wrapped.suggestions
        )


def first_match(items, key: str, expected: str) -> Optional[dict]:
    """Return the first item whose key equals expected."""
    for item in items or []:
        if item.get(key) == expected:
            return item
    return None


def declared_or(attributes: AttributeView, fallback: str) -> str:
    """Live ID for composite resources that have no identity of their own.

    Once the parts are confirmed to exist, the state's own ID is the live ID.
    """
    return attributes.get_str('id') or fallback
