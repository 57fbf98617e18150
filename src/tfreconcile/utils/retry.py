"""Exponential backoff for transient AWS failures.

Verifiers call through a shared RetryStrategy so that a throttled
describe call is retried instead of being reported as an ERROR item.
Backup mirroring and state transfer use the with_retry decorator.
"""

import random
import time
from functools import wraps
from typing import Callable, Iterator, TypeVar

from botocore.exceptions import ClientError, ConnectionClosedError, EndpointConnectionError, ReadTimeoutError
from tfreconcile.utils.errors import client_error_code, client_error_message
from tfreconcile.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar('T')

TRANSIENT_ERROR_CODES = frozenset({
    'Throttling',
    'ThrottlingException',
    'ThrottledException',
    'RequestThrottled',
    'RequestThrottledException',
    'TooManyRequestsException',
    'RequestLimitExceeded',
    'SlowDown',
    'RequestTimeout',
    'RequestTimeoutException',
    'ServiceUnavailable',
    'InternalError',
    'InternalFailure',
})

TRANSIENT_EXCEPTIONS = (
    EndpointConnectionError,
    ConnectionClosedError,
    ReadTimeoutError,
    ConnectionError,
    TimeoutError,
)


def is_transient(error: BaseException) -> bool:
    """True for throttling, timeouts and dropped connections."""
    if isinstance(error, ClientError):
        return client_error_code(error) in TRANSIENT_ERROR_CODES
    return isinstance(error, TRANSIENT_EXCEPTIONS)


def describe_error(error: BaseException) -> str:
    if isinstance(error, ClientError):
        return f"{client_error_code(error)}: {client_error_message(error)}"
    return f"{type(error).__name__}: {error}"


class RetryStrategy:
    """Retries a call while it fails with a transient error.

    Args:
        max_retries: Retries after the first attempt
        base_delay: Seconds to wait before the first retry
        max_delay: Upper bound for any single wait
        jitter: Add up to 10% random spread so workers do not retry in lockstep
        sleep: Replaceable in tests
    """

    def __init__(
        self,
        max_retries: int = 3,
        base_delay: float = 0.5,
        max_delay: float = 20.0,
        jitter: bool = True,
        sleep: Callable[[float], None] = time.sleep
    ):
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.jitter = jitter
        self.sleep = sleep

    def delays(self) -> Iterator[float]:
        """Yield the wait before each retry, doubling up to max_delay."""
        for attempt in range(self.max_retries):
            delay = min(self.base_delay * (2 ** attempt), self.max_delay)
            if self.jitter:
                delay += random.uniform(0, delay * 0.1)
            yield delay

    def execute_with_retry(self, func: Callable[..., T], *args, **kwargs) -> T:
        """Call func, retrying transient failures.

        Raises:
            The last error once retries are used up, or any non-transient error at once
        """
        delays = self.delays()
        attempt = 1
        while True:
            try:
                return func(*args, **kwargs)
            except Exception as e:
                if not is_transient(e):
                    raise
                delay = next(delays, None)
                if delay is None:
                    logger.warning(f"Giving up after {attempt} attempts: {describe_error(e)}")
                    raise
                logger.info(f"Transient failure on attempt {attempt} ({describe_error(e)}), retrying in {delay:.2f}s")
                self.sleep(delay)
                attempt += 1


def with_retry(max_retries: int = 3, base_delay: float = 0.5, max_delay: float = 20.0):
    """Decorator form of RetryStrategy.

    Example:
        @with_retry(max_retries=3, base_delay=1.0)
        def upload(client, bucket, key, body):
            client.put_object(Bucket=bucket, Key=key, Body=body)
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args, **kwargs) -> T:
            strategy = RetryStrategy(max_retries=max_retries, base_delay=base_delay, max_delay=max_delay)
            return strategy.execute_with_retry(func, *args, **kwargs)
        return wrapper
    return decorator
