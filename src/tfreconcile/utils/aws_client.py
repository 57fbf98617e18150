"""Shared boto3 session and per-service clients for verification workers."""

import threading
from typing import Any, Dict, Iterable, Optional

import boto3
from botocore.config import Config
from tfreconcile.utils.logging import get_logger

logger = get_logger(__name__)


class AWSClientManager:
    """Builds one client per AWS service from a single session.

    boto3 sessions are not thread-safe, so every client is created under a
    lock, normally all at once through ``prepare`` before the worker pool
    starts. The clients themselves are shared freely between workers.

    Args:
        profile: Named AWS profile, or the default credential chain
        region: Region every client talks to
        max_pool_connections: HTTP pool per client, at least the worker count
        session: Pre-built session for tests and embedding callers
    """

    def __init__(
        self,
        profile: Optional[str] = None,
        region: Optional[str] = None,
        max_pool_connections: int = 10,
        session: Optional[boto3.Session] = None
    ):
        self.profile = profile
        self.region = region
        self._session = session
        self._clients: Dict[str, Any] = {}
        self._lock = threading.Lock()
        # botocore's own adaptive retries absorb short throttling bursts before
        # RetryStrategy sees the error.
        self._config = Config(
            region_name=region,
            max_pool_connections=max_pool_connections,
            retries={'mode': 'adaptive', 'max_attempts': 4},
            connect_timeout=10,
            read_timeout=30,
            user_agent_extra='tfreconcile',
        )

    @property
    def session(self) -> boto3.Session:
        if self._session is None:
            self._session = boto3.Session(profile_name=self.profile, region_name=self.region)
            logger.info(
                f"Using AWS profile {self.profile or 'default'} in region {self._session.region_name}"
            )
        return self._session

    def get_client(self, service_name: str):
        """Return the shared client for service_name, creating it on first use."""
        with self._lock:
            client = self._clients.get(service_name)
            if client is None:
                client = self.session.client(service_name, config=self._config)
                self._clients[service_name] = client
                logger.debug(f"Created {service_name} client")
        return client

    def prepare(self, service_names: Iterable[str]) -> None:
        """Create clients up front, before any worker thread runs."""
        for service_name in sorted(set(service_names)):
            self.get_client(service_name)
