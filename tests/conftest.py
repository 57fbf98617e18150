"""Shared fixtures and builders for tfreconcile tests."""

import json
import threading
from collections import deque
from typing import Any, Callable, Dict, List, Optional

import boto3
import pytest

from tfreconcile.engine.models import VerificationOutcome
from tfreconcile.state.models import AttributeView, WorkItem
from tfreconcile.utils.retry import RetryStrategy


def make_resource(
    kind: str,
    name: str,
    instances: List[Dict[str, Any]],
    mode: str = "managed",
    module: str = "",
) -> Dict[str, Any]:
    resource = {
        "mode": mode,
        "type": kind,
        "name": name,
        "provider": 'provider["registry.terraform.io/hashicorp/aws"]',
        "instances": instances,
    }
    if module:
        resource["module"] = module
    return resource


def make_instance(attributes: Any, index_key: Any = None, **extra: Any) -> Dict[str, Any]:
    instance = {"schema_version": 0, "attributes": attributes}
    if index_key is not None:
        instance["index_key"] = index_key
    instance.update(extra)
    return instance


def make_state(
    resources: Optional[List[Dict[str, Any]]] = None,
    version: Any = 4,
    terraform_version: str = "1.5.7",
    **extra: Any,
) -> Dict[str, Any]:
    document = {
        "version": version,
        "terraform_version": terraform_version,
        "serial": 7,
        "lineage": "3f1c2a6e-0000-4000-8000-000000000000",
        "outputs": {},
        "resources": resources or [],
    }
    document.update(extra)
    return document


def state_bytes(document: Dict[str, Any]) -> bytes:
    return json.dumps(document, indent=2).encode("utf-8")


def make_item(
    address: str = "aws_s3_bucket.logs",
    resource_type: str = "aws_s3_bucket",
    attributes: Any = None,
    mode: str = "managed",
    declared_id: Optional[str] = None,
    embedded_identifier: str = "",
) -> WorkItem:
    attributes = {"id": "logs"} if attributes is None else attributes
    view = AttributeView(attributes, resource_type)
    return WorkItem(
        address=address,
        resource_type=resource_type,
        mode=mode,
        declared_id=view.get_str("id") if declared_id is None else declared_id,
        embedded_identifier=embedded_identifier,
        attributes=view,
    )


class FakeVerifier:
    """Verifier answering from a function of the attribute view, counting calls."""

    def __init__(self, answer: Callable[[AttributeView], VerificationOutcome]):
        self.answer = answer
        self.calls = deque()
        self.threads = set()
        self._lock = threading.Lock()

    def verify(self, attributes: AttributeView) -> VerificationOutcome:
        self.calls.append(attributes.get_str("id"))
        with self._lock:
            self.threads.add(threading.get_ident())
        return self.answer(attributes)

    @property
    def call_count(self) -> int:
        return len(self.calls)


def echo_found(attributes: AttributeView) -> VerificationOutcome:
    return VerificationOutcome.found(attributes.get_str("id"))


@pytest.fixture
def fast_retry() -> RetryStrategy:
    """Retry strategy that never sleeps."""
    return RetryStrategy(max_retries=2, jitter=False, sleep=lambda _: None)


@pytest.fixture
def aws_credentials(monkeypatch):
    """Dummy credentials so boto3 clients can be built offline."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-west-2")
    monkeypatch.delenv("AWS_PROFILE", raising=False)


@pytest.fixture
def make_client(aws_credentials):
    def factory(service: str):
        return boto3.client(service, region_name="us-west-2")
    return factory


@pytest.fixture
def state_file(tmp_path):
    """Write a state document to tmp_path/terraform.tfstate and return the path."""
    def write(document: Dict[str, Any], name: str = "terraform.tfstate"):
        path = tmp_path / name
        path.write_bytes(state_bytes(document))
        return path
    return write
