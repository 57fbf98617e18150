"""Tests for bounded-concurrency dispatch."""

import threading
import time

import pytest

from conftest import FakeVerifier, echo_found, make_item
from tfreconcile.engine.aggregator import aggregate
from tfreconcile.engine.dispatcher import AtomicCounter, VerificationDispatcher, dispatch_items
from tfreconcile.engine.models import Category, VerificationOutcome
from tfreconcile.engine.registry import VerifierRegistry
from tfreconcile.utils.errors import ConfigurationError, MissingIdentifyingAttribute


def registry_with(**verifiers) -> VerifierRegistry:
    registry = VerifierRegistry()
    for kind, verifier in verifiers.items():
        registry.register(kind, verifier)
    return registry


def mixed_items(count: int):
    """Items spread over every category."""
    items = []
    for i in range(count):
        bucket = i % 6
        if bucket == 0:
            items.append(make_item(f"aws_s3_bucket.ok{i:03d}", attributes={"id": f"ok{i}"}))
        elif bucket == 1:
            items.append(make_item(f"aws_s3_bucket.gone{i:03d}", attributes={"id": f"gone{i}"}))
        elif bucket == 2:
            items.append(make_item(f"aws_s3_bucket.moved{i:03d}", attributes={"id": f"moved{i}"}))
        elif bucket == 3:
            items.append(make_item(
                f"aws_sqs_queue.far{i:03d}",
                resource_type="aws_sqs_queue",
                attributes={"id": f"far{i}"},
                embedded_identifier=f"arn:aws:sqs:eu-west-1:1:far{i}",
            ))
        elif bucket == 4:
            items.append(make_item(f"random_id.r{i:03d}", resource_type="random_id", attributes={"id": f"r{i}"}))
        else:
            items.append(make_item(f"aws_glue_job.j{i:03d}", resource_type="aws_glue_job", attributes={"id": f"j{i}"}))
    return items


def mixed_answer(attributes):
    declared = attributes.get_str("id")
    if declared.startswith("gone"):
        return VerificationOutcome.not_found()
    if declared.startswith("moved"):
        return VerificationOutcome.found(declared + "-live")
    return VerificationOutcome.found(declared)


def test_concurrency_must_be_positive():
    with pytest.raises(ConfigurationError):
        VerificationDispatcher(VerifierRegistry(), "us-west-2", concurrency=0)


def test_region_mismatch_makes_no_provider_call():
    verifier = FakeVerifier(echo_found)
    item = make_item(
        "aws_sqs_queue.q",
        resource_type="aws_sqs_queue",
        embedded_identifier="arn:aws:sqs:eu-west-1:123456789012:q",
    )

    results, mismatches = dispatch_items([item], registry_with(aws_sqs_queue=verifier), "us-west-2")

    assert verifier.call_count == 0
    assert mismatches == 1
    assert results[0].category == Category.REGION_MISMATCH


def test_local_and_unregistered_kinds_make_no_call():
    verifier = FakeVerifier(echo_found)
    items = [
        make_item("random_id.r", resource_type="random_id"),
        make_item("aws_glue_job.j", resource_type="aws_glue_job"),
    ]

    results, _ = dispatch_items(items, registry_with(aws_s3_bucket=verifier), "us-west-2")

    assert verifier.call_count == 0
    categories = {r.address: r.category for r in results}
    assert categories == {"random_id.r": Category.INFO, "aws_glue_job.j": Category.WARNING}


def test_invalid_attributes_are_error_without_call():
    verifier = FakeVerifier(echo_found)
    item = make_item("aws_s3_bucket.bad", attributes=["not", "a", "map"])

    results, _ = dispatch_items([item], registry_with(aws_s3_bucket=verifier), "us-west-2")

    assert verifier.call_count == 0
    assert results[0].category == Category.ERROR


def test_verifier_exceptions_are_contained():
    def explode(attributes):
        raise RuntimeError("kaboom")

    def missing(attributes):
        raise MissingIdentifyingAttribute("aws_s3_bucket", ["bucket"])

    items = [
        make_item("aws_s3_bucket.a"),
        make_item("aws_vpc.b", resource_type="aws_vpc", attributes={"id": "vpc-1"}),
    ]
    registry = registry_with(aws_s3_bucket=FakeVerifier(explode), aws_vpc=FakeVerifier(missing))

    results, _ = dispatch_items(items, registry, "us-west-2", concurrency=2)

    by_address = {r.address: r for r in results}
    assert by_address["aws_s3_bucket.a"].category == Category.ERROR
    assert "kaboom" in by_address["aws_s3_bucket.a"].error
    assert by_address["aws_vpc.b"].category == Category.ERROR
    assert "bucket" in by_address["aws_vpc.b"].error


def test_non_outcome_return_is_error():
    verifier = FakeVerifier(lambda attributes: "yes")
    results, _ = dispatch_items([make_item()], registry_with(aws_s3_bucket=verifier), "us-west-2")
    assert results[0].category == Category.ERROR


def test_empty_input():
    results, mismatches = dispatch_items([], VerifierRegistry(), "us-west-2")
    assert results == []
    assert mismatches == 0


def test_output_is_independent_of_concurrency():
    items = mixed_items(200)

    serial_results, serial_mismatches = dispatch_items(
        items, registry_with(aws_s3_bucket=FakeVerifier(mixed_answer)), "us-west-2", concurrency=1
    )
    parallel_results, parallel_mismatches = dispatch_items(
        items, registry_with(aws_s3_bucket=FakeVerifier(mixed_answer)), "us-west-2", concurrency=50
    )

    serial = aggregate(serial_results, serial_mismatches)
    parallel = aggregate(parallel_results, parallel_mismatches)

    assert len(serial_results) == len(parallel_results) == 200
    assert serial.counts() == parallel.counts()
    assert serial.commands == parallel.commands
    for category in Category:
        assert serial.bucket(category) == parallel.bucket(category)
    assert serial_mismatches == parallel_mismatches == serial.counts()["REGION_MISMATCH"]


def test_concurrency_bounds_in_flight_calls():
    in_flight = AtomicCounter()
    done = AtomicCounter()
    peak = []
    lock = threading.Lock()

    def slow(attributes):
        in_flight.increment()
        with lock:
            peak.append(in_flight.value - done.value)
        time.sleep(0.01)
        done.increment()
        return VerificationOutcome.found(attributes.get_str("id"))

    items = [make_item(f"aws_s3_bucket.b{i}", attributes={"id": f"b{i}"}) for i in range(30)]
    results, _ = dispatch_items(items, registry_with(aws_s3_bucket=FakeVerifier(slow)), "us-west-2", concurrency=4)

    assert len(results) == 30
    assert max(peak) <= 4


def test_atomic_counter_under_contention():
    counter = AtomicCounter()

    def bump():
        for _ in range(1000):
            counter.increment()

    threads = [threading.Thread(target=bump) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert counter.value == 8000
