"""Tests for work item enumeration and address rendering."""

import pytest

from conftest import make_instance, make_resource, make_state, state_bytes
from tfreconcile.state.decoder import decode_snapshot
from tfreconcile.state.enumerator import enumerate_work_items, render_index_key
from tfreconcile.utils.errors import DecodeError, DecodeReason


def enumerate_document(document):
    return enumerate_work_items(decode_snapshot(state_bytes(document)))


@pytest.mark.parametrize("index_key,expected", [
    (None, ""),
    (0, "[0]"),
    (12, "[12]"),
    (3.0, "[3]"),
    ("web", '["web"]'),
    ('say "hi"', '["say \\"hi\\""]'),
    ("café", '["café"]'),
    (True, "[true]"),
    (2.5, "[2.5]"),
])
def test_render_index_key(index_key, expected):
    assert render_index_key(index_key) == expected


def test_addresses_cover_module_data_and_index():
    items = enumerate_document(make_state([
        make_resource("aws_s3_bucket", "logs", [make_instance({"id": "logs"})]),
        make_resource("aws_instance", "web", [
            make_instance({"id": "i-1"}, index_key=0),
            make_instance({"id": "i-2"}, index_key=1),
        ], module="module.app"),
        make_resource("aws_iam_role", "svc", [make_instance({"id": "svc"}, index_key="api")]),
        make_resource("aws_region", "current", [make_instance({"name": "us-west-2"})], mode="data"),
        make_resource("aws_caller_identity", "me", [make_instance({})], mode="data", module="module.app"),
    ]))

    assert [item.address for item in items] == [
        "aws_s3_bucket.logs",
        "module.app.aws_instance.web[0]",
        "module.app.aws_instance.web[1]",
        'aws_iam_role.svc["api"]',
        "data.aws_region.current",
        "module.app.data.aws_caller_identity.me",
    ]
    assert items[3].is_data is False
    assert items[4].is_data is True


def test_declared_id_and_embedded_identifier():
    items = enumerate_document(make_state([
        make_resource("aws_iam_role", "svc", [make_instance({
            "id": "svc",
            "arn": "arn:aws:iam::123456789012:role/svc",
        })]),
        make_resource("aws_lb_listener", "http", [make_instance({
            "id": "arn:aws:elasticloadbalancing:us-east-1:123456789012:listener/app/x/1/2",
            "load_balancer_arn": "arn:aws:elasticloadbalancing:us-east-1:123456789012:loadbalancer/app/x/1",
        })]),
        make_resource("aws_vpc", "main", [make_instance({"id": 42})]),
    ]))

    assert items[0].declared_id == "svc"
    assert items[0].embedded_identifier == "arn:aws:iam::123456789012:role/svc"
    assert items[1].embedded_identifier.endswith("loadbalancer/app/x/1")
    # Non-string IDs make no claim
    assert items[2].declared_id == ""


def test_flat_attributes_are_used_when_attributes_missing():
    document = make_state([make_resource("aws_vpc", "main", [
        {"schema_version": 0, "attributes_flat": {"id": "vpc-123", "cidr_block": "10.0.0.0/16"}},
    ])])

    items = enumerate_document(document)

    assert items[0].declared_id == "vpc-123"
    assert items[0].attributes.get_str("cidr_block") == "10.0.0.0/16"


def test_deposed_objects_are_skipped():
    items = enumerate_document(make_state([
        make_resource("aws_instance", "web", [
            make_instance({"id": "i-new"}),
            make_instance({"id": "i-old"}, deposed="00000001"),
        ]),
    ]))

    assert len(items) == 1
    assert items[0].declared_id == "i-new"


def test_duplicate_addresses_are_rejected():
    document = make_state([
        make_resource("aws_vpc", "main", [make_instance({"id": "vpc-1"})]),
        make_resource("aws_vpc", "main", [make_instance({"id": "vpc-2"})]),
    ])

    with pytest.raises(DecodeError) as excinfo:
        enumerate_document(document)

    assert excinfo.value.reason == DecodeReason.MALFORMED
    assert "aws_vpc.main" in excinfo.value.message


def test_invalid_attributes_still_enumerate():
    items = enumerate_document(make_state([
        make_resource("aws_vpc", "odd", [make_instance("garbage")]),
    ]))

    assert items[0].attributes.is_valid is False
    assert items[0].declared_id == ""
