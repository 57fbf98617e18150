"""Tests for boto3-backed verifiers using botocore's Stubber."""

import pytest
from botocore.stub import Stubber

from tfreconcile.inventory.cloudwatch import LogGroupVerifier
from tfreconcile.inventory.ec2 import AmiVerifier, InstanceVerifier, SecurityGroupVerifier
from tfreconcile.inventory.route53 import RecordVerifier
from tfreconcile.inventory.s3 import S3BucketVerifier, S3ObjectVerifier
from tfreconcile.state.models import AttributeView
from tfreconcile.utils.errors import ErrorKind, MissingIdentifyingAttribute


def view(resource_type, **attributes):
    return AttributeView(attributes, resource_type)


@pytest.fixture
def s3(make_client):
    return make_client("s3")


@pytest.fixture
def ec2(make_client):
    return make_client("ec2")


class TestS3Bucket:
    def test_existing_bucket(self, s3, fast_retry):
        with Stubber(s3) as stubber:
            stubber.add_response("head_bucket", {}, {"Bucket": "logs"})
            outcome = S3BucketVerifier(s3, fast_retry).verify(view("aws_s3_bucket", bucket="logs"))

        assert outcome.exists is True
        assert outcome.live_id == "logs"
        assert outcome.warning is None

    def test_missing_bucket(self, s3, fast_retry):
        with Stubber(s3) as stubber:
            stubber.add_client_error("head_bucket", service_error_code="404", http_status_code=404)
            outcome = S3BucketVerifier(s3, fast_retry).verify(view("aws_s3_bucket", bucket="logs"))

        assert outcome.exists is False
        assert outcome.error is None

    def test_access_denied_counts_as_existing(self, s3, fast_retry):
        with Stubber(s3) as stubber:
            stubber.add_client_error("head_bucket", service_error_code="403", http_status_code=403)
            outcome = S3BucketVerifier(s3, fast_retry).verify(view("aws_s3_bucket", bucket="logs"))

        assert outcome.exists is True
        assert "Access denied" in outcome.warning

    def test_missing_bucket_attribute(self, s3, fast_retry):
        with pytest.raises(MissingIdentifyingAttribute) as excinfo:
            S3BucketVerifier(s3, fast_retry).verify(view("aws_s3_bucket", id="logs"))
        assert excinfo.value.attribute_names == ["bucket"]


def test_s3_object_returns_key(s3, fast_retry):
    with Stubber(s3) as stubber:
        stubber.add_response("head_object", {}, {"Bucket": "site", "Key": "index.html"})
        outcome = S3ObjectVerifier(s3, fast_retry).verify(view("aws_s3_object", bucket="site", key="index.html"))

    assert outcome.live_id == "index.html"


class TestSecurityGroup:
    def test_by_id(self, ec2, fast_retry):
        with Stubber(ec2) as stubber:
            stubber.add_response(
                "describe_security_groups",
                {"SecurityGroups": [{"GroupId": "sg-123", "GroupName": "web"}]},
                {"GroupIds": ["sg-123"]},
            )
            outcome = SecurityGroupVerifier(ec2, fast_retry).verify(
                view("aws_security_group", id="sg-123", name="web")
            )

        assert outcome.live_id == "sg-123"

    def test_by_name_reports_live_id(self, ec2, fast_retry):
        with Stubber(ec2) as stubber:
            stubber.add_response(
                "describe_security_groups",
                {"SecurityGroups": [{"GroupId": "sg-999", "GroupName": "web"}]},
                {"GroupNames": ["web"]},
            )
            outcome = SecurityGroupVerifier(ec2, fast_retry).verify(view("aws_security_group", name="web"))

        assert outcome.live_id == "sg-999"

    def test_not_found_code(self, ec2, fast_retry):
        with Stubber(ec2) as stubber:
            stubber.add_client_error("describe_security_groups", service_error_code="InvalidGroup.NotFound")
            outcome = SecurityGroupVerifier(ec2, fast_retry).verify(view("aws_security_group", id="sg-1"))

        assert outcome.exists is False
        assert outcome.error is None


class TestInstance:
    def test_terminated_instance_is_gone(self, ec2, fast_retry):
        response = {"Reservations": [{"Instances": [{"InstanceId": "i-1", "State": {"Name": "terminated"}}]}]}
        with Stubber(ec2) as stubber:
            stubber.add_response("describe_instances", response, {"InstanceIds": ["i-1"]})
            outcome = InstanceVerifier(ec2, fast_retry).verify(view("aws_instance", id="i-1"))

        assert outcome.exists is False

    def test_running_instance(self, ec2, fast_retry):
        response = {"Reservations": [{"Instances": [{"InstanceId": "i-1", "State": {"Name": "running"}}]}]}
        with Stubber(ec2) as stubber:
            stubber.add_response("describe_instances", response, {"InstanceIds": ["i-1"]})
            outcome = InstanceVerifier(ec2, fast_retry).verify(view("aws_instance", id="i-1"))

        assert outcome.live_id == "i-1"

    def test_not_found_code(self, ec2, fast_retry):
        with Stubber(ec2) as stubber:
            stubber.add_client_error("describe_instances", service_error_code="InvalidInstanceID.NotFound")
            outcome = InstanceVerifier(ec2, fast_retry).verify(view("aws_instance", id="i-1"))

        assert outcome.exists is False
        assert outcome.error is None

    def test_throttling_is_retried(self, ec2, fast_retry):
        response = {"Reservations": [{"Instances": [{"InstanceId": "i-1", "State": {"Name": "running"}}]}]}
        with Stubber(ec2) as stubber:
            stubber.add_client_error("describe_instances", service_error_code="Throttling", http_status_code=400)
            stubber.add_response("describe_instances", response, {"InstanceIds": ["i-1"]})
            outcome = InstanceVerifier(ec2, fast_retry).verify(view("aws_instance", id="i-1"))
            stubber.assert_no_pending_responses()

        assert outcome.exists is True

    def test_unknown_error_is_failure(self, ec2, fast_retry):
        with Stubber(ec2) as stubber:
            stubber.add_client_error(
                "describe_instances",
                service_error_code="UnauthorizedOperation",
                service_message="You are not authorized",
                http_status_code=403,
            )
            outcome = InstanceVerifier(ec2, fast_retry).verify(view("aws_instance", id="i-1"))

        assert outcome.is_error
        assert outcome.exists is False
        assert outcome.error.kind == ErrorKind.OTHER
        assert "You are not authorized" in outcome.error.message


def test_route53_record(make_client, fast_retry):
    client = make_client("route53")
    response = {
        "ResourceRecordSets": [{"Name": "api.example.com.", "Type": "A", "TTL": 60}],
        "IsTruncated": False,
        "MaxItems": "1",
    }
    with Stubber(client) as stubber:
        stubber.add_response(
            "list_resource_record_sets",
            response,
            {
                "HostedZoneId": "Z123",
                "StartRecordName": "api.example.com",
                "StartRecordType": "A",
                "MaxItems": "1",
            },
        )
        outcome = RecordVerifier(client, fast_retry).verify(
            view("aws_route53_record", zone_id="Z123", name="api.example.com", type="A")
        )

    assert outcome.live_id == "Z123_api.example.com_A"


def test_route53_next_record_is_not_a_match(make_client, fast_retry):
    client = make_client("route53")
    response = {
        "ResourceRecordSets": [{"Name": "www.example.com.", "Type": "A", "TTL": 60}],
        "IsTruncated": False,
        "MaxItems": "1",
    }
    with Stubber(client) as stubber:
        stubber.add_response("list_resource_record_sets", response)
        outcome = RecordVerifier(client, fast_retry).verify(
            view("aws_route53_record", zone_id="Z123", name="api.example.com", type="A")
        )

    assert outcome.exists is False


def weighted(identifier, weight=50):
    return {"Name": "www.example.com.", "Type": "A", "SetIdentifier": identifier, "Weight": weight, "TTL": 60}


def test_route53_weighted_record_matches_set_identifier(make_client, fast_retry):
    client = make_client("route53")
    response = {
        "ResourceRecordSets": [weighted("blue"), weighted("green")],
        "IsTruncated": False,
        "MaxItems": "100",
    }
    with Stubber(client) as stubber:
        stubber.add_response(
            "list_resource_record_sets",
            response,
            {
                "HostedZoneId": "Z1",
                "StartRecordName": "www.example.com",
                "StartRecordType": "A",
                "MaxItems": "100",
            },
        )
        outcome = RecordVerifier(client, fast_retry).verify(
            view("aws_route53_record", zone_id="Z1", name="www.example.com", type="A",
                 set_identifier="green", id="Z1_www.example.com_A_green")
        )

    assert outcome.live_id == "Z1_www.example.com_A_green"


def test_route53_weighted_record_on_later_page(make_client, fast_retry):
    client = make_client("route53")
    first_page = {
        "ResourceRecordSets": [weighted("blue")],
        "IsTruncated": True,
        "NextRecordName": "www.example.com.",
        "NextRecordType": "A",
        "NextRecordIdentifier": "green",
        "MaxItems": "100",
    }
    second_page = {
        "ResourceRecordSets": [weighted("green"), {"Name": "zzz.example.com.", "Type": "A", "TTL": 60}],
        "IsTruncated": False,
        "MaxItems": "100",
    }
    with Stubber(client) as stubber:
        stubber.add_response("list_resource_record_sets", first_page)
        stubber.add_response(
            "list_resource_record_sets",
            second_page,
            {
                "HostedZoneId": "Z1",
                "StartRecordName": "www.example.com.",
                "StartRecordType": "A",
                "StartRecordIdentifier": "green",
                "MaxItems": "100",
            },
        )
        outcome = RecordVerifier(client, fast_retry).verify(
            view("aws_route53_record", zone_id="Z1", name="www.example.com", type="A", set_identifier="green")
        )
        stubber.assert_no_pending_responses()

    assert outcome.live_id == "Z1_www.example.com_A_green"


def test_route53_missing_set_identifier_is_not_found(make_client, fast_retry):
    client = make_client("route53")
    response = {
        "ResourceRecordSets": [weighted("blue"), {"Name": "zzz.example.com.", "Type": "A", "TTL": 60}],
        "IsTruncated": False,
        "MaxItems": "100",
    }
    with Stubber(client) as stubber:
        stubber.add_response("list_resource_record_sets", response)
        outcome = RecordVerifier(client, fast_retry).verify(
            view("aws_route53_record", zone_id="Z1", name="www.example.com", type="A", set_identifier="green")
        )

    assert outcome.exists is False
    assert outcome.error is None


def test_log_group_requires_exact_name(make_client, fast_retry):
    client = make_client("logs")
    response = {"logGroups": [{"logGroupName": "/app/web-old"}, {"logGroupName": "/app/web"}]}
    with Stubber(client) as stubber:
        stubber.add_response("describe_log_groups", response, {"logGroupNamePrefix": "/app/web"})
        outcome = LogGroupVerifier(client, fast_retry).verify(view("aws_cloudwatch_log_group", name="/app/web"))

    assert outcome.live_id == "/app/web"


def test_log_group_prefix_only_is_not_found(make_client, fast_retry):
    client = make_client("logs")
    with Stubber(client) as stubber:
        stubber.add_response("describe_log_groups", {"logGroups": [{"logGroupName": "/app/web-old"}]})
        outcome = LogGroupVerifier(client, fast_retry).verify(view("aws_cloudwatch_log_group", name="/app/web"))

    assert outcome.exists is False


def test_third_party_ami_is_found(ec2, fast_retry):
    canonical_image = {"ImageId": "ami-0abc", "OwnerId": "099720109477", "Name": "ubuntu/images/jammy"}
    with Stubber(ec2) as stubber:
        stubber.add_response("describe_images", {"Images": [canonical_image]}, {"ImageIds": ["ami-0abc"]})
        outcome = AmiVerifier(ec2, fast_retry).verify(view("aws_ami", id="ami-0abc", owners=["099720109477"]))

    assert outcome.live_id == "ami-0abc"
