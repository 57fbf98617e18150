"""CloudFront verifiers."""

from tfreconcile.engine.models import VerificationOutcome
from tfreconcile.inventory.base import AwsVerifier
from tfreconcile.state.models import AttributeView


class DistributionVerifier(AwsVerifier):
    service = 'cloudfront'
    not_found_codes = frozenset({'NoSuchDistribution'})

    def lookup(self, attributes: AttributeView) -> VerificationOutcome:
        distribution_id = attributes.require('id')
        response = self.call(self.client.get_distribution, Id=distribution_id)
        return VerificationOutcome.found(response['Distribution']['Id'])


class OriginAccessIdentityVerifier(AwsVerifier):
    service = 'cloudfront'
    not_found_codes = frozenset({'NoSuchCloudFrontOriginAccessIdentity'})

    def lookup(self, attributes: AttributeView) -> VerificationOutcome:
        identity_id = attributes.require('id')
        response = self.call(self.client.get_cloud_front_origin_access_identity, Id=identity_id)
        return VerificationOutcome.found(response['CloudFrontOriginAccessIdentity']['Id'])
