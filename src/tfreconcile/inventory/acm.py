"""ACM certificate verifiers."""

from tfreconcile.engine.models import VerificationOutcome
from tfreconcile.inventory.base import AwsVerifier, declared_or
from tfreconcile.state.models import AttributeView


class CertificateVerifier(AwsVerifier):
    service = 'acm'
    not_found_codes = frozenset({'ResourceNotFoundException'})

    def lookup(self, attributes: AttributeView) -> VerificationOutcome:
        certificate_arn = attributes.require('arn')
        response = self.call(self.client.describe_certificate, CertificateArn=certificate_arn)
        return VerificationOutcome.found(response['Certificate']['CertificateArn'])


class CertificateValidationVerifier(AwsVerifier):
    """aws_acm_certificate_validation: the certificate exists and is ISSUED."""

    service = 'acm'
    not_found_codes = frozenset({'ResourceNotFoundException'})

    def lookup(self, attributes: AttributeView) -> VerificationOutcome:
        certificate_arn = attributes.require('certificate_arn')
        response = self.call(self.client.describe_certificate, CertificateArn=certificate_arn)
        certificate = response['Certificate']
        if certificate.get('Status') != 'ISSUED':
            return VerificationOutcome.not_found()
        # Terraform records a timestamp as this kind's ID
        return VerificationOutcome.found(declared_or(attributes, certificate['CertificateArn']))
