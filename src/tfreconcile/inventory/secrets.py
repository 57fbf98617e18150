"""SSM Parameter Store and Secrets Manager verifiers."""

from tfreconcile.engine.models import VerificationOutcome
from tfreconcile.inventory.base import AwsVerifier, declared_or
from tfreconcile.state.models import AttributeView


class SsmParameterVerifier(AwsVerifier):
    service = 'ssm'
    not_found_codes = frozenset({'ParameterNotFound'})

    def lookup(self, attributes: AttributeView) -> VerificationOutcome:
        name = attributes.require('name')
        response = self.call(self.client.get_parameter, Name=name, WithDecryption=False)
        return VerificationOutcome.found(response['Parameter']['Name'])


class SecretVerifier(AwsVerifier):
    """aws_secretsmanager_secret. Secrets scheduled for deletion count as gone."""

    service = 'secretsmanager'
    not_found_codes = frozenset({'ResourceNotFoundException'})

    def lookup(self, attributes: AttributeView) -> VerificationOutcome:
        secret_id = attributes.require('id')
        response = self.call(self.client.describe_secret, SecretId=secret_id)
        if response.get('DeletedDate'):
            return VerificationOutcome.not_found()
        return VerificationOutcome.found(response['ARN'])


class SecretVersionVerifier(AwsVerifier):
    """aws_secretsmanager_secret_version, checked via the secret's version list.

    The secret value itself is never read.
    """

    service = 'secretsmanager'
    not_found_codes = frozenset({'ResourceNotFoundException'})

    def lookup(self, attributes: AttributeView) -> VerificationOutcome:
        secret_id, version_id = attributes.require('secret_id', 'version_id')
        response = self.call(self.client.describe_secret, SecretId=secret_id)
        if response.get('DeletedDate') or version_id not in response.get('VersionIdsToStages', {}):
            return VerificationOutcome.not_found()
        return VerificationOutcome.found(declared_or(attributes, f"{secret_id}|{version_id}"))
