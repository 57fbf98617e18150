"""IAM verifiers. IAM is global, so the target region does not matter here."""

from tfreconcile.engine.models import VerificationOutcome
from tfreconcile.inventory.base import AwsVerifier, declared_or
from tfreconcile.state.models import AttributeView

NO_SUCH_ENTITY = frozenset({'NoSuchEntity'})


class InstanceProfileVerifier(AwsVerifier):
    service = 'iam'
    not_found_codes = NO_SUCH_ENTITY

    def lookup(self, attributes: AttributeView) -> VerificationOutcome:
        name = attributes.require('name')
        response = self.call(self.client.get_instance_profile, InstanceProfileName=name)
        return VerificationOutcome.found(response['InstanceProfile']['InstanceProfileName'])


class RoleVerifier(AwsVerifier):
    service = 'iam'
    not_found_codes = NO_SUCH_ENTITY

    def lookup(self, attributes: AttributeView) -> VerificationOutcome:
        name = attributes.require('name')
        response = self.call(self.client.get_role, RoleName=name)
        return VerificationOutcome.found(response['Role']['RoleName'])


class RolePolicyVerifier(AwsVerifier):
    """aws_iam_role_policy, an inline policy identified as role:policy."""

    service = 'iam'
    not_found_codes = NO_SUCH_ENTITY

    def lookup(self, attributes: AttributeView) -> VerificationOutcome:
        role_name, policy_name = attributes.require('role', 'name')
        self.call(self.client.get_role_policy, RoleName=role_name, PolicyName=policy_name)
        return VerificationOutcome.found(declared_or(attributes, f"{role_name}:{policy_name}"))
