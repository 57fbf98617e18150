"""Auto Scaling group and policy verifiers."""

from tfreconcile.engine.models import VerificationOutcome
from tfreconcile.inventory.base import AwsVerifier, first_match
from tfreconcile.state.models import AttributeView


class AutoScalingGroupVerifier(AwsVerifier):
    service = 'autoscaling'

    def lookup(self, attributes: AttributeView) -> VerificationOutcome:
        name = attributes.require('name')
        response = self.call(self.client.describe_auto_scaling_groups, AutoScalingGroupNames=[name])
        group = first_match(response.get('AutoScalingGroups'), 'AutoScalingGroupName', name)
        if group is None:
            return VerificationOutcome.not_found()
        return VerificationOutcome.found(group['AutoScalingGroupName'])


class AutoScalingPolicyVerifier(AwsVerifier):
    """aws_autoscaling_policy, by group and policy name. Terraform's ID is the name."""

    service = 'autoscaling'

    def lookup(self, attributes: AttributeView) -> VerificationOutcome:
        group_name, policy_name = attributes.require('autoscaling_group_name', 'name')
        response = self.call(
            self.client.describe_policies,
            AutoScalingGroupName=group_name,
            PolicyNames=[policy_name]
        )
        policy = first_match(response.get('ScalingPolicies'), 'PolicyName', policy_name)
        if policy is None:
            return VerificationOutcome.not_found()
        return VerificationOutcome.found(policy['PolicyName'])
