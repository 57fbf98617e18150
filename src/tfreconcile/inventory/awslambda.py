"""Lambda function and permission verifiers."""

import json

from tfreconcile.engine.models import VerificationOutcome
from tfreconcile.inventory.base import AwsVerifier
from tfreconcile.state.models import AttributeView


class FunctionVerifier(AwsVerifier):
    service = 'lambda'
    not_found_codes = frozenset({'ResourceNotFoundException'})

    def lookup(self, attributes: AttributeView) -> VerificationOutcome:
        function_name = attributes.require('function_name')
        response = self.call(self.client.get_function, FunctionName=function_name)
        return VerificationOutcome.found(response['Configuration']['FunctionName'])


class PermissionVerifier(AwsVerifier):
    """aws_lambda_permission: a statement with the given Sid in the resource policy.

    A function without any resource policy also answers ResourceNotFoundException.
    """

    service = 'lambda'
    not_found_codes = frozenset({'ResourceNotFoundException'})

    def lookup(self, attributes: AttributeView) -> VerificationOutcome:
        function_name, statement_id = attributes.require('function_name', 'statement_id')
        kwargs = {'FunctionName': function_name}
        qualifier = attributes.get_str('qualifier')
        if qualifier:
            kwargs['Qualifier'] = qualifier

        response = self.call(self.client.get_policy, **kwargs)
        policy = json.loads(response.get('Policy') or '{}')
        for statement in policy.get('Statement', []):
            if statement.get('Sid') == statement_id:
                return VerificationOutcome.found(statement_id)
        return VerificationOutcome.not_found()
