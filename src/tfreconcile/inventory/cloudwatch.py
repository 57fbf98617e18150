"""CloudWatch Logs and CloudWatch alarm verifiers."""

from tfreconcile.engine.models import VerificationOutcome
from tfreconcile.inventory.base import AwsVerifier, first_match
from tfreconcile.state.models import AttributeView


class LogGroupVerifier(AwsVerifier):
    """aws_cloudwatch_log_group. The prefix search is narrowed to an exact match."""

    service = 'logs'
    not_found_codes = frozenset({'ResourceNotFoundException'})

    def lookup(self, attributes: AttributeView) -> VerificationOutcome:
        name = attributes.require('name')
        paginator = self.client.get_paginator('describe_log_groups')
        for page in self.call(lambda: list(paginator.paginate(logGroupNamePrefix=name))):
            group = first_match(page.get('logGroups'), 'logGroupName', name)
            if group is not None:
                return VerificationOutcome.found(group['logGroupName'])
        return VerificationOutcome.not_found()


class MetricAlarmVerifier(AwsVerifier):
    service = 'cloudwatch'
    not_found_codes = frozenset({'ResourceNotFound'})

    def lookup(self, attributes: AttributeView) -> VerificationOutcome:
        alarm_name = attributes.require('alarm_name')
        response = self.call(self.client.describe_alarms, AlarmNames=[alarm_name], AlarmTypes=['MetricAlarm'])
        alarm = first_match(response.get('MetricAlarms'), 'AlarmName', alarm_name)
        if alarm is None:
            return VerificationOutcome.not_found()
        return VerificationOutcome.found(alarm['AlarmName'])
