"""Elastic Load Balancing v2 verifiers."""

from tfreconcile.engine.models import VerificationOutcome
from tfreconcile.inventory.base import AwsVerifier, declared_or
from tfreconcile.state.models import AttributeView


class LoadBalancerVerifier(AwsVerifier):
    service = 'elbv2'
    not_found_codes = frozenset({'LoadBalancerNotFound'})

    def lookup(self, attributes: AttributeView) -> VerificationOutcome:
        ids = attributes.require_any('arn', 'name')
        if ids['arn']:
            response = self.call(self.client.describe_load_balancers, LoadBalancerArns=[ids['arn']])
        else:
            response = self.call(self.client.describe_load_balancers, Names=[ids['name']])
        balancers = response.get('LoadBalancers', [])
        if not balancers:
            return VerificationOutcome.not_found()
        return VerificationOutcome.found(balancers[0]['LoadBalancerArn'])


class ListenerVerifier(AwsVerifier):
    """aws_lb_listener, by ARN, else the first listener of its load balancer."""

    service = 'elbv2'
    not_found_codes = frozenset({'ListenerNotFound', 'LoadBalancerNotFound'})

    def lookup(self, attributes: AttributeView) -> VerificationOutcome:
        ids = attributes.require_any('arn', 'load_balancer_arn')
        if ids['arn']:
            response = self.call(self.client.describe_listeners, ListenerArns=[ids['arn']])
        else:
            response = self.call(self.client.describe_listeners, LoadBalancerArn=ids['load_balancer_arn'])
        listeners = response.get('Listeners', [])
        if not listeners:
            return VerificationOutcome.not_found()
        return VerificationOutcome.found(listeners[0]['ListenerArn'])


class TargetGroupVerifier(AwsVerifier):
    service = 'elbv2'
    not_found_codes = frozenset({'TargetGroupNotFound'})

    def lookup(self, attributes: AttributeView) -> VerificationOutcome:
        ids = attributes.require_any('arn', 'name')
        if ids['arn']:
            response = self.call(self.client.describe_target_groups, TargetGroupArns=[ids['arn']])
        else:
            response = self.call(self.client.describe_target_groups, Names=[ids['name']])
        groups = response.get('TargetGroups', [])
        if not groups:
            return VerificationOutcome.not_found()
        return VerificationOutcome.found(groups[0]['TargetGroupArn'])


class ListenerRuleVerifier(AwsVerifier):
    service = 'elbv2'
    not_found_codes = frozenset({'RuleNotFound', 'ListenerNotFound'})

    def lookup(self, attributes: AttributeView) -> VerificationOutcome:
        ids = attributes.require_any('arn', 'listener_arn')
        if ids['arn']:
            response = self.call(self.client.describe_rules, RuleArns=[ids['arn']])
        else:
            response = self.call(self.client.describe_rules, ListenerArn=ids['listener_arn'])
        rules = response.get('Rules', [])
        if not rules:
            return VerificationOutcome.not_found()
        return VerificationOutcome.found(rules[0]['RuleArn'])


class ListenerCertificateVerifier(AwsVerifier):
    """aws_lb_listener_certificate: the certificate is attached to the listener."""

    service = 'elbv2'
    not_found_codes = frozenset({'ListenerNotFound'})

    def lookup(self, attributes: AttributeView) -> VerificationOutcome:
        listener_arn, certificate_arn = attributes.require('listener_arn', 'certificate_arn')
        response = self.call(self.client.describe_listener_certificates, ListenerArn=listener_arn)
        for certificate in response.get('Certificates', []):
            if certificate.get('CertificateArn') == certificate_arn:
                return VerificationOutcome.found(
                    declared_or(attributes, f"{listener_arn}_{certificate_arn}")
                )
        return VerificationOutcome.not_found()
