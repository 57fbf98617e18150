"""Default verifier registrations."""

from typing import Dict, Optional, Type

from tfreconcile.engine.models import VerificationOutcome
from tfreconcile.engine.registry import VerifierRegistry
from tfreconcile.inventory import (
    acm,
    autoscaling,
    awslambda,
    cloudfront,
    cloudwatch,
    ec2,
    ecs,
    elbv2,
    iam,
    route53,
    s3,
    secrets,
)
from tfreconcile.inventory.base import AwsVerifier
from tfreconcile.state.models import AttributeView
from tfreconcile.utils.logging import get_logger
from tfreconcile.utils.retry import RetryStrategy

logger = get_logger(__name__)

DEFAULT_VERIFIERS: Dict[str, Type[AwsVerifier]] = {
    # S3
    'aws_s3_bucket': s3.S3BucketVerifier,
    'aws_s3_bucket_policy': s3.S3BucketPolicyVerifier,
    'aws_s3_bucket_acl': s3.S3BucketAclVerifier,
    'aws_s3_bucket_ownership_controls': s3.S3BucketOwnershipControlsVerifier,
    'aws_s3_bucket_public_access_block': s3.S3BucketPublicAccessBlockVerifier,
    'aws_s3_bucket_website_configuration': s3.S3BucketWebsiteConfigurationVerifier,
    'aws_s3_bucket_cors_configuration': s3.S3BucketCorsConfigurationVerifier,
    'aws_s3_bucket_notification': s3.S3BucketNotificationVerifier,
    'aws_s3_object': s3.S3ObjectVerifier,

    # EC2 and VPC
    'aws_key_pair': ec2.KeyPairVerifier,
    'aws_security_group': ec2.SecurityGroupVerifier,
    'aws_security_group_rule': ec2.SecurityGroupRuleVerifier,
    'aws_ami': ec2.AmiVerifier,
    'aws_eip': ec2.ElasticIpVerifier,
    'aws_internet_gateway': ec2.InternetGatewayVerifier,
    'aws_nat_gateway': ec2.NatGatewayVerifier,
    'aws_route': ec2.RouteVerifier,
    'aws_route_table': ec2.RouteTableVerifier,
    'aws_route_table_association': ec2.RouteTableAssociationVerifier,
    'aws_subnet': ec2.SubnetVerifier,
    'aws_vpc': ec2.VpcVerifier,
    'aws_instance': ec2.InstanceVerifier,
    'aws_launch_template': ec2.LaunchTemplateVerifier,

    # Load balancing
    'aws_lb': elbv2.LoadBalancerVerifier,
    'aws_lb_listener': elbv2.ListenerVerifier,
    'aws_lb_target_group': elbv2.TargetGroupVerifier,
    'aws_lb_listener_rule': elbv2.ListenerRuleVerifier,
    'aws_lb_listener_certificate': elbv2.ListenerCertificateVerifier,

    # DNS and certificates
    'aws_route53_zone': route53.HostedZoneVerifier,
    'aws_route53_record': route53.RecordVerifier,
    'aws_acm_certificate': acm.CertificateVerifier,
    'aws_acm_certificate_validation': acm.CertificateValidationVerifier,

    # Monitoring
    'aws_cloudwatch_log_group': cloudwatch.LogGroupVerifier,
    'aws_cloudwatch_metric_alarm': cloudwatch.MetricAlarmVerifier,

    # Configuration and secrets
    'aws_ssm_parameter': secrets.SsmParameterVerifier,
    'aws_secretsmanager_secret': secrets.SecretVerifier,
    'aws_secretsmanager_secret_version': secrets.SecretVersionVerifier,

    # Containers
    'aws_ecs_cluster': ecs.ClusterVerifier,
    'aws_ecs_service': ecs.ServiceVerifier,
    'aws_ecs_task_definition': ecs.TaskDefinitionVerifier,

    # IAM
    'aws_iam_instance_profile': iam.InstanceProfileVerifier,
    'aws_iam_role': iam.RoleVerifier,
    'aws_iam_role_policy': iam.RolePolicyVerifier,

    # Compute
    'aws_lambda_function': awslambda.FunctionVerifier,
    'aws_lambda_permission': awslambda.PermissionVerifier,
    'aws_autoscaling_group': autoscaling.AutoScalingGroupVerifier,
    'aws_autoscaling_policy': autoscaling.AutoScalingPolicyVerifier,

    # CDN
    'aws_cloudfront_distribution': cloudfront.DistributionVerifier,
    'aws_cloudfront_origin_access_identity': cloudfront.OriginAccessIdentityVerifier,
}


class RegionDataSourceVerifier:
    """aws_region data source.

    The region pre-check already compared the name with the target region, so
    reaching this verifier means it matched. No AWS call is needed.
    """

    def verify(self, attributes: AttributeView) -> VerificationOutcome:
        region = attributes.require('name')
        return VerificationOutcome.found(region)


def required_services(kinds=None):
    """boto3 service names needed by the given kinds (default: all)."""
    kinds = DEFAULT_VERIFIERS if kinds is None else kinds
    return sorted({DEFAULT_VERIFIERS[kind].service for kind in kinds if kind in DEFAULT_VERIFIERS})


def build_default_registry(
    clients,
    retry: Optional[RetryStrategy] = None,
    kinds=None
) -> VerifierRegistry:
    """Create clients up front and register every default verifier.

    Clients are built here, on the calling thread, before any worker starts.

    Args:
        clients: AWSClientManager (or anything with get_client/prepare)
        retry: Retry strategy shared by all verifiers
        kinds: Restrict registration to these kinds (default: all)

    Returns:
        Populated VerifierRegistry
    """
    retry = retry or RetryStrategy()
    selected = sorted(DEFAULT_VERIFIERS if kinds is None else set(kinds) & set(DEFAULT_VERIFIERS))

    clients.prepare(required_services(selected))

    registry = VerifierRegistry()
    for kind in selected:
        registry.register(kind, DEFAULT_VERIFIERS[kind].from_clients(clients, retry=retry))

    if kinds is None or 'aws_region' in kinds:
        registry.register('aws_region', RegionDataSourceVerifier())

    logger.debug(f"Registered {len(registry)} verifiers")
    return registry
