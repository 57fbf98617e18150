"""ECS cluster, service and task definition verifiers."""

from tfreconcile.engine.models import VerificationOutcome
from tfreconcile.inventory.base import AwsVerifier
from tfreconcile.state.models import AttributeView

INACTIVE = 'INACTIVE'


class ClusterVerifier(AwsVerifier):
    """aws_ecs_cluster. Data sources carry cluster_name instead of name."""

    service = 'ecs'
    not_found_codes = frozenset({'ClusterNotFoundException'})

    def lookup(self, attributes: AttributeView) -> VerificationOutcome:
        cluster_name = attributes.get_text('name') or attributes.require('cluster_name')
        response = self.call(self.client.describe_clusters, clusters=[cluster_name])
        for cluster in response.get('clusters', []):
            if cluster_name in (cluster.get('clusterName'), cluster.get('clusterArn')):
                if cluster.get('status') == INACTIVE:
                    return VerificationOutcome.not_found()
                return VerificationOutcome.found(cluster['clusterArn'])
        return VerificationOutcome.not_found()


class ServiceVerifier(AwsVerifier):
    service = 'ecs'
    not_found_codes = frozenset({'ClusterNotFoundException', 'ServiceNotFoundException'})

    def lookup(self, attributes: AttributeView) -> VerificationOutcome:
        cluster, service_name = attributes.require('cluster', 'name')
        response = self.call(self.client.describe_services, cluster=cluster, services=[service_name])
        for service in response.get('services', []):
            if service.get('serviceName') == service_name and service.get('status') != INACTIVE:
                return VerificationOutcome.found(service['serviceArn'])
        return VerificationOutcome.not_found()


class TaskDefinitionVerifier(AwsVerifier):
    """aws_ecs_task_definition. Deregistered revisions count as gone.

    Terraform's ID for this kind is the family name.
    """

    service = 'ecs'

    def lookup(self, attributes: AttributeView) -> VerificationOutcome:
        task_definition_arn = attributes.require('arn')
        response = self.call(self.client.describe_task_definition, taskDefinition=task_definition_arn)
        task_definition = response['taskDefinition']
        if task_definition.get('status') == INACTIVE:
            return VerificationOutcome.not_found()
        return VerificationOutcome.found(task_definition['family'])
