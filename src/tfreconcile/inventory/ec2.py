"""EC2 and VPC networking verifiers."""

from tfreconcile.engine.models import VerificationOutcome
from tfreconcile.inventory.base import AwsVerifier, declared_or, first_match
from tfreconcile.state.models import AttributeView


class KeyPairVerifier(AwsVerifier):
    service = 'ec2'
    not_found_codes = frozenset({'InvalidKeyPair.NotFound'})

    def lookup(self, attributes: AttributeView) -> VerificationOutcome:
        key_name = attributes.require('key_name')
        response = self.call(self.client.describe_key_pairs, KeyNames=[key_name])
        pairs = response.get('KeyPairs', [])
        if not pairs:
            return VerificationOutcome.not_found()
        return VerificationOutcome.found(pairs[0]['KeyName'])


class SecurityGroupVerifier(AwsVerifier):
    """aws_security_group, by ID when present, else by name."""

    service = 'ec2'
    not_found_codes = frozenset({'InvalidGroup.NotFound', 'InvalidGroupId.NotFound'})

    def lookup(self, attributes: AttributeView) -> VerificationOutcome:
        ids = attributes.require_any('id', 'name')
        if ids['id']:
            response = self.call(self.client.describe_security_groups, GroupIds=[ids['id']])
        else:
            response = self.call(self.client.describe_security_groups, GroupNames=[ids['name']])
        groups = response.get('SecurityGroups', [])
        if not groups:
            return VerificationOutcome.not_found()
        return VerificationOutcome.found(groups[0]['GroupId'])


class SecurityGroupRuleVerifier(AwsVerifier):
    """aws_security_group_rule, by its AWS-assigned rule ID."""

    service = 'ec2'
    not_found_codes = frozenset({
        'InvalidSecurityGroupRuleId.NotFound',
        'InvalidSecurityGroupRuleID.NotFound',
    })

    def lookup(self, attributes: AttributeView) -> VerificationOutcome:
        rule_id = attributes.require('security_group_rule_id')
        response = self.call(self.client.describe_security_group_rules, SecurityGroupRuleIds=[rule_id])
        rule = first_match(response.get('SecurityGroupRules'), 'SecurityGroupRuleId', rule_id)
        if rule is None:
            return VerificationOutcome.not_found()
        # Terraform's own ID for this kind is synthetic (sgrule-<hash>)
        return VerificationOutcome.found(declared_or(attributes, rule_id))


class AmiVerifier(AwsVerifier):
    service = 'ec2'
    not_found_codes = frozenset({'InvalidAMIID.NotFound', 'InvalidAMIID.Unavailable'})

    def lookup(self, attributes: AttributeView) -> VerificationOutcome:
        image_id = attributes.require('id')
        # Lookup by ID finds images of any owner, shared and public ones included
        response = self.call(self.client.describe_images, ImageIds=[image_id])
        image = first_match(response.get('Images'), 'ImageId', image_id)
        if image is None:
            return VerificationOutcome.not_found()
        return VerificationOutcome.found(image['ImageId'])


class ElasticIpVerifier(AwsVerifier):
    service = 'ec2'
    not_found_codes = frozenset({'InvalidAllocationID.NotFound'})

    def lookup(self, attributes: AttributeView) -> VerificationOutcome:
        allocation_id = attributes.require('allocation_id')
        response = self.call(self.client.describe_addresses, AllocationIds=[allocation_id])
        address = first_match(response.get('Addresses'), 'AllocationId', allocation_id)
        if address is None:
            return VerificationOutcome.not_found()
        return VerificationOutcome.found(address['AllocationId'])


class InternetGatewayVerifier(AwsVerifier):
    service = 'ec2'
    not_found_codes = frozenset({'InvalidInternetGatewayID.NotFound'})

    def lookup(self, attributes: AttributeView) -> VerificationOutcome:
        igw_id = attributes.require('id')
        response = self.call(self.client.describe_internet_gateways, InternetGatewayIds=[igw_id])
        gateway = first_match(response.get('InternetGateways'), 'InternetGatewayId', igw_id)
        if gateway is None:
            return VerificationOutcome.not_found()
        return VerificationOutcome.found(gateway['InternetGatewayId'])


class NatGatewayVerifier(AwsVerifier):
    """aws_nat_gateway. Deleted gateways stay visible for a while; they count as gone."""

    service = 'ec2'
    not_found_codes = frozenset({'NatGatewayNotFound'})

    def lookup(self, attributes: AttributeView) -> VerificationOutcome:
        nat_id = attributes.require('id')
        response = self.call(self.client.describe_nat_gateways, NatGatewayIds=[nat_id])
        gateway = first_match(response.get('NatGateways'), 'NatGatewayId', nat_id)
        if gateway is None or gateway.get('State') in ('deleting', 'deleted'):
            return VerificationOutcome.not_found()
        return VerificationOutcome.found(gateway['NatGatewayId'])


class RouteTableVerifier(AwsVerifier):
    service = 'ec2'
    not_found_codes = frozenset({'InvalidRouteTableID.NotFound'})

    def lookup(self, attributes: AttributeView) -> VerificationOutcome:
        table_id = attributes.require('id')
        response = self.call(self.client.describe_route_tables, RouteTableIds=[table_id])
        table = first_match(response.get('RouteTables'), 'RouteTableId', table_id)
        if table is None:
            return VerificationOutcome.not_found()
        return VerificationOutcome.found(table['RouteTableId'])


class RouteVerifier(AwsVerifier):
    """aws_route: an active route for the destination in the route table.

    A missing route table is a failure here, not a missing route.
    """

    service = 'ec2'

    def lookup(self, attributes: AttributeView) -> VerificationOutcome:
        table_id = attributes.require('route_table_id')
        destination = attributes.first_str('destination_cidr_block', 'destination_ipv6_cidr_block')
        if not destination:
            attributes.require('destination_cidr_block')

        response = self.call(self.client.describe_route_tables, RouteTableIds=[table_id])
        for table in response.get('RouteTables', []):
            for route in table.get('Routes', []):
                matches = destination in (
                    route.get('DestinationCidrBlock'),
                    route.get('DestinationIpv6CidrBlock'),
                )
                if matches and route.get('State') == 'active':
                    return VerificationOutcome.found(declared_or(attributes, f"{table_id}_{destination}"))
        return VerificationOutcome.not_found()


class RouteTableAssociationVerifier(AwsVerifier):
    service = 'ec2'

    def lookup(self, attributes: AttributeView) -> VerificationOutcome:
        association_id = attributes.require('id')
        response = self.call(
            self.client.describe_route_tables,
            Filters=[{'Name': 'association.route-table-association-id', 'Values': [association_id]}]
        )
        for table in response.get('RouteTables', []):
            association = first_match(table.get('Associations'), 'RouteTableAssociationId', association_id)
            if association is not None:
                return VerificationOutcome.found(association_id)
        return VerificationOutcome.not_found()


class SubnetVerifier(AwsVerifier):
    service = 'ec2'
    not_found_codes = frozenset({'InvalidSubnetID.NotFound'})

    def lookup(self, attributes: AttributeView) -> VerificationOutcome:
        subnet_id = attributes.require('id')
        response = self.call(self.client.describe_subnets, SubnetIds=[subnet_id])
        subnet = first_match(response.get('Subnets'), 'SubnetId', subnet_id)
        if subnet is None:
            return VerificationOutcome.not_found()
        return VerificationOutcome.found(subnet['SubnetId'])


class VpcVerifier(AwsVerifier):
    service = 'ec2'
    not_found_codes = frozenset({'InvalidVpcID.NotFound'})

    def lookup(self, attributes: AttributeView) -> VerificationOutcome:
        vpc_id = attributes.require('id')
        response = self.call(self.client.describe_vpcs, VpcIds=[vpc_id])
        vpc = first_match(response.get('Vpcs'), 'VpcId', vpc_id)
        if vpc is None:
            return VerificationOutcome.not_found()
        return VerificationOutcome.found(vpc['VpcId'])


class InstanceVerifier(AwsVerifier):
    """aws_instance. Terminated instances count as gone."""

    service = 'ec2'
    not_found_codes = frozenset({'InvalidInstanceID.NotFound'})

    def lookup(self, attributes: AttributeView) -> VerificationOutcome:
        instance_id = attributes.require('id')
        response = self.call(self.client.describe_instances, InstanceIds=[instance_id])
        for reservation in response.get('Reservations', []):
            instance = first_match(reservation.get('Instances'), 'InstanceId', instance_id)
            if instance is None:
                continue
            if instance.get('State', {}).get('Name') in ('shutting-down', 'terminated'):
                return VerificationOutcome.not_found()
            return VerificationOutcome.found(instance['InstanceId'])
        return VerificationOutcome.not_found()


class LaunchTemplateVerifier(AwsVerifier):
    service = 'ec2'
    not_found_codes = frozenset({
        'InvalidLaunchTemplateId.NotFound',
        'InvalidLaunchTemplateName.NotFoundException',
    })

    def lookup(self, attributes: AttributeView) -> VerificationOutcome:
        ids = attributes.require_any('id', 'name')
        if ids['id']:
            response = self.call(self.client.describe_launch_templates, LaunchTemplateIds=[ids['id']])
        else:
            response = self.call(self.client.describe_launch_templates, LaunchTemplateNames=[ids['name']])
        templates = response.get('LaunchTemplates', [])
        if not templates:
            return VerificationOutcome.not_found()
        return VerificationOutcome.found(templates[0]['LaunchTemplateId'])
