"""Route 53 hosted zone and record verifiers."""

from tfreconcile.engine.models import VerificationOutcome
from tfreconcile.inventory.base import AwsVerifier
from tfreconcile.state.models import AttributeView

HOSTED_ZONE_PREFIX = '/hostedzone/'


def short_zone_id(zone_id: str) -> str:
    """Strip the /hostedzone/ prefix Route 53 puts on zone IDs."""
    if zone_id.startswith(HOSTED_ZONE_PREFIX):
        return zone_id[len(HOSTED_ZONE_PREFIX):]
    return zone_id


def normalize_name(name: str) -> str:
    return name.rstrip('.').lower()


class HostedZoneVerifier(AwsVerifier):
    """aws_route53_zone, by zone ID when present, else by DNS name."""

    service = 'route53'
    not_found_codes = frozenset({'NoSuchHostedZone'})

    def lookup(self, attributes: AttributeView) -> VerificationOutcome:
        ids = attributes.require_any('zone_id', 'name')
        if ids['zone_id']:
            response = self.call(self.client.get_hosted_zone, Id=ids['zone_id'])
            return VerificationOutcome.found(short_zone_id(response['HostedZone']['Id']))

        name = ids['name']
        response = self.call(self.client.list_hosted_zones_by_name, DNSName=name)
        for zone in response.get('HostedZones', []):
            if normalize_name(zone['Name']) == normalize_name(name):
                return VerificationOutcome.found(short_zone_id(zone['Id']))
        return VerificationOutcome.not_found()


class RecordVerifier(AwsVerifier):
    """aws_route53_record, by zone, name, type and set identifier.

    Records with a routing policy (weighted, latency, failover, geo) share a
    name and type and differ by SetIdentifier. Terraform's ID for them carries
    the identifier as a fourth part. A missing hosted zone is a failure for a
    record, not a missing record.
    """

    service = 'route53'

    def lookup(self, attributes: AttributeView) -> VerificationOutcome:
        zone_id, name, record_type = attributes.require('zone_id', 'name', 'type')
        set_identifier = attributes.get_str('set_identifier')

        for record in self._record_sets(zone_id, name, record_type, set_identifier):
            if record.get('SetIdentifier', '') == set_identifier:
                live_id = f"{zone_id}_{name}_{record_type}"
                if set_identifier:
                    live_id = f"{live_id}_{set_identifier}"
                return VerificationOutcome.found(live_id)
        return VerificationOutcome.not_found()

    def _record_sets(self, zone_id: str, name: str, record_type: str, set_identifier: str):
        """Yield the record sets with exactly this name and type.

        A simple record is the only one of its name and type, so one item is
        enough. Routing-policy records are paged until the name or type changes.
        """
        params = {
            'HostedZoneId': zone_id,
            'StartRecordName': name,
            'StartRecordType': record_type,
            'MaxItems': '100' if set_identifier else '1',
        }
        while True:
            response = self.call(self.client.list_resource_record_sets, **params)
            for record in response.get('ResourceRecordSets', []):
                if normalize_name(record['Name']) != normalize_name(name) or record['Type'] != record_type:
                    return
                yield record

            if not set_identifier or not response.get('IsTruncated'):
                return
            next_name = response.get('NextRecordName', '')
            next_type = response.get('NextRecordType', '')
            if normalize_name(next_name) != normalize_name(name) or next_type != record_type:
                return
            params.update(StartRecordName=next_name, StartRecordType=next_type)
            if response.get('NextRecordIdentifier'):
                params['StartRecordIdentifier'] = response['NextRecordIdentifier']
            else:
                params.pop('StartRecordIdentifier', None)
