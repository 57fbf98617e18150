"""Region fast-path filter.

Resources whose embedded ARN names a different region than the one being
checked are classified before any AWS call is made. Describe calls against
the wrong regional endpoint fail with service-specific validation errors, so
catching these up front keeps the ERROR bucket meaningful.
"""

from typing import TYPE_CHECKING

from tfreconcile.engine.models import FastPathDecision

if TYPE_CHECKING:
    from tfreconcile.state.models import AttributeView, WorkItem

# First match wins, even if a later attribute is also present
EMBEDDED_IDENTIFIER_ATTRIBUTES = (
    'arn',
    'load_balancer_arn',
    'target_group_arn',
    'rule_arn',
    'certificate_arn',
    'instance_profile_arn',
    'role_arn',
    'function_arn',
    'distribution_arn',
    'autoscaling_group_arn',
    'policy_arn',
    'alarm_arn',
    'bucket_arn',
    'service_arn',
    'task_definition_arn',
)

# Data sources whose 'name' attribute is itself a region
REGION_NAMED_KINDS = frozenset({'aws_region'})


def extract_embedded_identifier(attributes: 'AttributeView') -> str:
    """Return the first non-empty ARN-like attribute in precedence order."""
    for name in EMBEDDED_IDENTIFIER_ATTRIBUTES:
        value = attributes.get_str(name)
        if value:
            return value
    return ''


def region_from_identifier(identifier: str) -> str:
    """Extract the region segment of partition:service:region:account:resource.

    Returns:
        Region name, or '' for global resources and non-ARN strings
    """
    if not identifier:
        return ''
    parts = identifier.split(':')
    if len(parts) < 4:
        return ''
    return parts[3]


def evaluate_fast_path(item: 'WorkItem', target_region: str) -> FastPathDecision:
    """Decide whether an item can be classified without an AWS call.

    Args:
        item: Work item to inspect
        target_region: Region the run verifies against

    Returns:
        FastPathDecision with mismatch=True when the embedded region is set
        and differs from target_region
    """
    if item.resource_type in REGION_NAMED_KINDS:
        identifier = item.attributes.get_str('name')
        state_region = identifier
    else:
        identifier = item.embedded_identifier
        state_region = region_from_identifier(identifier)

    return FastPathDecision(
        embedded_identifier=identifier,
        state_region=state_region,
        target_region=target_region,
        mismatch=bool(state_region) and state_region != target_region,
    )
