"""Total decision table mapping verification outcomes to categories."""

import shlex
from typing import FrozenSet, Optional

from tfreconcile.engine.models import (
    Category,
    ClassifiedResult,
    FastPathDecision,
    VerificationOutcome,
)
from tfreconcile.state.models import WorkItem

# Kinds that never exist remotely; nothing to check
DEFAULT_LOCAL_KINDS: FrozenSet[str] = frozenset({
    'aws_caller_identity',
    'aws_iam_policy_document',
    'archive_file',
    'local_file',
    'random_password',
    'random_id',
    'random_string',
    'null_resource',
    'terraform_data',
    'time_sleep',
})


def state_rm_command(address: str) -> str:
    return f"terraform state rm {shlex.quote(address)}"


def import_command(address: str, live_id: str) -> str:
    return f"terraform import {shlex.quote(address)} {shlex.quote(live_id)}"


def ids_match(declared_id: str, live_id: str) -> bool:
    """Case-insensitive ID comparison; an empty declared ID makes no claim."""
    if not declared_id:
        return True
    return declared_id.casefold() == live_id.casefold()


def classify(
    item: WorkItem,
    fast_path: FastPathDecision,
    outcome: Optional[VerificationOutcome] = None,
    registered: bool = True,
    local_kinds: FrozenSet[str] = DEFAULT_LOCAL_KINDS
) -> ClassifiedResult:
    """Classify one work item.

    Pure and total: every input combination maps to exactly one category.
    Conditions are checked in order and the first that holds wins.

    Args:
        item: The work item being classified
        fast_path: Region pre-check decision
        outcome: Verifier answer, None when no verifier was called
        registered: Whether a verifier exists for the item's kind
        local_kinds: Kinds that exist only inside Terraform

    Returns:
        ClassifiedResult for the item
    """
    address = item.address
    base = dict(
        address=address,
        resource_type=item.resource_type,
        mode=item.mode,
        declared_id=item.declared_id,
    )

    if fast_path.mismatch:
        return ClassifiedResult(
            **base,
            category=Category.REGION_MISMATCH,
            message=(
                f"{address} (state file claims region '{fast_path.state_region}') "
                f"is not in '{fast_path.target_region}'. "
                "Remove it from state if the resource moved"
            ),
            remediation_command=state_rm_command(address),
        )

    if item.resource_type in local_kinds:
        return ClassifiedResult(
            **base,
            category=Category.INFO,
            message=f"{address} is a local or data-only kind, no AWS check performed",
        )

    if not registered:
        return ClassifiedResult(
            **base,
            category=Category.WARNING,
            message=(
                f"Resource type '{item.resource_type}' is not supported by this checker. "
                "Manual verification needed"
            ),
        )

    if outcome is None:
        # A registered kind with no answer means the verifier never ran
        return ClassifiedResult(
            **base,
            category=Category.ERROR,
            message=f"Failed to verify {address}: no verification outcome",
            error="no verification outcome",
        )

    if outcome.error is not None:
        return ClassifiedResult(
            **base,
            category=Category.ERROR,
            message=f"Failed to verify {address}: {outcome.error.message}",
            live_id=outcome.live_id,
            error=outcome.error.message,
            error_kind=outcome.error.kind,
            warning=outcome.warning,
        )

    if not outcome.exists:
        return ClassifiedResult(
            **base,
            category=Category.DANGEROUS,
            message=f"{address} (ID: {item.declared_id}) is in state but NOT FOUND in AWS",
            remediation_command=state_rm_command(address),
            warning=outcome.warning,
        )

    if ids_match(item.declared_id, outcome.live_id):
        return ClassifiedResult(
            **base,
            category=Category.OK,
            message=f"{address} (ID: {outcome.live_id}) exists in state and AWS",
            live_id=outcome.live_id,
            warning=outcome.warning,
        )

    return ClassifiedResult(
        **base,
        category=Category.POTENTIAL_IMPORT,
        message=(
            f"{address} exists in AWS with ID '{outcome.live_id}'. "
            f"State ID: '{item.declared_id}'"
        ),
        remediation_command=import_command(address, outcome.live_id),
        live_id=outcome.live_id,
        warning=outcome.warning,
    )


def classify_read_failure(item: WorkItem, reason: str) -> ClassifiedResult:
    """ERROR result for an item whose attributes could not be read."""
    return ClassifiedResult(
        address=item.address,
        resource_type=item.resource_type,
        mode=item.mode,
        declared_id=item.declared_id,
        category=Category.ERROR,
        message=f"Failed to read attributes for {item.address}: {reason}",
        error=reason,
    )
