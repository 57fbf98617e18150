"""Flatten a decoded snapshot into addressable work items."""

import json
from typing import Any, List, Set

from tfreconcile.state.models import (
    DATA_MODE,
    AttributeView,
    InstanceRecord,
    ResourceRecord,
    StateSnapshot,
    WorkItem,
)
from tfreconcile.engine.region import extract_embedded_identifier
from tfreconcile.utils.errors import DecodeError, DecodeReason
from tfreconcile.utils.logging import get_logger

logger = get_logger(__name__)


def render_index_key(index_key: Any) -> str:
    """Render an instance index key as an address suffix.

    Args:
        index_key: count index, for_each key, or None

    Returns:
        '["key"]' for strings, '[n]' for whole numbers, '' for None and a JSON
        rendering for anything else
    """
    if index_key is None:
        return ""
    if isinstance(index_key, str):
        return f'[{json.dumps(index_key, ensure_ascii=False)}]'
    if isinstance(index_key, bool):
        return f"[{json.dumps(index_key)}]"
    if isinstance(index_key, int):
        return f"[{index_key}]"
    if isinstance(index_key, float) and index_key.is_integer():
        return f"[{int(index_key)}]"
    return f"[{json.dumps(index_key, sort_keys=True, default=str)}]"


def resource_address(resource: ResourceRecord, instance: InstanceRecord) -> str:
    """Build the unique address of one resource instance."""
    parts = []
    if resource.module:
        parts.append(resource.module)
    if resource.mode == DATA_MODE:
        parts.append("data")
    parts.append(resource.kind)
    parts.append(resource.name)
    return ".".join(parts) + render_index_key(instance.index_key)


def build_work_item(resource: ResourceRecord, instance: InstanceRecord) -> WorkItem:
    attributes = AttributeView(instance.attribute_document(), resource.kind)
    return WorkItem(
        address=resource_address(resource, instance),
        resource_type=resource.kind,
        mode=resource.mode,
        declared_id=attributes.get_str("id"),
        embedded_identifier=extract_embedded_identifier(attributes),
        attributes=attributes,
    )


def enumerate_work_items(snapshot: StateSnapshot) -> List[WorkItem]:
    """Emit one WorkItem per declared resource instance.

    Args:
        snapshot: Decoded state snapshot

    Returns:
        Work items in document order

    Raises:
        DecodeError: If two instances render to the same address
    """
    items: List[WorkItem] = []
    seen: Set[str] = set()

    for resource, instance in snapshot.iter_instances():
        if instance.deposed:
            logger.debug(
                f"Skipping deposed object {instance.deposed} of "
                f"{resource_address(resource, instance)}"
            )
            continue

        item = build_work_item(resource, instance)
        if item.address in seen:
            raise DecodeError(
                f"duplicate resource instance address {item.address} in state file",
                reason=DecodeReason.MALFORMED,
            )
        seen.add(item.address)
        items.append(item)

    logger.debug(f"Enumerated {len(items)} work items from {len(snapshot.resources)} resources")
    return items
