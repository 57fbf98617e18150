"""Terraform state decoding, enumeration and storage."""

from tfreconcile.state.models import (
    StateSnapshot,
    ResourceRecord,
    InstanceRecord,
    OutputRecord,
    CheckResult,
    AttributeView,
    WorkItem,
)
from tfreconcile.state.decoder import decode_snapshot, read_snapshot
from tfreconcile.state.enumerator import enumerate_work_items, render_index_key

__all__ = [
    'StateSnapshot',
    'ResourceRecord',
    'InstanceRecord',
    'OutputRecord',
    'CheckResult',
    'AttributeView',
    'WorkItem',
    'decode_snapshot',
    'read_snapshot',
    'enumerate_work_items',
    'render_index_key',
]
