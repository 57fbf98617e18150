"""Reconciliation engine: fast path, dispatch, classification and aggregation."""

from tfreconcile.engine.models import (
    Category,
    CATEGORY_ORDER,
    ClassifiedResult,
    CommandExecutionLog,
    FastPathDecision,
    VerificationOutcome,
)
from tfreconcile.engine.region import (
    EMBEDDED_IDENTIFIER_ATTRIBUTES,
    evaluate_fast_path,
    extract_embedded_identifier,
    region_from_identifier,
)
from tfreconcile.engine.registry import Verifier, VerifierRegistry
from tfreconcile.engine.classifier import DEFAULT_LOCAL_KINDS, classify
from tfreconcile.engine.dispatcher import AtomicCounter, VerificationDispatcher
from tfreconcile.engine.aggregator import AggregatedResults, aggregate

__all__ = [
    'Category',
    'CATEGORY_ORDER',
    'ClassifiedResult',
    'CommandExecutionLog',
    'FastPathDecision',
    'VerificationOutcome',
    'EMBEDDED_IDENTIFIER_ATTRIBUTES',
    'evaluate_fast_path',
    'extract_embedded_identifier',
    'region_from_identifier',
    'Verifier',
    'VerifierRegistry',
    'DEFAULT_LOCAL_KINDS',
    'classify',
    'AtomicCounter',
    'VerificationDispatcher',
    'AggregatedResults',
    'aggregate',
]
