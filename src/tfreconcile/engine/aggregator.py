"""Deterministic bucketing and ordering of classified results."""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from tfreconcile.engine.models import (
    ACTIONABLE_CATEGORIES,
    CATEGORY_ORDER,
    Category,
    ClassifiedResult,
    CommandExecutionLog,
)


@dataclass
class AggregatedResults:
    """Results grouped by category, each bucket sorted by address."""

    buckets: Dict[Category, List[ClassifiedResult]] = field(
        default_factory=lambda: {category: [] for category in CATEGORY_ORDER}
    )
    commands: List[str] = field(default_factory=list)
    region_mismatch_count: int = 0
    command_logs: List[CommandExecutionLog] = field(default_factory=list)

    @property
    def total(self) -> int:
        return sum(len(bucket) for bucket in self.buckets.values())

    def bucket(self, category: Category) -> List[ClassifiedResult]:
        return self.buckets.get(category, [])

    def counts(self) -> Dict[str, int]:
        """Per-category counts keyed by category name, in report order."""
        return {category.value: len(self.bucket(category)) for category in CATEGORY_ORDER}

    def attach_command_logs(self, logs: Iterable[CommandExecutionLog]) -> None:
        self.command_logs = sorted(logs, key=lambda log: log.command)

    def has_findings(self) -> bool:
        """True when any result calls for operator action."""
        return any(self.bucket(category) for category in ACTIONABLE_CATEGORIES) or bool(
            self.bucket(Category.ERROR)
        )


def aggregate(
    results: Iterable[ClassifiedResult],
    region_mismatch_count: int = 0
) -> AggregatedResults:
    """Bucket results by category and impose a stable order.

    Arrival order from the concurrent phase never affects the output.

    Args:
        results: Classified results in any order
        region_mismatch_count: Value of the shared mismatch counter

    Returns:
        AggregatedResults with address-sorted buckets and sorted commands
    """
    aggregated = AggregatedResults(region_mismatch_count=region_mismatch_count)

    for result in results:
        aggregated.buckets[result.category].append(result)

    for category in CATEGORY_ORDER:
        aggregated.buckets[category].sort(key=lambda r: r.address)

    aggregated.commands = sorted(
        result.remediation_command
        for category in ACTIONABLE_CATEGORIES
        for result in aggregated.buckets[category]
        if result.remediation_command
    )
    return aggregated
