"""Bounded-concurrency verification of work items."""

import queue
import time
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from typing import FrozenSet, List, Optional, Sequence

from tfreconcile.engine.classifier import (
    DEFAULT_LOCAL_KINDS,
    classify,
    classify_read_failure,
)
from tfreconcile.engine.models import ClassifiedResult, VerificationOutcome
from tfreconcile.engine.region import evaluate_fast_path
from tfreconcile.engine.registry import VerifierRegistry
from tfreconcile.state.models import WorkItem
from tfreconcile.utils.errors import ConfigurationError, ErrorContext, VerificationError, error_handler
from tfreconcile.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CONCURRENCY = 10


class AtomicCounter:
    """Additive counter shared by worker threads without a lock.

    deque.append is atomic, so increments from concurrent workers are never
    lost. Read the value only after all workers have finished.
    """

    def __init__(self):
        self._ticks = deque()

    def increment(self) -> None:
        self._ticks.append(1)

    @property
    def value(self) -> int:
        return len(self._ticks)


class VerificationDispatcher:
    """Runs the fast path, verifier lookup and classification for every item."""

    def __init__(
        self,
        registry: VerifierRegistry,
        target_region: str,
        concurrency: int = DEFAULT_CONCURRENCY,
        local_kinds: FrozenSet[str] = DEFAULT_LOCAL_KINDS
    ):
        """Initialize dispatcher.

        Args:
            registry: Verifiers by resource kind
            target_region: Region the run verifies against
            concurrency: Worker pool size and result queue bound
            local_kinds: Kinds classified INFO without a check

        Raises:
            ConfigurationError: If concurrency is below 1
        """
        if concurrency < 1:
            raise ConfigurationError(f"concurrency must be at least 1, got {concurrency}")

        self.registry = registry
        self.target_region = target_region
        self.concurrency = concurrency
        self.local_kinds = frozenset(local_kinds)
        self.region_mismatches = AtomicCounter()

    def process_item(self, item: WorkItem) -> ClassifiedResult:
        """Classify a single work item, calling at most one verifier.

        Every failure is contained here and returned as an ERROR result.
        """
        fast_path = evaluate_fast_path(item, self.target_region)
        if fast_path.mismatch:
            self.region_mismatches.increment()
            return classify(item, fast_path, local_kinds=self.local_kinds)

        if item.resource_type in self.local_kinds:
            return classify(item, fast_path, local_kinds=self.local_kinds)

        verifier = self.registry.get(item.resource_type)
        if verifier is None:
            return classify(item, fast_path, registered=False, local_kinds=self.local_kinds)

        if not item.attributes.is_valid:
            return classify_read_failure(item, "attributes are not a JSON object")

        outcome = self._verify(item, verifier)
        return classify(item, fast_path, outcome, local_kinds=self.local_kinds)

    def _verify(self, item: WorkItem, verifier) -> VerificationOutcome:
        start = time.monotonic()
        try:
            outcome = verifier.verify(item.attributes)
        except VerificationError as e:
            outcome = VerificationOutcome.failed(e)
        except Exception as e:
            wrapped = error_handler.handle_exception(
                e, ErrorContext(address=item.address, resource_type=item.resource_type, operation='verify')
            )
            error_handler.log_error(wrapped)
            outcome = VerificationOutcome.failed(VerificationError(wrapped.message, cause=e))

        if not isinstance(outcome, VerificationOutcome):
            outcome = VerificationOutcome.failed(
                VerificationError(f"verifier for {item.resource_type} returned {type(outcome).__name__}")
            )

        logger.debug(
            f"Verified {item.address} in {time.monotonic() - start:.3f}s "
            f"(exists={outcome.exists}, error={outcome.is_error})",
            extra={'address': item.address, 'resource_type': item.resource_type,
                   'duration': round(time.monotonic() - start, 3)}
        )
        return outcome

    def dispatch(self, items: Sequence[WorkItem]) -> List[ClassifiedResult]:
        """Classify all items on a bounded worker pool.

        Results come back in completion order; the aggregator imposes order.
        Returns only after every worker has finished.

        Args:
            items: Work items, fully enumerated up front

        Returns:
            One ClassifiedResult per item
        """
        if not items:
            return []

        results_queue: "queue.Queue[ClassifiedResult]" = queue.Queue(maxsize=self.concurrency)

        def worker(item: WorkItem) -> None:
            try:
                result = self.process_item(item)
            except Exception as e:
                logger.exception(f"Unexpected failure classifying {item.address}")
                result = classify_read_failure(item, f"{type(e).__name__}: {e}")
            results_queue.put(result)

        logger.info(f"Verifying {len(items)} resource instances with concurrency {self.concurrency}")

        results: List[ClassifiedResult] = []
        with ThreadPoolExecutor(max_workers=self.concurrency, thread_name_prefix='verify') as executor:
            for item in items:
                executor.submit(worker, item)
            for _ in range(len(items)):
                results.append(results_queue.get())

        logger.info(
            f"Verification complete: {len(results)} results, "
            f"{self.region_mismatches.value} region mismatches"
        )
        return results


def dispatch_items(
    items: Sequence[WorkItem],
    registry: VerifierRegistry,
    target_region: str,
    concurrency: int = DEFAULT_CONCURRENCY,
    local_kinds: Optional[FrozenSet[str]] = None
):
    """Convenience wrapper returning (results, region_mismatch_count)."""
    dispatcher = VerificationDispatcher(
        registry,
        target_region,
        concurrency=concurrency,
        local_kinds=local_kinds if local_kinds is not None else DEFAULT_LOCAL_KINDS,
    )
    results = dispatcher.dispatch(items)
    return results, dispatcher.region_mismatches.value
