"""Registry mapping resource kinds to inventory verifiers."""

from typing import Dict, List, Optional, Protocol, runtime_checkable

from tfreconcile.engine.models import VerificationOutcome
from tfreconcile.state.models import AttributeView
from tfreconcile.utils.errors import ConfigurationError
from tfreconcile.utils.logging import get_logger

logger = get_logger(__name__)


@runtime_checkable
class Verifier(Protocol):
    """Existence check for one resource kind."""

    def verify(self, attributes: AttributeView) -> VerificationOutcome:
        """Look up the live resource described by attributes.

        Not found is VerificationOutcome.not_found(), never an error.
        """
        ...


class VerifierRegistry:
    """Explicit mapping from resource kind to Verifier, populated at startup."""

    def __init__(self):
        self._verifiers: Dict[str, Verifier] = {}

    def register(self, kind: str, verifier: Verifier, replace: bool = False) -> None:
        """Register a verifier for a resource kind.

        Args:
            kind: Resource kind, e.g. aws_s3_bucket
            verifier: Object implementing verify(attributes)
            replace: Allow replacing an existing registration

        Raises:
            ConfigurationError: If the kind is already registered and replace is False
        """
        if not isinstance(verifier, Verifier):
            raise ConfigurationError(f"Verifier for {kind} does not implement verify()")
        if kind in self._verifiers and not replace:
            raise ConfigurationError(
                f"A verifier is already registered for {kind}",
                suggestions=["Pass replace=True to override the default verifier"]
            )
        self._verifiers[kind] = verifier
        logger.debug(f"Registered verifier {type(verifier).__name__} for {kind}")

    def get(self, kind: str) -> Optional[Verifier]:
        return self._verifiers.get(kind)

    def is_registered(self, kind: str) -> bool:
        return kind in self._verifiers

    def kinds(self) -> List[str]:
        """Registered kinds, sorted."""
        return sorted(self._verifiers)

    def __len__(self) -> int:
        return len(self._verifiers)

    def __contains__(self, kind: str) -> bool:
        return kind in self._verifiers
