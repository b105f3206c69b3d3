"""
Error policies for read endpoints.

A policy decides what happens when an operation raises:

    StrictPolicy      errors propagate to the HTTP error handlers
    BestEffortPolicy  errors are logged and a zeroed fallback is returned

Write operations always run under StrictPolicy. The policy is chosen
per endpoint in the router, never inside a use case.
"""

import logging
from typing import Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StrictPolicy:
    """Run the operation and let any error propagate."""

    name = "strict"

    def run(self, operation: Callable[[], T], fallback: Optional[Callable[[], T]] = None) -> T:
        return operation()


class BestEffortPolicy:
    """Run the operation; on failure log it and return ``fallback()``."""

    name = "best_effort"

    def run(self, operation: Callable[[], T], fallback: Callable[[], T]) -> T:
        try:
            return operation()
        except Exception:
            logger.exception(
                "Best-effort operation %s failed; returning fallback",
                getattr(operation, "__qualname__", repr(operation)),
            )
            return fallback()


STRICT = StrictPolicy()
BEST_EFFORT = BestEffortPolicy()
