"""Resilient wrapper around network operations.

Every network call in the project goes through Fetcher.fetch(), which retries
the operation after a fixed delay until it succeeds or the retry policy is
exhausted.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional, Tuple, Type, TypeVar

import requests

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled, Timer
from errors import FetchError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """How a failed operation is retried.

    Attributes:
        delay: Seconds to wait between attempts.
        max_attempts: Total attempts before giving up; None retries forever.
        retry_on: Exception types treated as transient.
    """

    delay: float = 10.0
    max_attempts: Optional[int] = 10
    retry_on: Tuple[Type[BaseException], ...] = field(
        default=(requests.RequestException, OSError)
    )

    def __post_init__(self) -> None:
        if self.delay < 0:
            raise ValueError("delay must be >= 0")
        if self.max_attempts is not None and self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1 or None")

    @classmethod
    def forever(cls, delay: float = 10.0) -> "RetryPolicy":
        """Policy that never gives up."""
        return cls(delay=delay, max_attempts=None)

    @classmethod
    def from_constants(cls) -> "RetryPolicy":
        return cls(delay=Constants.RETRY_DELAY_SEC, max_attempts=Constants.RETRY_MAX_ATTEMPTS)


class Fetcher:
    """Run network operations under a RetryPolicy."""

    def __init__(
        self,
        policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.policy = policy or RetryPolicy()
        self._sleep = sleep

    def fetch(self, operation: Callable[[], T], *, description: str = "network operation") -> T:
        """Call ``operation`` until it returns, retrying transient failures.

        Args:
            operation: Zero-argument callable performing one network call.
            description: Human-readable label used in log messages.

        Returns:
            Whatever ``operation`` returns on its first successful attempt.

        Raises:
            FetchError: If ``max_attempts`` attempts all failed.
        """
        attempt = 0
        while True:
            attempt += 1
            with Timer() as t:
                try:
                    result = operation()
                except self.policy.retry_on as exc:
                    last_error = exc
                else:
                    if is_debug_enabled(logger):
                        logger.debug(
                            "Fetch succeeded",
                            extra=extra_context(
                                event="fetch",
                                component="fetcher",
                                action=description,
                                outcome="success",
                                attempt=attempt,
                                duration_ms=t.duration_ms(),
                            ),
                        )
                    return result

            if self.policy.max_attempts is not None and attempt >= self.policy.max_attempts:
                logger.error(
                    "%s failed after %d attempt(s): %s", description, attempt, last_error
                )
                raise FetchError(description, attempt, last_error) from last_error

            logger.warning(
                "%s failed (attempt %d): %s. Retrying in %s seconds.",
                description,
                attempt,
                last_error,
                self.policy.delay,
            )
            self._sleep(self.policy.delay)
