"""Retry wrapper for AWS calls.

Retries are blind: any exception counts as a failure, and the delay grows
linearly as ``base_delay * (1 + attempt * 0.35)``.
"""

import logging
import time
from typing import Callable, TypeVar

from app.core.exceptions import AWSOperationError

logger = logging.getLogger(__name__)

T = TypeVar('T')

BACKOFF_STEP = 0.35


class RetryPolicy:
    """Attempt count and base delay for one retried action."""

    def __init__(self, retries: int = 6, base_delay: float = 1.2):
        """
        Initialize retry policy.

        Args:
            retries: Maximum number of attempts (values below 1 mean 1)
            base_delay: Delay in seconds after the first failed attempt
        """
        self.retries = max(1, retries)
        self.base_delay = base_delay

    def delay_for(self, attempt: int) -> float:
        """Return the sleep after the zero-based ``attempt`` failed."""
        return self.base_delay * (1.0 + attempt * BACKOFF_STEP)

    def __repr__(self) -> str:
        return f"RetryPolicy(retries={self.retries}, base_delay={self.base_delay})"


DEFAULT_POLICY = RetryPolicy(retries=6, base_delay=1.2)
STATIC_IP_POLICY = RetryPolicy(retries=8, base_delay=1.2)
RELEASE_POLICY = RetryPolicy(retries=12, base_delay=1.3)


def safe_retry(
    action_name: str,
    func: Callable[[], T],
    policy: RetryPolicy = DEFAULT_POLICY,
) -> T:
    """
    Call ``func`` until it succeeds or the policy's attempts are used up.

    Args:
        action_name: Human-readable action used in logs and the final error
        func: Zero-argument callable performing one AWS request
        policy: Attempt count and base delay

    Returns:
        Result of the first successful call

    Raises:
        AWSOperationError: If every attempt failed
    """
    last_exception: Exception | None = None

    for attempt in range(policy.retries):
        try:
            return func()
        except Exception as e:
            last_exception = e
            if attempt + 1 < policy.retries:
                delay = policy.delay_for(attempt)
                logger.warning(
                    "%s: attempt %d/%d failed, retrying in %.2fs - %s: %s",
                    action_name,
                    attempt + 1,
                    policy.retries,
                    delay,
                    type(e).__name__,
                    e,
                )
                time.sleep(delay)

    logger.error("%s: all %d attempts failed - %s", action_name, policy.retries, last_exception)
    raise AWSOperationError(
        f"{action_name} failed: {last_exception}",
        action=action_name,
        details={"attempts": policy.retries},
    ) from last_exception
