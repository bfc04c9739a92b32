# -----------------------------------------------------------------------------
# Copyright (c) 2025 HMC Insights
# Licensed under the MIT License. See LICENSE in project root for details.
# -----------------------------------------------------------------------------

"""
Bounded retry with fixed or exponential backoff.

Retry policy is described by a RetryConfig value and applied with
call_with_retry.
"""

import logging
import random
import time
from dataclasses import dataclass
from typing import Callable, Optional, Tuple, Type, TypeVar

LOG = logging.getLogger(__name__)

T = TypeVar('T')


@dataclass(frozen=True)
class RetryConfig:
    """Retry policy: how many attempts and how long to wait between them."""

    max_attempts: int = 3
    base_delay: float = 0.5  # seconds
    max_delay: float = 60.0  # seconds
    exponential_base: float = 2.0
    jitter: bool = False
    retryable_exceptions: Tuple[Type[BaseException], ...] = (Exception,)

    @classmethod
    def fixed(cls, max_attempts: int, delay: float,
              retryable_exceptions: Tuple[Type[BaseException], ...] = (Exception,)) -> 'RetryConfig':
        """Policy with a constant delay between attempts."""
        return cls(max_attempts=max_attempts, base_delay=delay, max_delay=delay,
                   exponential_base=1.0, jitter=False,
                   retryable_exceptions=retryable_exceptions)

    def calculate_delay(self, attempt: int) -> float:
        """
        Delay to wait after a failed attempt.

        Args:
            attempt: Attempt number that just failed (1-indexed)

        Returns:
            Delay in seconds
        """
        delay = self.base_delay * (self.exponential_base ** (attempt - 1))
        delay = min(delay, self.max_delay)
        if self.jitter:
            jitter_range = delay * 0.25
            delay += random.uniform(-jitter_range, jitter_range)
        return max(0.0, delay)


def call_with_retry(func: Callable[..., T], config: RetryConfig,
                    *args,
                    on_retry: Optional[Callable[[int, BaseException], None]] = None,
                    sleep: Callable[[float], None] = time.sleep,
                    **kwargs) -> T:
    """
    Call func until it succeeds or the policy is exhausted.

    Args:
        func: Callable to invoke
        config: Retry policy
        on_retry: Called with (attempt, exception) before each wait
        sleep: Sleep function, replaceable in tests

    Returns:
        Whatever func returns

    Raises:
        The last exception raised by func once max_attempts is reached
    """
    name = getattr(func, '__name__', repr(func))
    for attempt in range(1, config.max_attempts + 1):
        try:
            return func(*args, **kwargs)
        except config.retryable_exceptions as e:
            if attempt >= config.max_attempts:
                LOG.error(f"Giving up on {name} after {attempt} attempts: {e}")
                raise
            delay = config.calculate_delay(attempt)
            LOG.warning(f"{name} failed (attempt {attempt}/{config.max_attempts}), "
                        f"retrying in {delay:.1f}s: {e}")
            if on_retry:
                on_retry(attempt, e)
            sleep(delay)
    raise ValueError(f"RetryConfig.max_attempts must be positive, got {config.max_attempts}")
