"""Retry utilities for transient failures.

Decrypting a password-store entry can be gated by a hardware token that
needs a fresh touch for every operation, so a single miss is common and
should not be fatal. ``retry_call`` runs a callable a bounded number of
times with a fixed, blocking delay between attempts.

Key Exports:
    RetryPolicy: Attempt count and delay, injectable for tests.
    RetryExhaustedError: Raised when every attempt failed.
    retry_call: Call a function until it returns an accepted value.

Example:
    >>> from passcred.utils.retry import RetryPolicy, retry_call
    >>> value = retry_call(
    ...     lambda: store.fetch("aws/dev/access-key-id"),
    ...     policy=RetryPolicy(max_attempts=3, delay=1.0),
    ...     accept=bool,
    ... )

Total Wait:
    With max_attempts=3 and delay=1.0 the worst case sleeps 2 seconds:
    there is no sleep after the final attempt.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

import structlog

log = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry with a fixed delay.

    Attributes:
        max_attempts: Total number of calls, including the first one
        delay: Seconds slept between attempts
    """

    max_attempts: int = 3
    delay: float = 1.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.delay < 0:
            raise ValueError("delay cannot be negative")


class RetryExhaustedError(Exception):
    """Every attempt raised or returned a rejected value.

    Attributes:
        attempts: Number of calls made
        last_error: Exception from the final attempt, or None if the final
            attempt returned a rejected value
    """

    def __init__(self, attempts: int, last_error: Exception | None = None) -> None:
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Gave up after {attempts} attempts")


def retry_call(
    func: Callable[[], T],
    policy: RetryPolicy,
    accept: Callable[[T], bool] | None = None,
    exceptions: tuple[type[Exception], ...] = (Exception,),
    sleep: Callable[[float], None] = time.sleep,
    operation: str | None = None,
) -> T:
    """Call ``func`` until it returns an accepted value or attempts run out.

    Args:
        func: Zero-argument callable to invoke
        policy: Attempt count and delay
        accept: Predicate on the return value; a value it rejects counts as
            a failed attempt. None accepts everything.
        exceptions: Exception types that count as a failed attempt. Others
            propagate immediately.
        sleep: Blocking sleep function (tests pass a no-op)
        operation: Name used in log events (never the secret path itself)

    Returns:
        The first accepted return value

    Raises:
        RetryExhaustedError: If all ``policy.max_attempts`` calls failed
    """
    name = operation or getattr(func, "__name__", "call")
    last_error: Exception | None = None

    for attempt in range(1, policy.max_attempts + 1):
        log.debug("retry_call_attempt", operation=name, attempt=attempt, max_attempts=policy.max_attempts)
        try:
            value = func()
        except exceptions as e:
            last_error = e
            log.debug("retry_call_failed", operation=name, attempt=attempt, error=type(e).__name__)
        else:
            if accept is None or accept(value):
                return value
            last_error = None
            log.debug("retry_call_rejected", operation=name, attempt=attempt)

        if attempt < policy.max_attempts:
            log.debug("retry_call_waiting", operation=name, delay=policy.delay)
            sleep(policy.delay)

    log.debug("retry_call_exhausted", operation=name, attempts=policy.max_attempts)
    raise RetryExhaustedError(policy.max_attempts, last_error)
