"""
Bounded retry controller for eventually consistent backends.

Some backends refuse to reuse an identifier right after it was deleted and
signal this with a recognizable error. The controller polls an operation on a
fixed interval until a success predicate holds, running a remediation action
(purge, recover) when the recoverable condition shows up, and gives up once
the timeout is spent.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

import logging
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable

from vaultharness.errors import RetryTimeout

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 360.0
DEFAULT_INTERVAL = 5.0


class RetryState(str, Enum):
    """Controller states."""
    POLLING = "polling"
    REMEDIATE = "remediate"
    SUCCESS = "success"
    HARD_FAIL = "hard_fail"
    TIMEOUT_FAIL = "timeout_fail"


def _has_result(result: Any) -> bool:
    return result is not None


def _never(exc: BaseException) -> bool:
    return False


@dataclass
class RetryPolicy:
    """How long and how often to retry, and what counts as done."""

    timeout: float = DEFAULT_TIMEOUT
    interval: float = DEFAULT_INTERVAL

    # Called with the attempt's result; a bare absence of error is not enough
    # for backends that answer with an empty payload while propagating.
    success: Callable[[Any], bool] = field(default=_has_result)

    # Called with the raised exception; True means retry instead of failing.
    recoverable: Callable[[BaseException], bool] = field(default=_never)

    # Corrective action run before retrying a recoverable error.
    remediate: Callable[[BaseException], None] | None = None

    def __post_init__(self):
        if self.timeout < 0:
            raise ValueError("timeout must not be negative")
        if self.interval <= 0:
            raise ValueError("interval must be positive")


class EventualConsistency:
    """Drive one operation through the retry state machine.

    POLLING -> SUCCESS, POLLING -> REMEDIATE -> POLLING,
    POLLING -> HARD_FAIL, POLLING -> TIMEOUT_FAIL.
    """

    def __init__(
        self,
        policy: RetryPolicy | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.policy = policy or RetryPolicy()
        self._clock = clock
        self._sleep = sleep
        self.state = RetryState.POLLING
        self.attempts = 0
        self.elapsed = 0.0

    def run(self, attempt: Callable[[], Any]) -> Any:
        """Call ``attempt`` until the policy is satisfied.

        Returns:
            The first result accepted by the success predicate

        Raises:
            RetryTimeout: The timeout elapsed; carries the last error/result
            Exception: Any non-recoverable error raised by ``attempt``
        """
        policy = self.policy
        started = self._clock()
        last_error: BaseException | None = None
        last_result: Any = None

        self.state = RetryState.POLLING
        self.attempts = 0
        self.elapsed = 0.0

        while True:
            self.attempts += 1
            try:
                result = attempt()
            except Exception as e:
                if not policy.recoverable(e):
                    self.state = RetryState.HARD_FAIL
                    self.elapsed = self._clock() - started
                    raise

                last_error = e
                self.state = RetryState.REMEDIATE
                logger.warning(f"Recoverable error on attempt {self.attempts}: {e}")
                if policy.remediate is not None:
                    policy.remediate(e)
            else:
                if policy.success(result):
                    self.state = RetryState.SUCCESS
                    self.elapsed = self._clock() - started
                    logger.debug(f"Succeeded after {self.attempts} attempts ({self.elapsed:.1f}s)")
                    return result
                last_error = None
                last_result = result

            self.elapsed = self._clock() - started
            if self.elapsed >= policy.timeout:
                self.state = RetryState.TIMEOUT_FAIL
                raise RetryTimeout(
                    policy.timeout,
                    self.attempts,
                    last_error=last_error,
                    last_result=last_result,
                )

            self.state = RetryState.POLLING
            wait = min(policy.interval, policy.timeout - self.elapsed)
            logger.debug(f"Attempt {self.attempts} not done, polling again in {wait:.1f}s")
            self._sleep(wait)


def eventually(
    attempt: Callable[[], Any],
    policy: RetryPolicy | None = None,
    **overrides: Any,
) -> Any:
    """Run ``attempt`` under a retry policy.

    Args:
        attempt: Zero-argument callable performing one try
        policy: Base policy (defaults to 360s timeout, 5s interval)
        **overrides: RetryPolicy fields to replace, plus ``clock``/``sleep``

    Returns:
        The accepted result
    """
    clock = overrides.pop("clock", time.monotonic)
    sleep = overrides.pop("sleep", time.sleep)

    if policy is None:
        policy = RetryPolicy(**overrides)
    elif overrides:
        policy = replace(policy, **overrides)

    return EventualConsistency(policy, clock=clock, sleep=sleep).run(attempt)
