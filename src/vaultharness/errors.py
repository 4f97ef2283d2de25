"""
Error taxonomy for vault harnesses.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

from typing import Any


class HarnessError(Exception):
    """Base class for all harness errors."""


class UnknownBackend(HarnessError):
    """No harness is registered under the requested name."""

    def __init__(self, name: str, available: list[str] | None = None):
        self.name = name
        self.available = available or []
        message = f"Unknown vault backend: {name!r}"
        if self.available:
            message += f" (available: {', '.join(self.available)})"
        super().__init__(message)


class FatalSetupError(HarnessError):
    """Required credentials or configuration are missing.

    The run for the affected backend must be aborted; this is never retried.
    """

    def __init__(self, message: str, missing: str | None = None):
        self.missing = missing
        super().__init__(message)


class HarnessStateError(HarnessError):
    """An operation was invoked in a lifecycle state that does not allow it."""


class BackendRejected(HarnessError):
    """The backend returned an explicit error for an operation."""

    def __init__(
        self,
        backend: str,
        operation: str,
        message: str,
        status: int | None = None,
        code: str | None = None,
    ):
        self.backend = backend
        self.operation = operation
        self.status = status
        self.code = code
        detail = f"{backend} {operation} failed: {message}"
        if status is not None:
            detail += f" (status {status})"
        if code:
            detail += f" [{code}]"
        super().__init__(detail)


class RecoverableConflict(BackendRejected):
    """The identifier is transiently unavailable after a prior delete.

    Only the retry controller handles this; callers see it wrapped in a
    RetryTimeout when the retry budget runs out.
    """


class RetryTimeout(HarnessError):
    """The retry budget was exhausted before the success predicate held."""

    def __init__(
        self,
        timeout: float,
        attempts: int,
        last_error: BaseException | None = None,
        last_result: Any = None,
    ):
        self.timeout = timeout
        self.attempts = attempts
        self.last_error = last_error
        self.last_result = last_result
        message = f"Gave up after {attempts} attempts in {timeout:g}s"
        if last_error is not None:
            message += f": {last_error}"
        super().__init__(message)
