# alcless/core/exceptions.py
"""Custom exceptions for alcless."""

from __future__ import annotations

from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from alcless.core.types import BatchResult, ValidationReport


class AlclessError(Exception):
    """Base exception for all alcless errors."""

    pass


class ConfigurationError(AlclessError):
    """Raised when required configuration is missing or invalid."""

    pass


class InvalidSessionNameError(AlclessError, ValueError):
    """Raised when a session name cannot be turned into an account name."""

    pass


class AuthenticationError(AlclessError):
    """Raised when privilege validation is refused.

    Fatal for the whole run and never retried.

    Attributes:
        batch_result: Outcomes of the batch the error aborted, if any.
    """

    def __init__(self, message: str, batch_result: BatchResult | None = None) -> None:
        self.batch_result = batch_result
        super().__init__(message)


class CommandError(AlclessError):
    """Raised when an external command exits non-zero.

    Attributes:
        command: The argv that was executed.
        exit_code: Process exit status.
        output: Captured stderr (or stdout when stderr was empty).
    """

    def __init__(self, command: list[str], exit_code: int | None, output: str = "") -> None:
        self.command = command
        self.exit_code = exit_code
        self.output = output
        message = f"Command failed with exit code {exit_code}: {' '.join(command)}"
        if output:
            message += f"\n{output}"
        super().__init__(message)


class CommandTimeoutError(CommandError, TimeoutError):
    """Raised when an external command exceeds its deadline."""

    def __init__(self, command: list[str], timeout: float, output: str = "") -> None:
        self.timeout = timeout
        super().__init__(command, None, output)
        self.args = (f"Command timed out after {timeout}s: {' '.join(command)}",)


class TransientExternalError(AlclessError):
    """Raised for retryable network or install failures."""

    pass


class ReadinessTimeoutError(AlclessError, TimeoutError):
    """Raised when an account never becomes resolvable and network-ready.

    Attributes:
        account: Account that was polled.
        attempts: Number of polls performed.
        active: Last observed resolution state.
        network: Last observed network state.
    """

    def __init__(self, account: str, attempts: int, active: bool, network: bool) -> None:
        self.account = account
        self.attempts = attempts
        self.active = active
        self.network = network
        super().__init__(
            f"Account {account} setup timed out after {attempts} attempts "
            f"(active: {active}, network: {network})"
        )


class ProvisioningError(AlclessError):
    """Raised when a lifecycle step fails.

    Attributes:
        step: Name of the failing step.
        cause: Underlying exception.
    """

    def __init__(self, step: str, cause: BaseException | str) -> None:
        self.step = step
        self.cause = cause
        super().__init__(f"Step '{step}' failed: {cause}")


class ValidationError(AlclessError):
    """Raised when post-provisioning checks fail.

    The session exists but is not certified usable.
    """

    def __init__(self, report: ValidationReport, message: str) -> None:
        self.report = report
        super().__init__(message)
