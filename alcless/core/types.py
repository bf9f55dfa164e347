"""Shared type definitions for alcless.

Contains the session state enum and the Pydantic models (RetryConfig,
ReadinessConfig, CommandResult, ValidationReport, SessionOutcome,
BatchResult) passed between the sandbox components.
"""
from collections.abc import Iterable
from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from alcless.core.constants import (
    DEFAULT_LOOKUP_HOST,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_READINESS_ATTEMPTS,
    DEFAULT_RETRY_ATTEMPTS,
    DEFAULT_RETRY_DELAY,
    DEFAULT_TOOLS,
)


class SessionState(StrEnum):
    """Lifecycle state of a session, held in memory for one run.

    The account itself is the durable source of truth; this only tracks
    how far the current run got.
    """

    ABSENT = "absent"
    CREATED = "created"
    READY = "ready"
    PRIVILEGE_GRANTED = "privilege_granted"
    PROVISIONED = "provisioned"
    VALIDATED = "validated"
    TORN_DOWN = "torn_down"
    FAILED = "failed"


OutcomeStatus = Literal["succeeded", "failed", "skipped"]


class RetryConfig(BaseModel):
    """Retry configuration for network-dependent steps.

    Attributes:
        max_attempts: Total attempts including the first (1-10).
        delay: Fixed delay in seconds between attempts (0-300).
    """

    max_attempts: int = Field(
        default=DEFAULT_RETRY_ATTEMPTS, ge=1, le=10, description="Total attempts"
    )
    delay: float = Field(
        default=DEFAULT_RETRY_DELAY, ge=0.0, le=300.0, description="Fixed delay between attempts"
    )


class ReadinessConfig(BaseModel):
    """Polling bounds for account readiness.

    Attributes:
        max_attempts: Polls before giving up.
        poll_interval: Seconds between polls.
        lookup_host: External host resolved to prove network access.
    """

    max_attempts: int = Field(default=DEFAULT_READINESS_ATTEMPTS, ge=1, le=300)
    poll_interval: float = Field(default=DEFAULT_POLL_INTERVAL, ge=0.0, le=60.0)
    lookup_host: str = Field(default=DEFAULT_LOOKUP_HOST, min_length=1)


class CommandResult(BaseModel):
    """Captured result of an external command."""

    model_config = ConfigDict(frozen=True)

    command: list[str]
    stdout: str = ""
    stderr: str = ""
    exit_code: int = 0

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class SessionStatus(BaseModel):
    """In-memory state of a session plus the failure reason, if any."""

    model_config = ConfigDict(frozen=True)

    state: SessionState
    reason: str | None = None


class CheckResult(BaseModel):
    """Outcome of one validation command."""

    model_config = ConfigDict(frozen=True)

    command: str
    exit_code: int
    output: str = ""

    @property
    def passed(self) -> bool:
        return self.exit_code == 0


class ValidationReport(BaseModel):
    """Version checks run as the session identity."""

    model_config = ConfigDict(frozen=True)

    session: str
    account: str
    checks: list[CheckResult] = Field(default_factory=list)

    @property
    def passed(self) -> bool:
        return bool(self.checks) and all(check.passed for check in self.checks)

    @property
    def failures(self) -> list[CheckResult]:
        return [check for check in self.checks if not check.passed]


class SessionOutcome(BaseModel):
    """Result of one session's step within a batch."""

    model_config = ConfigDict(frozen=True)

    session: str
    status: OutcomeStatus
    error: str | None = None
    error_type: str | None = None


class BatchResult(BaseModel):
    """Per-session outcomes of a batch run, in input order."""

    outcomes: dict[str, SessionOutcome] = Field(default_factory=dict)

    @property
    def succeeded(self) -> list[str]:
        return [name for name, o in self.outcomes.items() if o.status == "succeeded"]

    @property
    def failed(self) -> list[str]:
        return [name for name, o in self.outcomes.items() if o.status == "failed"]

    @property
    def skipped(self) -> list[str]:
        return [name for name, o in self.outcomes.items() if o.status == "skipped"]

    @property
    def ok(self) -> bool:
        return all(o.status == "succeeded" for o in self.outcomes.values())

    @property
    def first_error(self) -> SessionOutcome | None:
        """First failed outcome in input order, or None."""
        for outcome in self.outcomes.values():
            if outcome.status == "failed":
                return outcome
        return None


def build_tool_set(
    extra: Iterable[str] = (),
    defaults: Iterable[str] = DEFAULT_TOOLS,
) -> list[str]:
    """Merge default and extra tools into an ordered, de-duplicated list.

    Args:
        extra: Caller-supplied package names.
        defaults: Packages every session receives.

    Returns:
        Defaults first, then extras, each name once; blanks dropped.
    """
    tools: dict[str, None] = {}
    for name in (*defaults, *extra):
        name = name.strip()
        if name:
            tools.setdefault(name, None)
    return list(tools)


def parse_tool_list(value: str | None) -> list[str]:
    """Parse a comma-separated ``--tools`` value."""
    if not value:
        return []
    return [t.strip() for t in value.split(",") if t.strip()]
