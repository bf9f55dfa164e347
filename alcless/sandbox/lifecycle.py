# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Session lifecycle: create, provision, validate and destroy.

Steps within one session are strictly sequential. The manager never retries
or rolls back on its own; a failed session is cleaned up with an explicit
destroy(), which is idempotent.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from typing import TYPE_CHECKING, TypeVar

from loguru import logger

from alcless.core.constants import DEFAULT_TOOLS, DEFAULT_VALIDATION_COMMANDS, LifecycleStep
from alcless.core.exceptions import (
    AuthenticationError,
    CommandError,
    ProvisioningError,
    ValidationError,
)
from alcless.core.naming import derive_account_name
from alcless.core.types import (
    CheckResult,
    SessionState,
    SessionStatus,
    ValidationReport,
    build_tool_set,
)
from alcless.core.utils import tail_output


if TYPE_CHECKING:
    from alcless.sandbox.privilege import PrivilegeGrantManager
    from alcless.sandbox.provider import CommandRunner, IdentityDirectory
    from alcless.sandbox.readiness import ReadinessPoller
    from alcless.sandbox.toolchain import ToolchainInstaller


T = TypeVar("T")


class SessionLifecycleManager:
    """Drives one or more named sessions through their lifecycle.

    ``Absent -> Created -> Ready -> PrivilegeGranted -> Provisioned ->
    Validated``; destroy() moves any session to ``TornDown``; a failing step
    moves it to ``Failed`` with the reason recorded.

    Args:
        runner: Command runner used for validation checks.
        directory: Identity directory client.
        poller: Readiness poller for new or re-checked accounts.
        privileges: Sudo grant manager.
        toolchain: Homebrew installer.
        default_tools: Packages every session receives.
        validation_commands: Version checks run by validate().
    """

    def __init__(
        self,
        runner: CommandRunner,
        directory: IdentityDirectory,
        poller: ReadinessPoller,
        privileges: PrivilegeGrantManager,
        toolchain: ToolchainInstaller,
        default_tools: Sequence[str] = DEFAULT_TOOLS,
        validation_commands: Sequence[str] = DEFAULT_VALIDATION_COMMANDS,
    ) -> None:
        self._runner = runner
        self._directory = directory
        self._poller = poller
        self._privileges = privileges
        self._toolchain = toolchain
        self.default_tools = list(default_tools)
        self.validation_commands = list(validation_commands)
        self._status: dict[str, SessionStatus] = {}

    @property
    def runner(self) -> CommandRunner:
        return self._runner

    @property
    def directory(self) -> IdentityDirectory:
        return self._directory

    @property
    def privileges(self) -> PrivilegeGrantManager:
        return self._privileges

    async def account_name(self, session: str) -> str:
        """Derive the account backing a session for the current host user."""
        return derive_account_name(await self._directory.host_user(), session)

    def status(self, session: str) -> SessionStatus:
        """In-memory status from the current run (Absent if never touched)."""
        return self._status.get(session, SessionStatus(state=SessionState.ABSENT))

    def _set(self, session: str, state: SessionState, reason: str | None = None) -> None:
        self._status[session] = SessionStatus(state=state, reason=reason)
        logger.debug("Session state changed", session=session, state=str(state))

    async def refresh_state(self, session: str) -> SessionState:
        """Re-derive the coarse state from the directory, not from memory."""
        account = await self.account_name(session)
        if not await self._directory.exists(account):
            state = SessionState.ABSENT
        elif await self._directory.is_active(account):
            state = SessionState.READY
        else:
            state = SessionState.CREATED
        self._set(session, state)
        return state

    async def _step(
        self,
        session: str,
        step: LifecycleStep,
        action: Callable[[], Awaitable[T]],
    ) -> T:
        """Run one step, recording Failed and wrapping errors on failure."""
        try:
            return await action()
        except (AuthenticationError, ProvisioningError) as e:
            self._set(session, SessionState.FAILED, str(e))
            raise
        except Exception as e:
            error = ProvisioningError(str(step), e)
            self._set(session, SessionState.FAILED, str(error))
            logger.error("Session step failed", session=session, step=str(step), error=str(e))
            raise error from e

    async def create(self, session: str) -> str:
        """Create the session account and wait until it is usable.

        Idempotent: an existing, resolvable account is not re-created, but
        its network readiness is still re-checked.

        Returns:
            The account name.

        Raises:
            InvalidSessionNameError: If the session name is unusable.
            ProvisioningError: If creation, readiness or permission fixing fails.
        """
        account = await self.account_name(session)
        exists = await self._directory.exists(account)
        active = exists and await self._directory.is_active(account)

        if exists and active:
            logger.debug("Account already exists and is active", session=session, account=account)
        elif not exists:
            await self._step(session, LifecycleStep.CREATE_ACCOUNT, lambda: self._directory.create(account))
            logger.success("Account record created", session=session, account=account)
        self._set(session, SessionState.CREATED)

        logger.info("Waiting for account to be resolved by the system", session=session, account=account)
        await self._step(session, LifecycleStep.READINESS, lambda: self._poller.wait_until_ready(account))

        # Idempotent, so also applied to pre-existing accounts left by an interrupted run.
        await self._step(session, LifecycleStep.HOME_PERMISSIONS, lambda: self._directory.secure_home(account))
        self._set(session, SessionState.READY)
        return account

    async def provision(self, session: str, extra_tools: Sequence[str] = ()) -> None:
        """Grant sudo, install Homebrew and the session's tool set.

        Raises:
            ProvisioningError: Naming the failing step.
        """
        account = await self.account_name(session)
        tools = build_tool_set(extra_tools, defaults=self.default_tools)

        logger.info("Configuring sudo", session=session, account=account)
        await self._step(session, LifecycleStep.PRIVILEGE_GRANT, lambda: self._privileges.grant(account))
        self._set(session, SessionState.PRIVILEGE_GRANTED)

        logger.info("Installing Homebrew", session=session, account=account)
        await self._step(
            session, LifecycleStep.PACKAGE_MANAGER,
            lambda: self._toolchain.install_package_manager(account),
        )

        logger.info("Provisioning tools", session=session, tools=tools)
        await self._step(
            session, LifecycleStep.PACKAGES,
            lambda: self._toolchain.install_packages(account, tools),
        )
        python_formulas = [t for t in tools if t.startswith("python@")]
        if python_formulas:
            await self._step(
                session, LifecycleStep.POST_INSTALL,
                lambda: self._toolchain.link_python(account, python_formulas[0]),
            )
        self._set(session, SessionState.PROVISIONED)

    async def validate(self, session: str) -> ValidationReport:
        """Run version checks as the session identity.

        Returns:
            The report, when every check exits cleanly.

        Raises:
            ValidationError: If any check fails; carries the report.
        """
        account = await self.account_name(session)
        checks: list[CheckResult] = []
        for command in self.validation_commands:
            try:
                result = await self._runner.run_as_user(account, command, check=False)
            except CommandError as e:
                # Timeouts and missing binaries fail the check, not the run.
                logger.warning("Validation check errored", session=session, command=command, error=str(e))
                checks.append(CheckResult(command=command, exit_code=-1, output=tail_output(str(e))))
                continue
            output = result.stdout if result.ok else (result.stderr or result.stdout)
            checks.append(CheckResult(
                command=command,
                exit_code=result.exit_code,
                output=tail_output(output),
            ))

        report = ValidationReport(session=session, account=account, checks=checks)
        if not report.passed:
            failed = ", ".join(check.command for check in report.failures) or "no checks configured"
            message = f"Validation failed for {session}: {failed}"
            self._set(session, SessionState.FAILED, message)
            raise ValidationError(report, message)

        self._set(session, SessionState.VALIDATED)
        logger.success("Tools verified", session=session, account=account)
        return report

    async def destroy(self, session: str) -> None:
        """Revoke the grant, then delete the account.

        The grant goes first so no rule is left naming a deleted account.
        No-op for a session whose account does not exist.

        Raises:
            ProvisioningError: If revocation or deletion of an existing
                account fails.
        """
        account = await self.account_name(session)
        if not await self._directory.exists(account):
            logger.debug("Account does not exist", session=session, account=account)
            # A stale grant may outlive its account; removing it is best effort here.
            try:
                await self._privileges.revoke(account)
            except CommandError as e:
                logger.debug("Stale grant not removed", session=session, account=account, error=str(e))
            self._set(session, SessionState.TORN_DOWN)
            return

        await self._step(session, LifecycleStep.PRIVILEGE_REVOKE, lambda: self._privileges.revoke(account))
        await self._step(session, LifecycleStep.DELETE_ACCOUNT, lambda: self._directory.delete(account))
        logger.info("Deleted session", session=session, account=account)
        self._set(session, SessionState.TORN_DOWN)

    async def bring_up(self, session: str, extra_tools: Sequence[str] = ()) -> ValidationReport:
        """Create, provision and validate a session."""
        await self.create(session)
        await self.provision(session, extra_tools)
        return await self.validate(session)
