# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Shared fixtures and fakes for all tests.

Nothing here touches real accounts: the command runner is an AsyncMock and
the identity directory is an in-memory fake.
"""
from collections.abc import Callable
from unittest.mock import AsyncMock, MagicMock

import pytest

from alcless.core.types import CommandResult
from alcless.sandbox.executor import CommandExecutor
from alcless.sandbox.lifecycle import SessionLifecycleManager
from alcless.sandbox.privilege import PrivilegeGrantManager
from alcless.sandbox.readiness import ReadinessPoller
from alcless.sandbox.toolchain import ToolchainInstaller


HOST_USER = "alice"


def make_result(
    command: list[str] | None = None,
    stdout: str = "",
    stderr: str = "",
    exit_code: int = 0,
) -> CommandResult:
    """Build a CommandResult with sensible defaults."""
    return CommandResult(command=command or ["true"], stdout=stdout, stderr=stderr, exit_code=exit_code)


class FakeDirectory:
    """In-memory identity directory.

    Accounts listed in ``pending`` exist but only become active after
    ``activate_after`` is_active() calls.
    """

    def __init__(self, host: str = HOST_USER) -> None:
        self.host = host
        self.accounts: set[str] = set()
        self.active: set[str] = set()
        self.activate_after = 0
        self.created: list[str] = []
        self.deleted: list[str] = []
        self.secured: list[str] = []
        self.flushes = 0
        self.reloads = 0
        self._active_calls: dict[str, int] = {}

    async def host_user(self) -> str:
        return self.host

    async def list_accounts(self) -> list[str]:
        return sorted(self.accounts)

    async def exists(self, account: str) -> bool:
        return account in self.accounts

    async def is_active(self, account: str) -> bool:
        if account not in self.accounts:
            return False
        calls = self._active_calls.get(account, 0) + 1
        self._active_calls[account] = calls
        if account not in self.active and calls > self.activate_after:
            self.active.add(account)
        return account in self.active

    async def create(self, account: str) -> None:
        self.created.append(account)
        self.accounts.add(account)

    async def delete(self, account: str) -> None:
        self.deleted.append(account)
        self.accounts.discard(account)
        self.active.discard(account)

    async def secure_home(self, account: str) -> None:
        self.secured.append(account)

    async def flush_cache(self) -> None:
        self.flushes += 1

    async def reload_daemon(self) -> None:
        self.reloads += 1


@pytest.fixture
def result_factory() -> Callable[..., CommandResult]:
    """Factory fixture for CommandResult instances."""
    return make_result


@pytest.fixture
def mock_runner() -> AsyncMock:
    """CommandRunner mock whose commands all succeed with empty output."""
    runner = AsyncMock(spec=CommandExecutor)
    runner.run.return_value = make_result()
    runner.sudo_run.return_value = make_result()
    runner.run_as_user.return_value = make_result(stdout="ok\n")
    return runner


@pytest.fixture
def fake_directory() -> FakeDirectory:
    return FakeDirectory()


@pytest.fixture
def lifecycle_factory(
    mock_runner: AsyncMock,
    fake_directory: FakeDirectory,
) -> Callable[..., SessionLifecycleManager]:
    """Factory for lifecycle managers over the fake directory.

    Privilege and toolchain collaborators are AsyncMocks unless given.
    """
    def _create(
        privileges: PrivilegeGrantManager | MagicMock | None = None,
        toolchain: ToolchainInstaller | MagicMock | None = None,
        poller: ReadinessPoller | None = None,
        validation_commands: tuple[str, ...] = ("git --version", "bun --version", "python3 --version"),
    ) -> SessionLifecycleManager:
        return SessionLifecycleManager(
            runner=mock_runner,
            directory=fake_directory,
            poller=poller or ReadinessPoller(mock_runner, fake_directory, max_attempts=3, poll_interval=0),
            privileges=privileges or AsyncMock(spec=PrivilegeGrantManager),
            toolchain=toolchain or AsyncMock(spec=ToolchainInstaller),
            validation_commands=validation_commands,
        )
    return _create
