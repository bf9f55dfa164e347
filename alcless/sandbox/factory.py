"""Wires the sandbox components from Settings."""

from __future__ import annotations

from typing import TYPE_CHECKING

from alcless.sandbox.directory import MacOSDirectory
from alcless.sandbox.executor import CommandExecutor
from alcless.sandbox.heartbeat import PrivilegeHeartbeat
from alcless.sandbox.lifecycle import SessionLifecycleManager
from alcless.sandbox.privilege import PrivilegeGrantManager
from alcless.sandbox.readiness import ReadinessPoller
from alcless.sandbox.toolchain import ToolchainInstaller


if TYPE_CHECKING:
    from alcless.config import Settings
    from alcless.sandbox.provider import CommandRunner


def create_lifecycle_manager(
    settings: Settings,
    runner: CommandRunner | None = None,
) -> SessionLifecycleManager:
    """Build a lifecycle manager and its collaborators.

    Args:
        settings: Loaded settings.
        runner: Command runner override; a CommandExecutor by default.

    Returns:
        A ready-to-use SessionLifecycleManager.
    """
    runner = runner or CommandExecutor(timeout=settings.command_timeout)
    directory = MacOSDirectory(runner, host_user=settings.host_user)
    return SessionLifecycleManager(
        runner=runner,
        directory=directory,
        poller=ReadinessPoller(
            runner,
            directory,
            max_attempts=settings.readiness.max_attempts,
            poll_interval=settings.readiness.poll_interval,
            lookup_host=settings.readiness.lookup_host,
        ),
        privileges=PrivilegeGrantManager(
            runner,
            sudoers_dir=settings.sudoers_dir,
            commands=settings.privileged_commands,
        ),
        toolchain=ToolchainInstaller(
            runner,
            repo_url=settings.homebrew_repo,
            retry=settings.retry,
            install_timeout=settings.install_timeout,
        ),
        default_tools=settings.default_tools,
        validation_commands=settings.validation_commands,
    )


def create_heartbeat(settings: Settings, runner: CommandRunner) -> PrivilegeHeartbeat:
    return PrivilegeHeartbeat(runner, interval=settings.heartbeat_interval)
