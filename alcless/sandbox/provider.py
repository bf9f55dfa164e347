"""Collaborator protocols: command running and the identity directory."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from alcless.core.types import CommandResult


@runtime_checkable
class CommandRunner(Protocol):
    """Runs external programs, optionally as another account.

    CommandExecutor is the real implementation; tests substitute mocks.
    """

    async def run(
        self,
        program: str,
        args: list[str] | None = None,
        *,
        timeout: float | None = None,
        check: bool = True,
        input: bytes | None = None,
    ) -> CommandResult:
        """Run a program as the invoking user."""
        ...

    async def sudo_run(
        self,
        program: str,
        args: list[str] | None = None,
        *,
        timeout: float | None = None,
        check: bool = True,
        input: bytes | None = None,
    ) -> CommandResult:
        """Run a program with elevated rights, non-interactively."""
        ...

    async def run_as_user(
        self,
        account: str,
        script: str,
        *,
        timeout: float | None = None,
        check: bool = True,
    ) -> CommandResult:
        """Run a shell snippet as another account."""
        ...

    async def validate_credentials(self) -> None:
        """Interactively validate privilege credentials once."""
        ...

    async def refresh_credentials(self) -> None:
        """Keep cached privilege credentials alive."""
        ...


@runtime_checkable
class IdentityDirectory(Protocol):
    """Queries and mutates the host's user-account directory.

    Platform-agnostic interface; MacOSDirectory is the implementation.
    """

    async def host_user(self) -> str:
        """Return the name of the operator running the tool."""
        ...

    async def list_accounts(self) -> list[str]:
        """List every account name in the directory."""
        ...

    async def exists(self, account: str) -> bool:
        """Check whether the account record exists."""
        ...

    async def is_active(self, account: str) -> bool:
        """Check whether the identity resolver can resolve the account."""
        ...

    async def create(self, account: str) -> None:
        """Create the account with no login password."""
        ...

    async def delete(self, account: str) -> None:
        """Delete the account and its home directory."""
        ...

    async def secure_home(self, account: str) -> None:
        """Give the account sole ownership of its home directory."""
        ...

    async def flush_cache(self) -> None:
        """Flush the directory lookup cache."""
        ...

    async def reload_daemon(self) -> None:
        """Ask the identity-resolution daemon to reload."""
        ...
