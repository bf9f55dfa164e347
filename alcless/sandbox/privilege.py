"""Scoped passwordless sudo grants for session accounts.

Each account gets its own fragment under /etc/sudoers.d, so revoking is a
single delete and concurrent grants for different accounts never touch the
same file. Fragments are staged under a dot-prefixed name (sudo ignores
included files containing a dot), validated with visudo, then renamed into
place so a half-written rule is never live.
"""

from __future__ import annotations

import posixpath
from collections.abc import Sequence
from typing import TYPE_CHECKING

from loguru import logger

from alcless.core.constants import SUDOERS_DIR
from alcless.core.exceptions import CommandError


if TYPE_CHECKING:
    from alcless.sandbox.provider import CommandRunner


class PrivilegeGrantManager:
    """Grants and revokes per-account sudo rules.

    Args:
        runner: Runs sudo commands.
        sudoers_dir: Directory included by the main sudoers file.
        commands: Commands the account may run as root without a password.
    """

    def __init__(
        self,
        runner: CommandRunner,
        sudoers_dir: str = SUDOERS_DIR,
        commands: Sequence[str] = ("ALL",),
    ) -> None:
        if not commands:
            raise ValueError("At least one privileged command is required")
        self._runner = runner
        self.sudoers_dir = sudoers_dir
        self.commands = list(commands)

    def fragment_path(self, account: str) -> str:
        return posixpath.join(self.sudoers_dir, account)

    def _staging_path(self, account: str) -> str:
        return posixpath.join(self.sudoers_dir, f".{account}.tmp")

    def render(self, account: str) -> str:
        """Render the sudoers rule for exactly one account."""
        return f"{account} ALL=(ALL) NOPASSWD: {', '.join(self.commands)}\n"

    async def current(self, account: str) -> str | None:
        """Return the installed fragment content, or None if absent."""
        result = await self._runner.sudo_run(
            "cat", [self.fragment_path(account)], check=False,
        )
        return result.stdout if result.ok else None

    async def has_grant(self, account: str) -> bool:
        return await self.current(account) is not None

    async def grant(self, account: str) -> None:
        """Install the account's fragment; no-op if already identical.

        Raises:
            CommandError: If staging, validation or the rename fails.
        """
        content = self.render(account)
        if await self.current(account) == content:
            logger.debug("Privilege grant already present", account=account)
            return

        staging = self._staging_path(account)
        target = self.fragment_path(account)
        try:
            await self._runner.sudo_run("tee", [staging], input=content.encode())
            await self._runner.sudo_run("chmod", ["0440", staging])
            await self._runner.sudo_run("chown", ["root:wheel", staging])
            await self._runner.sudo_run("visudo", ["-cf", staging])
            await self._runner.sudo_run("mv", ["-f", staging, target])
        except CommandError:
            await self._runner.sudo_run("rm", ["-f", staging], check=False)
            raise
        logger.info("Privilege grant installed", account=account, path=target)

    async def revoke(self, account: str) -> None:
        """Remove the account's fragment; no-op if absent."""
        target = self.fragment_path(account)
        await self._runner.sudo_run("rm", ["-f", target])
        logger.debug("Privilege grant removed", account=account, path=target)
