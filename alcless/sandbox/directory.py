"""macOS identity directory client.

Uses the stock macOS tools (dscl, sysadminctl, dscacheutil) through the
CommandRunner. Mutations go through ``sudo -n``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from loguru import logger

from alcless.core.constants import STAFF_GROUP, USERS_DIR
from alcless.core.exceptions import CommandError


if TYPE_CHECKING:
    from alcless.sandbox.provider import CommandRunner


class MacOSDirectory:
    """Account directory operations for macOS hosts.

    Args:
        runner: Executes the directory tools.
        host_user: Operator name; resolved with ``whoami`` when omitted.
    """

    def __init__(self, runner: CommandRunner, host_user: str | None = None) -> None:
        self._runner = runner
        self._host_user = host_user

    def home_dir(self, account: str) -> str:
        return f"{USERS_DIR}/{account}"

    async def host_user(self) -> str:
        if self._host_user is None:
            result = await self._runner.run("whoami")
            self._host_user = result.stdout.strip()
        return self._host_user

    async def list_accounts(self) -> list[str]:
        result = await self._runner.run("dscl", [".", "-list", USERS_DIR])
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    async def exists(self, account: str) -> bool:
        result = await self._runner.run(
            "dscl", [".", "-read", f"{USERS_DIR}/{account}"], check=False,
        )
        return result.ok

    async def is_active(self, account: str) -> bool:
        result = await self._runner.run("id", ["-u", account], check=False)
        return result.ok

    async def create(self, account: str) -> None:
        logger.info("Creating user account", account=account)
        await self._runner.sudo_run(
            "sysadminctl", ["-addUser", account, "-password", ""],
        )

    async def delete(self, account: str) -> None:
        logger.info("Deleting user account", account=account)
        await self._runner.sudo_run("sysadminctl", ["-deleteUser", account])

    async def secure_home(self, account: str) -> None:
        """Restrict the home directory to its owner.

        Not recursive: ~/Library holds SIP/TCC protected folders that must
        not be touched.
        """
        home = self.home_dir(account)
        await self._runner.sudo_run("chown", [f"{account}:{STAFF_GROUP}", home])
        await self._runner.sudo_run("chmod", ["700", home])

    async def flush_cache(self) -> None:
        await self._runner.sudo_run("dscacheutil", ["-flushcache"])

    async def reload_daemon(self) -> None:
        try:
            await self._runner.sudo_run("killall", ["-HUP", "opendirectoryd"])
        except CommandError as e:
            logger.debug("Could not signal opendirectoryd", error=str(e))
