"""Readiness polling for freshly created accounts.

Account creation is eventually consistent: sysadminctl returns before the
identity resolver knows the account, and a login shell for the new account
may not have working DNS for a few more seconds.
"""

from __future__ import annotations

import asyncio
import shlex
from typing import TYPE_CHECKING

from loguru import logger

from alcless.core.constants import (
    DEFAULT_LOOKUP_HOST,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_READINESS_ATTEMPTS,
    NETWORK_CHECK_TOOLS,
)
from alcless.core.exceptions import CommandError, ReadinessTimeoutError


if TYPE_CHECKING:
    from alcless.sandbox.provider import CommandRunner, IdentityDirectory


class ReadinessPoller:
    """Waits until an account is resolvable and has network access.

    Args:
        runner: Runs the network checks as the account.
        directory: Identity directory queried for resolution state.
        max_attempts: Default number of polls.
        poll_interval: Default seconds between polls.
        lookup_host: Host name resolved to prove network access.
    """

    def __init__(
        self,
        runner: CommandRunner,
        directory: IdentityDirectory,
        max_attempts: int = DEFAULT_READINESS_ATTEMPTS,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        lookup_host: str = DEFAULT_LOOKUP_HOST,
    ) -> None:
        self._runner = runner
        self._directory = directory
        self.max_attempts = max_attempts
        self.poll_interval = poll_interval
        self.lookup_host = lookup_host

    async def is_network_ready(self, account: str) -> bool:
        """Resolve the lookup host as the account with any available tool."""
        host = shlex.quote(self.lookup_host)
        for tool in NETWORK_CHECK_TOOLS:
            script = f"{shlex.join(tool)} {host}"
            try:
                await self._runner.run_as_user(account, script)
                return True
            except CommandError as e:
                logger.debug("Network check failed", account=account, tool=tool[0], error=str(e))
        return False

    async def _nudge_directory(self, account: str) -> None:
        """Flush the directory cache and reload the resolver, best effort.

        Concurrent sessions may issue this at the same time; both operations
        are idempotent.
        """
        try:
            await self._directory.flush_cache()
        except CommandError as e:
            logger.warning("Directory cache flush failed", account=account, error=str(e))
        await self._directory.reload_daemon()

    async def wait_until_ready(
        self,
        account: str,
        max_attempts: int | None = None,
        poll_interval: float | None = None,
    ) -> None:
        """Poll until the account resolves and reaches the network.

        Resolution is checked first each cycle; the network check only runs
        once the account resolves. Both must hold in the same cycle.

        Args:
            account: Account to poll.
            max_attempts: Override for the number of polls.
            poll_interval: Override for seconds between polls.

        Raises:
            ReadinessTimeoutError: After max_attempts unsuccessful polls.
        """
        attempts = self.max_attempts if max_attempts is None else max_attempts
        interval = self.poll_interval if poll_interval is None else poll_interval
        active = False
        network = False

        for attempt in range(1, attempts + 1):
            active = await self._directory.is_active(account)
            network = False
            if active:
                network = await self.is_network_ready(account)
                if network:
                    logger.debug("Account ready", account=account, attempt=attempt)
                    return
                logger.debug("Waiting for network to stabilize", account=account, attempt=attempt)
            else:
                logger.debug("Waiting for account to become active", account=account, attempt=attempt)
                await self._nudge_directory(account)

            if attempt < attempts:
                await asyncio.sleep(interval)

        raise ReadinessTimeoutError(account, attempts, active=active, network=network)
