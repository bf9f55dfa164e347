"""Command execution for session management.

All host interaction goes through asyncio.create_subprocess_exec with an
argv list (never a shell on the host side). Commands run as a session
account go through ``sudo -n su - <account> -c <script>`` so they get
that account's login environment.
"""

from __future__ import annotations

import asyncio

from loguru import logger

from alcless.core.constants import DEFAULT_COMMAND_TIMEOUT
from alcless.core.exceptions import (
    AuthenticationError,
    CommandError,
    CommandTimeoutError,
)
from alcless.core.types import CommandResult
from alcless.core.utils import tail_output


class CommandExecutor:
    """Runs external programs with output capture and a deadline.

    Args:
        timeout: Default deadline in seconds for every command.
        sudo: Path or name of the privilege-escalation binary.
    """

    def __init__(self, timeout: float = DEFAULT_COMMAND_TIMEOUT, sudo: str = "sudo") -> None:
        self.timeout = timeout
        self.sudo = sudo

    async def run(
        self,
        program: str,
        args: list[str] | None = None,
        *,
        timeout: float | None = None,
        check: bool = True,
        input: bytes | None = None,
    ) -> CommandResult:
        """Run a program and capture its output.

        Args:
            program: Executable name or path.
            args: Arguments passed verbatim.
            timeout: Deadline in seconds (defaults to the executor timeout).
            check: Raise CommandError on non-zero exit.
            input: Optional bytes written to stdin.

        Returns:
            CommandResult with decoded stdout/stderr and the exit code.

        Raises:
            CommandTimeoutError: If the deadline is exceeded.
            CommandError: If the program is missing, or exits non-zero with check=True.
        """
        cmd = [program, *(args or [])]
        deadline = self.timeout if timeout is None else timeout
        logger.debug("Running command", cmd=cmd)

        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                stdin=asyncio.subprocess.PIPE if input is not None else asyncio.subprocess.DEVNULL,
            )
        except FileNotFoundError as e:
            raise CommandError(cmd, 127, f"executable not found: {program}") from e

        try:
            stdout, stderr = await asyncio.wait_for(
                proc.communicate(input=input), timeout=deadline,
            )
        except TimeoutError as e:
            proc.kill()
            await proc.communicate()
            raise CommandTimeoutError(cmd, deadline) from e

        result = CommandResult(
            command=cmd,
            stdout=stdout.decode(errors="replace"),
            stderr=stderr.decode(errors="replace"),
            exit_code=proc.returncode if proc.returncode is not None else -1,
        )
        if check and not result.ok:
            output = result.stderr.strip() or result.stdout
            raise CommandError(cmd, result.exit_code, tail_output(output))
        logger.debug("Completed command", cmd=cmd, exit_code=result.exit_code)
        return result

    async def sudo_run(
        self,
        program: str,
        args: list[str] | None = None,
        *,
        timeout: float | None = None,
        check: bool = True,
        input: bytes | None = None,
    ) -> CommandResult:
        """Run a program with elevated rights, never prompting.

        ``-n`` makes sudo fail instead of asking for a password, so
        validate_credentials() must have run earlier in the process.
        """
        return await self.run(
            self.sudo, ["-n", program, *(args or [])],
            timeout=timeout, check=check, input=input,
        )

    async def run_as_user(
        self,
        account: str,
        script: str,
        *,
        timeout: float | None = None,
        check: bool = True,
    ) -> CommandResult:
        """Run a shell snippet in a login shell of another account.

        Args:
            account: Account to run as.
            script: Shell snippet evaluated by the account's login shell.
            timeout: Deadline in seconds.
            check: Raise CommandError on non-zero exit.
        """
        return await self.sudo_run(
            "su", ["-", account, "-c", script], timeout=timeout, check=check,
        )

    async def validate_credentials(self) -> None:
        """Validate sudo credentials once, prompting on the terminal if needed.

        Raises:
            AuthenticationError: If sudo refuses the credentials.
        """
        logger.debug("Running sudo -v to cache credentials")
        try:
            # Terminal stays attached so the password prompt is visible.
            proc = await asyncio.create_subprocess_exec(self.sudo, "-v")
            returncode = await proc.wait()
        except FileNotFoundError as e:
            raise AuthenticationError(f"{self.sudo} is not available") from e
        if returncode != 0:
            raise AuthenticationError(
                "Sudo authentication failed. alcless requires sudo privileges."
            )

    async def refresh_credentials(self) -> None:
        """Extend the cached sudo timestamp without prompting.

        Raises:
            CommandError: If the credentials have already expired.
        """
        await self.run(self.sudo, ["-n", "-v"])
