"""Isolated Homebrew installation inside a session home directory.

Every command runs as the session account, so the package manager and
everything it installs live under that account's home and never touch the
operator's environment.
"""

from __future__ import annotations

import shlex
from collections.abc import Sequence
from typing import TYPE_CHECKING

from loguru import logger

from alcless.core.constants import (
    DEFAULT_INSTALL_TIMEOUT,
    HOMEBREW_BIN,
    HOMEBREW_DIR,
    HOMEBREW_REPO_URL,
    SHELL_PROFILES,
    SHELLENV_LINE,
)
from alcless.core.types import RetryConfig
from alcless.sandbox.retry import with_retry


if TYPE_CHECKING:
    from alcless.sandbox.provider import CommandRunner


class ToolchainInstaller:
    """Installs Homebrew and packages for a session account.

    Args:
        runner: Runs commands as the session account.
        repo_url: Git URL of the Homebrew repository.
        retry: Retry policy for network-dependent steps.
        install_timeout: Deadline in seconds for package installs.
    """

    def __init__(
        self,
        runner: CommandRunner,
        repo_url: str = HOMEBREW_REPO_URL,
        retry: RetryConfig | None = None,
        install_timeout: float = DEFAULT_INSTALL_TIMEOUT,
    ) -> None:
        self._runner = runner
        self.repo_url = repo_url
        self.retry = retry or RetryConfig()
        self.install_timeout = install_timeout

    async def is_installed(self, account: str) -> bool:
        result = await self._runner.run_as_user(
            account, f'test -x "{HOMEBREW_BIN}"', check=False,
        )
        return result.ok

    async def _clone(self, account: str) -> None:
        # A failed clone can leave a partial checkout; start clean each attempt.
        script = (
            f'[ -x "{HOMEBREW_BIN}" ] || '
            f'{{ rm -rf "{HOMEBREW_DIR}" && '
            f'git clone --depth=1 {shlex.quote(self.repo_url)} "{HOMEBREW_DIR}"; }}'
        )
        await self._runner.run_as_user(account, script, timeout=self.install_timeout)

    async def _update(self, account: str) -> None:
        await self._runner.run_as_user(
            account, f'"{HOMEBREW_BIN}" update --quiet', timeout=self.install_timeout,
        )

    async def install_package_manager(self, account: str) -> None:
        """Clone Homebrew, wire shell profiles and refresh its index.

        Safe to call repeatedly: the clone is skipped when Homebrew is
        already present and profile lines are only appended once.
        """
        if await self.is_installed(account):
            logger.info("Homebrew is already installed", account=account)
        else:
            logger.info("Installing Homebrew", account=account)
            await with_retry(
                lambda: self._clone(account),
                self.retry.max_attempts,
                self.retry.delay,
                description=f"Homebrew clone for {account}",
            )

        for profile in SHELL_PROFILES:
            await self._runner.run_as_user(
                account,
                f'grep -qs "brew shellenv" ~/{profile} || '
                f"echo {shlex.quote(SHELLENV_LINE)} >> ~/{profile}",
            )

        await with_retry(
            lambda: self._update(account),
            self.retry.max_attempts,
            self.retry.delay,
            description=f"Homebrew update for {account}",
        )

    async def install_packages(self, account: str, names: Sequence[str]) -> None:
        """Install packages with one batched ``brew install``."""
        if not names:
            return
        packages = " ".join(shlex.quote(name) for name in names)
        logger.info("Installing packages", account=account, packages=list(names))
        await self._runner.run_as_user(
            account,
            f'"{HOMEBREW_BIN}" install {packages}',
            timeout=self.install_timeout,
        )

    async def prefix(self, account: str, formula: str) -> str:
        """Return the installation prefix of a formula."""
        result = await self._runner.run_as_user(
            account, f'"{HOMEBREW_BIN}" --prefix {shlex.quote(formula)}',
        )
        return result.stdout.strip()

    async def link_python(self, account: str, formula: str = "python@3.12") -> None:
        """Expose ``python3`` next to the versioned interpreter of a formula."""
        version = formula.partition("@")[2]
        if not version:
            return
        bin_dir = f"{await self.prefix(account, formula)}/bin"
        await self._runner.run_as_user(
            account,
            f"ln -sf {shlex.quote(f'{bin_dir}/python{version}')} "
            f"{shlex.quote(f'{bin_dir}/python3')}",
        )
