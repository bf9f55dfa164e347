"""Unit tests for ReadinessPoller."""
from unittest.mock import AsyncMock, patch

import pytest

from alcless.core.exceptions import CommandError, ReadinessTimeoutError
from alcless.sandbox.readiness import ReadinessPoller


ACCOUNT = "alcl_alice_dev"


class TestIsNetworkReady:
    """Tests for the network check fallback chain."""

    async def test_first_tool_succeeds(self, mock_runner, fake_directory) -> None:
        poller = ReadinessPoller(mock_runner, fake_directory)

        assert await poller.is_network_ready(ACCOUNT)
        mock_runner.run_as_user.assert_awaited_once_with(ACCOUNT, "host github.com")

    async def test_falls_back_to_next_tool(self, mock_runner, fake_directory, result_factory) -> None:
        """Should try nslookup and ping when host is unavailable."""
        mock_runner.run_as_user.side_effect = [
            CommandError(["host"], 127),
            CommandError(["nslookup"], 1),
            result_factory(),
        ]
        poller = ReadinessPoller(mock_runner, fake_directory)

        assert await poller.is_network_ready(ACCOUNT)
        scripts = [c.args[1] for c in mock_runner.run_as_user.await_args_list]
        assert scripts == ["host github.com", "nslookup github.com", "ping -c 1 github.com"]

    async def test_all_tools_fail(self, mock_runner, fake_directory) -> None:
        mock_runner.run_as_user.side_effect = CommandError(["host"], 1)
        poller = ReadinessPoller(mock_runner, fake_directory)

        assert not await poller.is_network_ready(ACCOUNT)
        assert mock_runner.run_as_user.await_count == 3


class TestWaitUntilReady:
    """Tests for ReadinessPoller.wait_until_ready()."""

    async def test_ready_on_first_poll(self, mock_runner, fake_directory) -> None:
        fake_directory.accounts.add(ACCOUNT)
        poller = ReadinessPoller(mock_runner, fake_directory, max_attempts=5, poll_interval=2.0)

        with patch("alcless.sandbox.readiness.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            await poller.wait_until_ready(ACCOUNT)

        mock_sleep.assert_not_awaited()
        assert fake_directory.flushes == 0

    async def test_becomes_active_after_nudges(self, mock_runner, fake_directory) -> None:
        """Should flush and reload while inactive, then succeed."""
        fake_directory.accounts.add(ACCOUNT)
        fake_directory.activate_after = 2
        poller = ReadinessPoller(mock_runner, fake_directory, max_attempts=5, poll_interval=2.0)

        with patch("alcless.sandbox.readiness.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            await poller.wait_until_ready(ACCOUNT)

        assert fake_directory.flushes == 2
        assert fake_directory.reloads == 2
        assert mock_sleep.await_count == 2

    async def test_never_active_times_out(self, mock_runner, fake_directory) -> None:
        """Should poll exactly max_attempts times, sleeping only between polls."""
        poller = ReadinessPoller(mock_runner, fake_directory, max_attempts=4, poll_interval=1.5)

        with (
            patch("alcless.sandbox.readiness.asyncio.sleep", new_callable=AsyncMock) as mock_sleep,
            pytest.raises(ReadinessTimeoutError) as exc_info,
        ):
            await poller.wait_until_ready(ACCOUNT)

        assert exc_info.value.attempts == 4
        assert exc_info.value.active is False
        assert exc_info.value.network is False
        assert fake_directory.flushes == 4
        assert mock_sleep.await_count == 3
        mock_sleep.assert_awaited_with(1.5)
        mock_runner.run_as_user.assert_not_awaited()

    async def test_active_without_network_times_out(self, mock_runner, fake_directory) -> None:
        fake_directory.accounts.add(ACCOUNT)
        mock_runner.run_as_user.side_effect = CommandError(["host"], 1)
        poller = ReadinessPoller(mock_runner, fake_directory, max_attempts=2, poll_interval=0)

        with pytest.raises(ReadinessTimeoutError) as exc_info:
            await poller.wait_until_ready(ACCOUNT)

        assert exc_info.value.active is True
        assert exc_info.value.network is False
        assert fake_directory.flushes == 0

    async def test_overrides(self, mock_runner, fake_directory) -> None:
        poller = ReadinessPoller(mock_runner, fake_directory, max_attempts=15, poll_interval=2.0)

        with (
            patch("alcless.sandbox.readiness.asyncio.sleep", new_callable=AsyncMock) as mock_sleep,
            pytest.raises(ReadinessTimeoutError) as exc_info,
        ):
            await poller.wait_until_ready(ACCOUNT, max_attempts=2, poll_interval=0.25)

        assert exc_info.value.attempts == 2
        mock_sleep.assert_awaited_once_with(0.25)

    async def test_flush_failure_is_tolerated(self, mock_runner, fake_directory) -> None:
        fake_directory.flush_cache = AsyncMock(side_effect=CommandError(["dscacheutil"], 1))
        poller = ReadinessPoller(mock_runner, fake_directory, max_attempts=2, poll_interval=0)

        with pytest.raises(ReadinessTimeoutError):
            await poller.wait_until_ready(ACCOUNT)

        assert fake_directory.reloads == 2
