"""Unit tests for CommandExecutor."""
import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from alcless.core.exceptions import AuthenticationError, CommandError, CommandTimeoutError
from alcless.sandbox.executor import CommandExecutor


def _mock_proc(stdout: bytes = b"", stderr: bytes = b"", returncode: int = 0) -> MagicMock:
    proc = MagicMock()
    proc.communicate = AsyncMock(return_value=(stdout, stderr))
    proc.returncode = returncode
    return proc


class TestRun:
    """Tests for CommandExecutor.run()."""

    async def test_captures_output(self) -> None:
        """Should decode stdout and stderr into the result."""
        proc = _mock_proc(b"hello\n", b"warn\n")
        with patch("asyncio.create_subprocess_exec", return_value=proc) as mock_exec:
            result = await CommandExecutor().run("echo", ["hello"])

        assert result.ok
        assert result.stdout == "hello\n"
        assert result.stderr == "warn\n"
        assert result.command == ["echo", "hello"]
        assert mock_exec.call_args.args == ("echo", "hello")

    async def test_nonzero_exit_raises(self) -> None:
        """Should raise CommandError carrying stderr on failure."""
        proc = _mock_proc(b"", b"permission denied\n", returncode=1)
        with (
            patch("asyncio.create_subprocess_exec", return_value=proc),
            pytest.raises(CommandError) as exc_info,
        ):
            await CommandExecutor().run("false")

        assert exc_info.value.exit_code == 1
        assert "permission denied" in exc_info.value.output

    async def test_nonzero_exit_without_check(self) -> None:
        """Should return the failing result when check=False."""
        proc = _mock_proc(b"", b"", returncode=67)
        with patch("asyncio.create_subprocess_exec", return_value=proc):
            result = await CommandExecutor().run("id", ["-u", "nobody-here"], check=False)

        assert result.exit_code == 67
        assert not result.ok

    async def test_missing_executable(self) -> None:
        """Should map a missing binary to exit code 127."""
        with (
            patch("asyncio.create_subprocess_exec", side_effect=FileNotFoundError("nope")),
            pytest.raises(CommandError) as exc_info,
        ):
            await CommandExecutor().run("no-such-tool")

        assert exc_info.value.exit_code == 127

    async def test_timeout_kills_process(self) -> None:
        """Should kill the process and raise CommandTimeoutError."""
        proc = MagicMock()
        proc.returncode = None
        calls = 0

        async def communicate(input: bytes | None = None) -> tuple[bytes, bytes]:
            nonlocal calls
            calls += 1
            if calls == 1:
                await asyncio.sleep(10)
            return b"", b""

        proc.communicate = communicate
        with (
            patch("asyncio.create_subprocess_exec", return_value=proc),
            pytest.raises(CommandTimeoutError) as exc_info,
        ):
            await CommandExecutor().run("sleep", ["100"], timeout=0.01)

        proc.kill.assert_called_once()
        assert exc_info.value.timeout == 0.01
        assert isinstance(exc_info.value, TimeoutError)

    async def test_input_is_written(self) -> None:
        """Should pass input bytes to communicate()."""
        proc = _mock_proc()
        with patch("asyncio.create_subprocess_exec", return_value=proc):
            await CommandExecutor().run("tee", ["/tmp/x"], input=b"data")

        proc.communicate.assert_awaited_once_with(input=b"data")


class TestSudoAndUser:
    """Tests for privileged and per-account execution."""

    async def test_sudo_run_is_non_interactive(self) -> None:
        proc = _mock_proc()
        with patch("asyncio.create_subprocess_exec", return_value=proc) as mock_exec:
            await CommandExecutor().sudo_run("dscacheutil", ["-flushcache"])

        assert mock_exec.call_args.args == ("sudo", "-n", "dscacheutil", "-flushcache")

    async def test_run_as_user_uses_login_shell(self) -> None:
        proc = _mock_proc(b"git version 2.45\n")
        with patch("asyncio.create_subprocess_exec", return_value=proc) as mock_exec:
            result = await CommandExecutor().run_as_user("alcl_alice_dev", "git --version")

        assert mock_exec.call_args.args == (
            "sudo", "-n", "su", "-", "alcl_alice_dev", "-c", "git --version",
        )
        assert result.stdout.startswith("git version")


class TestCredentials:
    """Tests for sudo credential handling."""

    async def test_validate_credentials_success(self) -> None:
        proc = MagicMock()
        proc.wait = AsyncMock(return_value=0)
        with patch("asyncio.create_subprocess_exec", return_value=proc) as mock_exec:
            await CommandExecutor().validate_credentials()

        assert mock_exec.call_args.args == ("sudo", "-v")

    async def test_validate_credentials_refused(self) -> None:
        """Should raise AuthenticationError when sudo refuses."""
        proc = MagicMock()
        proc.wait = AsyncMock(return_value=1)
        with (
            patch("asyncio.create_subprocess_exec", return_value=proc),
            pytest.raises(AuthenticationError),
        ):
            await CommandExecutor().validate_credentials()

    async def test_validate_credentials_without_sudo(self) -> None:
        with (
            patch("asyncio.create_subprocess_exec", side_effect=FileNotFoundError("sudo")),
            pytest.raises(AuthenticationError, match="not available"),
        ):
            await CommandExecutor().validate_credentials()

    async def test_refresh_credentials(self) -> None:
        proc = _mock_proc()
        with patch("asyncio.create_subprocess_exec", return_value=proc) as mock_exec:
            await CommandExecutor().refresh_credentials()

        assert mock_exec.call_args.args == ("sudo", "-n", "-v")
