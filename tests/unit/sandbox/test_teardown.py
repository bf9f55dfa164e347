"""Unit tests for session discovery and bulk teardown."""
from unittest.mock import AsyncMock

from alcless.core.exceptions import ProvisioningError
from alcless.sandbox.lifecycle import SessionLifecycleManager
from alcless.sandbox.teardown import find_sessions, teardown_sessions


class TestFindSessions:
    """Tests for find_sessions()."""

    async def test_only_own_sessions(self, fake_directory) -> None:
        fake_directory.accounts.update({
            "_www",
            "alice",
            "alcl_alice_dev",
            "alcl_alice_e2e-test-1",
            "alcl_bob_dev",
        })

        assert await find_sessions(fake_directory) == ["dev", "e2e-test-1"]

    async def test_prefix_filter(self, fake_directory) -> None:
        fake_directory.accounts.update({"alcl_alice_dev", "alcl_alice_e2e-test-1", "alcl_alice_e2e-test-2"})

        assert await find_sessions(fake_directory, "e2e-") == ["e2e-test-1", "e2e-test-2"]

    async def test_nothing_found(self, fake_directory) -> None:
        assert await find_sessions(fake_directory) == []


class TestTeardownSessions:
    """Tests for teardown_sessions()."""

    async def test_continues_past_failures(self) -> None:
        """Should destroy every session and report the ones that failed."""
        manager = AsyncMock(spec=SessionLifecycleManager)

        async def destroy(session: str) -> None:
            if session == "b":
                raise ProvisioningError("delete_account", "busy")

        manager.destroy.side_effect = destroy

        failed = await teardown_sessions(manager, ["a", "b", "c"])

        assert failed == ["b"]
        assert [c.args[0] for c in manager.destroy.await_args_list] == ["a", "b", "c"]

    async def test_empty_is_noop(self) -> None:
        manager = AsyncMock(spec=SessionLifecycleManager)

        assert await teardown_sessions(manager, []) == []
        manager.destroy.assert_not_awaited()
