"""Tests for session-name validation and account-name derivation."""

import pytest

from alcless.core.exceptions import InvalidSessionNameError
from alcless.core.naming import (
    account_prefix,
    derive_account_name,
    session_from_account,
    validate_session_name,
)


class TestDeriveAccountName:
    """derive_account_name() is a pure function of host user and session."""

    def test_format(self) -> None:
        assert derive_account_name("alice", "x") == "alcl_alice_x"

    def test_is_deterministic(self) -> None:
        assert derive_account_name("alice", "dev-1") == derive_account_name("alice", "dev-1")

    def test_different_hosts_get_different_accounts(self) -> None:
        assert derive_account_name("alice", "dev") != derive_account_name("bob", "dev")

    def test_length_limit(self) -> None:
        # alcl_ + alice_ = 11 characters, leaving 21 for the session
        assert len(derive_account_name("alice", "a" * 21)) == 32
        with pytest.raises(InvalidSessionNameError, match="limit is 32"):
            derive_account_name("alice", "a" * 22)

    def test_invalid_session_rejected(self) -> None:
        with pytest.raises(InvalidSessionNameError):
            derive_account_name("alice", "bad/name")


class TestValidateSessionName:
    """validate_session_name() rules."""

    @pytest.mark.parametrize("name", ["dev", "dev-1", "E2E-test-2", "1"])
    def test_valid(self, name: str) -> None:
        assert validate_session_name(name) == name

    @pytest.mark.parametrize("name", ["", "-dev", "dev.1", "dev_1", "dev 1", "a/b"])
    def test_invalid(self, name: str) -> None:
        with pytest.raises(InvalidSessionNameError):
            validate_session_name(name)

    def test_error_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            validate_session_name("dev.1")


class TestSessionFromAccount:
    """session_from_account() recovers session names for discovery."""

    def test_round_trip(self) -> None:
        account = derive_account_name("alice", "e2e-test-1")
        assert session_from_account("alice", account) == "e2e-test-1"

    def test_other_host_user(self) -> None:
        assert session_from_account("alice", "alcl_bob_dev") is None

    def test_unrelated_account(self) -> None:
        assert session_from_account("alice", "_www") is None

    def test_prefix(self) -> None:
        assert account_prefix("alice") == "alcl_alice_"
