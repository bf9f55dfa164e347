"""Session-name validation and account-name derivation.

The ``alcl_<host-user>_<session>`` format is stable: other tooling relies on
it to discover sessions by prefix.
"""
import re

from alcless.core.constants import ACCOUNT_PREFIX, MAX_ACCOUNT_NAME_LENGTH
from alcless.core.exceptions import InvalidSessionNameError


# No dots (sudo skips included files containing one) and no underscores
# (the account prefix is split on them).
SESSION_NAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9-]*$")


def validate_session_name(session: str) -> str:
    """Check that a session name is usable in an account name.

    Args:
        session: Caller-supplied session name.

    Returns:
        The unchanged session name.

    Raises:
        InvalidSessionNameError: If the name has disallowed characters.
    """
    if not SESSION_NAME_PATTERN.match(session):
        raise InvalidSessionNameError(
            f"Invalid session name {session!r}: use letters, digits and '-', "
            "starting with a letter or digit"
        )
    return session


def account_prefix(host_user: str) -> str:
    """Prefix shared by every account of one host user."""
    return f"{ACCOUNT_PREFIX}_{host_user}_"


def derive_account_name(host_user: str, session: str) -> str:
    """Derive the OS account name backing a session.

    Args:
        host_user: Name of the operator running alcless.
        session: Session name.

    Returns:
        ``alcl_<host_user>_<session>``.

    Raises:
        InvalidSessionNameError: If the session name is invalid or the
            result exceeds the host username length limit.
    """
    validate_session_name(session)
    account = f"{account_prefix(host_user)}{session}"
    if len(account) > MAX_ACCOUNT_NAME_LENGTH:
        raise InvalidSessionNameError(
            f"Account name {account!r} is {len(account)} characters long; "
            f"the limit is {MAX_ACCOUNT_NAME_LENGTH}. Use a shorter session name."
        )
    return account


def session_from_account(host_user: str, account: str) -> str | None:
    """Recover the session name from an account name.

    Returns:
        The session name, or None if the account does not belong to host_user.
    """
    prefix = account_prefix(host_user)
    if not account.startswith(prefix):
        return None
    session = account[len(prefix):]
    if not SESSION_NAME_PATTERN.match(session):
        return None
    return session
