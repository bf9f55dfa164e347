"""Session discovery and bulk teardown utilities.

Sessions are found by account-name prefix, so accounts orphaned by an
interrupted run can be cleaned up without any stored state.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from loguru import logger

from alcless.core.exceptions import AlclessError
from alcless.core.naming import account_prefix, session_from_account


if TYPE_CHECKING:
    from alcless.sandbox.lifecycle import SessionLifecycleManager
    from alcless.sandbox.provider import IdentityDirectory


async def find_sessions(directory: IdentityDirectory, prefix: str = "") -> list[str]:
    """List session names of the host user found in the directory.

    Args:
        directory: Identity directory to enumerate.
        prefix: Only return sessions whose name starts with this.

    Returns:
        Sorted session names.
    """
    host_user = await directory.host_user()
    account_filter = account_prefix(host_user) + prefix
    sessions = []
    for account in await directory.list_accounts():
        if not account.startswith(account_filter):
            continue
        session = session_from_account(host_user, account)
        if session is not None:
            sessions.append(session)
    return sorted(sessions)


async def teardown_sessions(
    manager: SessionLifecycleManager,
    sessions: list[str],
) -> list[str]:
    """Destroy sessions one by one, continuing past failures.

    Args:
        manager: Lifecycle manager performing each destroy.
        sessions: Session names to tear down.

    Returns:
        Names of sessions that could not be torn down.
    """
    if not sessions:
        logger.debug("No sessions to clean up")
        return []

    logger.info("Tearing down sessions", count=len(sessions))
    failed: list[str] = []
    for session in sessions:
        try:
            await manager.destroy(session)
        except AlclessError as exc:
            logger.warning("Failed to tear down session", session=session, error=str(exc))
            failed.append(session)

    if failed:
        logger.warning("Some sessions were not removed", count=len(failed))
    else:
        logger.info("Sessions removed", count=len(sessions))
    return failed
