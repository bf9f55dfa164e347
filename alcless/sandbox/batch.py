"""Bounded-concurrency batch runs over many sessions.

A fixed pool of workers pulls session names from a queue, so at most
``concurrency`` lifecycles are in flight. Each session's outcome is
independent; fail-fast only stops admission of sessions that have not
started yet, since an account mutation cannot be safely interrupted.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Awaitable, Callable, Sequence
from typing import TYPE_CHECKING, Any

from loguru import logger

from alcless.core.constants import DEFAULT_CONCURRENCY
from alcless.core.exceptions import AuthenticationError
from alcless.core.types import BatchResult, SessionOutcome


if TYPE_CHECKING:
    from alcless.sandbox.heartbeat import PrivilegeHeartbeat


SessionStep = Callable[[str], Awaitable[Any]]


class BatchOrchestrator:
    """Runs a lifecycle step for many sessions under a concurrency bound.

    Args:
        concurrency: Maximum sessions in flight at once.
        fail_fast: Skip sessions not yet started once any session fails.
        heartbeat: Optional credential keep-alive tied to the batch lifetime.
    """

    def __init__(
        self,
        concurrency: int = DEFAULT_CONCURRENCY,
        fail_fast: bool = False,
        heartbeat: PrivilegeHeartbeat | None = None,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.concurrency = concurrency
        self.fail_fast = fail_fast
        self._heartbeat = heartbeat

    async def run(self, sessions: Sequence[str], step: SessionStep) -> BatchResult:
        """Run ``step`` for every session.

        Args:
            sessions: Unique session names, in reporting order.
            step: Coroutine function applied to each session name.

        Returns:
            BatchResult with one outcome per session, in input order.

        Raises:
            ValueError: If a session name appears twice.
            AuthenticationError: If any step was refused privileges; raised
                after in-flight sessions finish.
        """
        duplicates = sorted({name for name in sessions if sessions.count(name) > 1})
        if duplicates:
            raise ValueError(f"Duplicate session names in batch: {', '.join(duplicates)}")

        queue: asyncio.Queue[str] = asyncio.Queue()
        for name in sessions:
            queue.put_nowait(name)

        outcomes: dict[str, SessionOutcome] = {}
        stop_admission = asyncio.Event()
        auth_errors: list[AuthenticationError] = []

        async def worker(worker_id: int) -> None:
            while True:
                try:
                    name = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return
                if stop_admission.is_set():
                    outcomes[name] = SessionOutcome(session=name, status="skipped")
                    logger.warning("Session skipped after earlier failure", session=name)
                    continue

                logger.debug("Session started", session=name, worker=worker_id)
                try:
                    await step(name)
                except AuthenticationError as e:
                    auth_errors.append(e)
                    stop_admission.set()
                    outcomes[name] = _failed(name, e)
                except Exception as e:
                    logger.error("Session failed", session=name, error=str(e))
                    outcomes[name] = _failed(name, e)
                    if self.fail_fast:
                        stop_admission.set()
                else:
                    outcomes[name] = SessionOutcome(session=name, status="succeeded")
                    logger.debug("Session finished", session=name, worker=worker_id)

        heartbeat = self._heartbeat if self._heartbeat is not None else contextlib.nullcontext()
        async with heartbeat:
            workers = min(self.concurrency, len(sessions))
            await asyncio.gather(*(worker(i) for i in range(workers)))

        result = BatchResult(outcomes={name: outcomes[name] for name in sessions})
        logger.info(
            "Batch finished",
            succeeded=len(result.succeeded),
            failed=len(result.failed),
            skipped=len(result.skipped),
        )
        if auth_errors:
            auth_errors[0].batch_result = result
            raise auth_errors[0]
        return result


def _failed(name: str, error: BaseException) -> SessionOutcome:
    return SessionOutcome(
        session=name,
        status="failed",
        error=str(error),
        error_type=type(error).__name__,
    )


async def run_batch(
    sessions: Sequence[str],
    concurrency: int,
    step: SessionStep,
    *,
    fail_fast: bool = False,
    heartbeat: PrivilegeHeartbeat | None = None,
) -> BatchResult:
    """Run ``step`` across ``sessions`` with at most ``concurrency`` in flight."""
    orchestrator = BatchOrchestrator(concurrency=concurrency, fail_fast=fail_fast, heartbeat=heartbeat)
    return await orchestrator.run(sessions, step)
