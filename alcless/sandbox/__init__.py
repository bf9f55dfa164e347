"""Session sandbox infrastructure: OS accounts as disposable sandboxes.

Public names are resolved lazily on first attribute access.
"""

from __future__ import annotations  # noqa: I001

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from alcless.sandbox.batch import BatchOrchestrator, run_batch
    from alcless.sandbox.executor import CommandExecutor
    from alcless.sandbox.lifecycle import SessionLifecycleManager
    from alcless.sandbox.retry import with_retry

__all__ = [
    "BatchOrchestrator",
    "CommandExecutor",
    "SessionLifecycleManager",
    "run_batch",
    "with_retry",
]


def __getattr__(name: str) -> object:
    if name in ("BatchOrchestrator", "run_batch"):
        from alcless.sandbox import batch  # noqa: PLC0415

        return getattr(batch, name)
    if name == "CommandExecutor":
        from alcless.sandbox.executor import CommandExecutor  # noqa: PLC0415

        return CommandExecutor
    if name == "SessionLifecycleManager":
        from alcless.sandbox.lifecycle import SessionLifecycleManager  # noqa: PLC0415

        return SessionLifecycleManager
    if name == "with_retry":
        from alcless.sandbox.retry import with_retry  # noqa: PLC0415

        return with_retry
    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
