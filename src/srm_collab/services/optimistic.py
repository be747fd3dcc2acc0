"""Optimistic increments with exact rollback."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from srm_collab.services.session import MutationGuard

logger = logging.getLogger(__name__)

T = TypeVar("T")

Revert = Callable[[], None]


async def run_optimistic(
    guard: MutationGuard,
    kind: str,
    target_id: str,
    *,
    apply: Callable[[], Revert],
    write: Callable[[], Awaitable[T]],
) -> T:
    """Apply a local change, persist it, and undo it if the write fails.

    Args:
        guard: Session guard; the ``(kind, target_id)`` key is claimed first so a
            repeat is rejected before any state changes or request is made.
        kind: Mutation kind, e.g. ``"like"``.
        target_id: Id of the record being incremented.
        apply: Updates local state and returns a callable restoring the exact
            previous value.
        write: Issues the backend write.

    Returns:
        Whatever ``write`` returned.

    Raises:
        DuplicateMutationError: If the key was already claimed in this session.
        Exception: Any failure of ``write``, after local state is restored and
            the key released. Cancellation of the write is rolled back the
            same way.
    """
    guard.claim(kind, target_id)
    revert = apply()
    try:
        return await write()
    except (Exception, asyncio.CancelledError) as e:
        revert()
        guard.release(kind, target_id)
        logger.warning("Rolled back %s on %s: %s", kind, target_id, e)
        raise


__all__ = ["run_optimistic"]
