"""Scoped realtime subscriptions."""

from __future__ import annotations

import inspect
import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Sequence
from contextlib import asynccontextmanager
from typing import Any

from srm_collab.backend.base import Backend, ChangeEvent, ChangeHandler, Filter, Subscription

logger = logging.getLogger(__name__)


@asynccontextmanager
async def subscription(
    backend: Backend,
    collection: str,
    filters: Sequence[Filter],
    handler: ChangeHandler,
) -> AsyncIterator[Subscription]:
    """Subscribe on entry and unsubscribe unconditionally on exit."""
    sub = await backend.subscribe(collection, filters, handler)
    try:
        yield sub
    finally:
        await sub.unsubscribe()


@asynccontextmanager
async def refetch_on_change(
    backend: Backend,
    collection: str,
    filters: Sequence[Filter],
    refetch: Callable[[], Awaitable[Any]],
    on_change: Callable[[Any], Awaitable[None] | None] | None = None,
) -> AsyncIterator[Subscription]:
    """Re-run ``refetch`` on every change to the collection.

    ``on_change`` receives the refetched value.
    """

    async def handle(event: ChangeEvent) -> None:
        logger.debug("%s %s, refetching", event.collection, event.type.value)
        result = await refetch()
        if on_change is not None:
            outcome = on_change(result)
            if inspect.isawaitable(outcome):
                await outcome

    async with subscription(backend, collection, filters, handle) as sub:
        yield sub


__all__ = ["refetch_on_change", "subscription"]
