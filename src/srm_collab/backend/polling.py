"""Change detection for the hosted platform by periodic snapshots.

The platform's realtime channel is a websocket protocol of its own; this
module provides the same ``subscribe`` contract by re-querying a filtered
collection on an interval and diffing consecutive snapshots by record id.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Mapping
from typing import Any, Protocol

from srm_collab.backend.base import ChangeEvent, ChangeHandler, ChangeType, Query, Record
from srm_collab.core.errors import BackendError
from srm_collab.core.settings import settings

logger = logging.getLogger(__name__)


class _Queryable(Protocol):
    async def query(self, query: Query) -> list[Record]: ...


def diff_snapshots(
    collection: str,
    previous: Mapping[Any, Record],
    current: Mapping[Any, Record],
) -> list[ChangeEvent]:
    """Return the change events that turn ``previous`` into ``current``."""
    events: list[ChangeEvent] = []
    for record_id, record in current.items():
        old = previous.get(record_id)
        if old is None:
            events.append(ChangeEvent(collection, ChangeType.INSERT, record))
        elif old != record:
            events.append(ChangeEvent(collection, ChangeType.UPDATE, record, old))
    for record_id, old in previous.items():
        if record_id not in current:
            events.append(ChangeEvent(collection, ChangeType.DELETE, old, old))
    return events


class ChangePoller:
    """Periodically re-reads a filtered collection and reports changes."""

    def __init__(
        self,
        backend: _Queryable,
        query: Query,
        handler: ChangeHandler,
        *,
        interval: float | None = None,
    ) -> None:
        """Initialize the poller.

        Args:
            backend: Backend used for the snapshot queries.
            query: Collection and filters to watch. Ordering and limits are ignored.
            handler: Callback receiving each change event.
            interval: Seconds between snapshots. Defaults to the configured
                realtime poll interval.
        """
        self.backend = backend
        self.query = Query(query.collection, query.filters)
        self.handler = handler
        self.interval = max(
            0.05,
            float(interval if interval is not None else settings.realtime_poll_interval_seconds),
        )
        self._snapshot: dict[Any, Record] | None = None
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()

    async def start(self) -> None:
        """Take the baseline snapshot and start the polling loop."""
        if self._snapshot is None:
            self._snapshot = await self._fetch()

        if self._task is None or self._task.done():
            self._stopping.clear()
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop the polling loop."""
        if self._task is None:
            return

        self._stopping.set()
        await self._task
        self._task = None

    async def unsubscribe(self) -> None:
        await self.stop()

    async def poll_once(self) -> list[ChangeEvent]:
        """Fetch one snapshot, deliver the differences and return them."""
        current = await self._fetch()
        previous = self._snapshot if self._snapshot is not None else current
        self._snapshot = current

        events = diff_snapshots(self.query.collection, previous, current)
        for event in events:
            result = self.handler(event)
            if inspect.isawaitable(result):
                await result
        return events

    async def _fetch(self) -> dict[Any, Record]:
        rows = await self.backend.query(self.query)
        return {row.get("id"): row for row in rows}

    async def _run(self) -> None:
        while not self._stopping.is_set():
            try:
                await self.poll_once()
            except BackendError as e:
                logger.warning(
                    "ChangePoller for %s encountered BackendError: %s", self.query.collection, e
                )
                await self._sleep(min(self.interval * 4, 30.0))
                continue
            except (ValueError, TypeError, KeyError, AttributeError) as e:
                logger.error(
                    "ChangePoller for %s encountered handler error: %s",
                    self.query.collection,
                    e,
                    exc_info=True,
                )

            await self._sleep(self.interval)

    async def _sleep(self, seconds: float) -> None:
        try:
            await asyncio.wait_for(self._stopping.wait(), timeout=seconds)
        except TimeoutError:
            pass


__all__ = ["ChangePoller", "diff_snapshots"]
