"""Collaborator contract for the hosted data platform.

The service layer never talks to a database or HTTP API directly; it issues
:class:`Query` objects and writes through a :class:`Backend`. Two
implementations exist: :class:`~srm_collab.backend.rest.RestBackend` for the
hosted platform and :class:`~srm_collab.backend.sql.SqlBackend` for local runs.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Protocol, runtime_checkable

Record = dict[str, Any]


class FilterOp(str, Enum):
    """Predicate operators understood by every backend."""

    EQ = "eq"
    NEQ = "neq"
    IN = "in"
    NOT_IN = "not_in"
    CONTAINS = "contains"
    GTE = "gte"
    LT = "lt"


@dataclass(frozen=True)
class Filter:
    """Single column predicate."""

    column: str
    op: FilterOp
    value: Any


@dataclass(frozen=True)
class Order:
    """Sort key for a query."""

    column: str
    descending: bool = False


@dataclass(frozen=True)
class Query:
    """Read request against one collection."""

    collection: str
    filters: tuple[Filter, ...] = ()
    order: tuple[Order, ...] = ()
    limit: int | None = None


def eq(column: str, value: Any) -> Filter:
    return Filter(column, FilterOp.EQ, value)


def neq(column: str, value: Any) -> Filter:
    return Filter(column, FilterOp.NEQ, value)


def in_(column: str, values: Iterable[Any]) -> Filter:
    return Filter(column, FilterOp.IN, tuple(values))


def not_in(column: str, values: Iterable[Any]) -> Filter:
    return Filter(column, FilterOp.NOT_IN, tuple(values))


def contains(column: str, values: Iterable[Any]) -> Filter:
    """Match rows whose list column holds every value given."""
    return Filter(column, FilterOp.CONTAINS, tuple(values))


def gte(column: str, value: Any) -> Filter:
    return Filter(column, FilterOp.GTE, value)


def lt(column: str, value: Any) -> Filter:
    return Filter(column, FilterOp.LT, value)


def _comparable(value: Any) -> Any:
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            return value
    return value


def matches_filter(record: Mapping[str, Any], flt: Filter) -> bool:
    """Evaluate one predicate against an in-memory record."""
    value = record.get(flt.column)
    if flt.op is FilterOp.EQ:
        return value == flt.value
    if flt.op is FilterOp.NEQ:
        return value != flt.value
    if flt.op is FilterOp.IN:
        return value in flt.value
    if flt.op is FilterOp.NOT_IN:
        return value not in flt.value
    if flt.op is FilterOp.CONTAINS:
        return set(flt.value).issubset(value or ())
    if value is None:
        return False
    left, right = value, flt.value
    if isinstance(right, datetime | date):
        left = _comparable(left)
    if flt.op is FilterOp.GTE:
        return left >= right
    if flt.op is FilterOp.LT:
        return left < right
    raise ValueError(f"Unsupported filter operator: {flt.op}")


def matches_filters(record: Mapping[str, Any], filters: Sequence[Filter]) -> bool:
    """Return True when the record satisfies every predicate (logical AND)."""
    return all(matches_filter(record, flt) for flt in filters)


class ChangeType(str, Enum):
    """Kinds of row changes delivered to subscribers."""

    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


@dataclass(frozen=True)
class ChangeEvent:
    """Notification that a row in a watched collection changed."""

    collection: str
    type: ChangeType
    record: Mapping[str, Any]
    old_record: Mapping[str, Any] | None = field(default=None)


ChangeHandler = Callable[[ChangeEvent], Awaitable[None] | None]


@runtime_checkable
class Subscription(Protocol):
    """Handle returned by :meth:`Backend.subscribe`."""

    async def unsubscribe(self) -> None:
        """Stop delivering events. Safe to call more than once."""


class Backend(Protocol):
    """Operations the service layer needs from the data platform."""

    async def query(self, query: Query) -> list[Record]:
        """Return records of ``query.collection`` matching all filters."""

    async def insert(self, collection: str, payload: Mapping[str, Any]) -> Record:
        """Insert a record and return it as stored."""

    async def update(
        self,
        collection: str,
        record_id: str,
        payload: Mapping[str, Any],
    ) -> Record:
        """Overwrite the given fields of one record and return it."""

    async def upsert(
        self,
        collection: str,
        payload: Mapping[str, Any],
        *,
        on_conflict: str,
    ) -> Record:
        """Insert, or update the record whose ``on_conflict`` column matches."""

    async def delete(self, collection: str, record_id: str) -> None:
        """Remove one record."""

    async def upload(
        self,
        bucket: str,
        path: str,
        data: bytes,
        *,
        content_type: str | None = None,
        upsert: bool = False,
    ) -> str:
        """Store bytes and return their public URL."""

    async def subscribe(
        self,
        collection: str,
        filters: Sequence[Filter],
        handler: ChangeHandler,
    ) -> Subscription:
        """Deliver change events for matching rows until unsubscribed."""

    def bind(self, access_token: str | None) -> Backend:
        """Return a backend acting on behalf of the token's user."""

    async def close(self) -> None:
        """Release network or database resources."""


__all__ = [
    "Backend",
    "ChangeEvent",
    "ChangeHandler",
    "ChangeType",
    "Filter",
    "FilterOp",
    "Order",
    "Query",
    "Record",
    "Subscription",
    "contains",
    "eq",
    "gte",
    "in_",
    "lt",
    "matches_filter",
    "matches_filters",
    "neq",
    "not_in",
]
