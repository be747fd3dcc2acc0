"""Data platform backends used by the service layer."""

from .base import (
    Backend,
    ChangeEvent,
    ChangeHandler,
    ChangeType,
    Filter,
    FilterOp,
    Order,
    Query,
    Record,
    Subscription,
    contains,
    eq,
    gte,
    in_,
    lt,
    neq,
    not_in,
)

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
    "neq",
    "not_in",
]
