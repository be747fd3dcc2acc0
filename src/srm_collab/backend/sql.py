"""Local backend backed by SQLAlchemy.

Implements the same contract as the hosted platform over the ORM tables in
:mod:`srm_collab.models`, for development and tests. Change events are fanned
out in-process after each committed write. There is no row level security:
ownership checks live in the service layer.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Mapping, Sequence
from datetime import UTC, datetime
from itertools import count
from typing import Any

from sqlalchemy import Table, delete, insert, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.sql import Select

from srm_collab.backend.base import (
    Backend,
    ChangeEvent,
    ChangeHandler,
    ChangeType,
    Filter,
    FilterOp,
    Query,
    Record,
    matches_filters,
)
from srm_collab.core.errors import (
    BackendConnectionError,
    ConstraintError,
    RecordNotFoundError,
    StorageError,
)
from srm_collab.core.settings import settings
from srm_collab.db.session import Base
from srm_collab.db.time import utcnow
from srm_collab.models import StoredObject
from srm_collab.models.profile import new_id

logger = logging.getLogger(__name__)


class LocalSubscription:
    """Registration in the in-process change fan-out."""

    def __init__(self, backend: SqlBackend, key: int) -> None:
        self._backend = backend
        self._key = key

    async def unsubscribe(self) -> None:
        self._backend._subscribers.pop(self._key, None)


class SqlBackend:
    """Backend implementation over a SQLAlchemy engine."""

    def __init__(self, engine: Engine, *, public_url: str | None = None) -> None:
        """Initialize the backend.

        Args:
            engine: Engine whose database holds the collection tables.
            public_url: Prefix for URLs returned by :meth:`upload`.
        """
        self.engine = engine
        self.public_url = (public_url or settings.storage_public_url).rstrip("/")
        self._session_factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
        # SQLite drops offsets, so timestamps are stored as naive UTC there.
        self._naive_datetimes = engine.dialect.name == "sqlite"
        self._subscribers: dict[int, tuple[str, tuple[Filter, ...], ChangeHandler]] = {}
        self._subscriber_ids = count(1)

    def bind(self, access_token: str | None) -> Backend:
        return self

    async def close(self) -> None:
        self._subscribers.clear()

    # ------------------------------------------------------------------ helpers

    def _table(self, collection: str) -> Table:
        try:
            return Base.metadata.tables[collection]
        except KeyError as exc:
            raise ValueError(f"Unknown collection: {collection}") from exc

    def _to_db(self, value: Any) -> Any:
        if isinstance(value, datetime) and value.tzinfo is not None:
            value = value.astimezone(UTC)
            if self._naive_datetimes:
                value = value.replace(tzinfo=None)
        return value

    @staticmethod
    def _from_db(value: Any) -> Any:
        if isinstance(value, datetime) and value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    def _row_to_record(self, row: Any) -> Record:
        return {key: self._from_db(value) for key, value in row._mapping.items()}

    def _payload(self, table: Table, payload: Mapping[str, Any]) -> dict[str, Any]:
        unknown = set(payload) - set(table.c.keys())
        if unknown:
            raise ConstraintError(f"Unknown columns for {table.name}: {sorted(unknown)}")
        return {key: self._to_db(value) for key, value in payload.items()}

    def _apply_filter(self, stmt: Select, table: Table, flt: Filter) -> Select:
        column = table.c[flt.column]
        value = flt.value
        if flt.op is FilterOp.EQ:
            return stmt.where(column.is_(None) if value is None else column == self._to_db(value))
        if flt.op is FilterOp.NEQ:
            return stmt.where(column != self._to_db(value))
        if flt.op is FilterOp.IN:
            return stmt.where(column.in_([self._to_db(v) for v in value]))
        if flt.op is FilterOp.NOT_IN:
            return stmt.where(column.not_in([self._to_db(v) for v in value]))
        if flt.op is FilterOp.GTE:
            return stmt.where(column >= self._to_db(value))
        if flt.op is FilterOp.LT:
            return stmt.where(column < self._to_db(value))
        raise ValueError(f"Unsupported filter operator: {flt.op}")

    def _select_by_id(self, db: Session, table: Table, record_id: Any) -> Record | None:
        row = db.execute(select(table).where(table.c.id == record_id)).first()
        return self._row_to_record(row) if row is not None else None

    def _reload(self, db: Session, table: Table, record_id: Any) -> Record:
        record = self._select_by_id(db, table, record_id)
        if record is None:
            raise RecordNotFoundError(f"{table.name} record {record_id} vanished after write")
        return record

    async def _publish(self, event: ChangeEvent) -> None:
        for collection, filters, handler in list(self._subscribers.values()):
            if collection != event.collection:
                continue
            record = event.old_record if event.type is ChangeType.DELETE else event.record
            if record is None or not matches_filters(record, filters):
                continue
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:  # pragma: no cover - subscriber bug must not break writes
                logger.exception("Change handler failed for %s event", event.collection)

    # --------------------------------------------------------------- operations

    async def query(self, query: Query) -> list[Record]:
        table = self._table(query.collection)
        stmt = select(table)

        # Containment on JSON tag lists is evaluated in memory for portability.
        in_memory = [flt for flt in query.filters if flt.op is FilterOp.CONTAINS]
        for flt in query.filters:
            if flt.op is not FilterOp.CONTAINS:
                stmt = self._apply_filter(stmt, table, flt)

        for order in query.order:
            column = table.c[order.column]
            stmt = stmt.order_by(column.desc() if order.descending else column.asc())

        if query.limit is not None and not in_memory:
            stmt = stmt.limit(query.limit)

        try:
            with self._session_factory() as db:
                rows = [self._row_to_record(row) for row in db.execute(stmt)]
        except OperationalError as exc:
            raise BackendConnectionError(f"Query on {query.collection} failed: {exc}") from exc

        if in_memory:
            rows = [row for row in rows if matches_filters(row, in_memory)]
            if query.limit is not None:
                rows = rows[: query.limit]
        return rows

    async def insert(self, collection: str, payload: Mapping[str, Any]) -> Record:
        table = self._table(collection)
        values = self._payload(table, payload)
        values.setdefault("id", new_id())

        try:
            with self._session_factory() as db:
                db.execute(insert(table).values(**values))
                db.commit()
                record = self._reload(db, table, values["id"])
        except IntegrityError as exc:
            raise ConstraintError(f"Insert into {collection} rejected: {exc.orig}") from exc
        except OperationalError as exc:
            raise BackendConnectionError(f"Insert into {collection} failed: {exc}") from exc

        await self._publish(ChangeEvent(collection, ChangeType.INSERT, record))
        return record

    async def update(
        self,
        collection: str,
        record_id: str,
        payload: Mapping[str, Any],
    ) -> Record:
        table = self._table(collection)
        values = self._payload(table, payload)

        try:
            with self._session_factory() as db:
                old = self._select_by_id(db, table, record_id)
                if old is None:
                    raise RecordNotFoundError(f"No {collection} record with id {record_id}")
                db.execute(update(table).where(table.c.id == record_id).values(**values))
                db.commit()
                record = self._reload(db, table, record_id)
        except IntegrityError as exc:
            raise ConstraintError(f"Update of {collection} rejected: {exc.orig}") from exc
        except OperationalError as exc:
            raise BackendConnectionError(f"Update of {collection} failed: {exc}") from exc

        await self._publish(ChangeEvent(collection, ChangeType.UPDATE, record, old))
        return record

    async def upsert(
        self,
        collection: str,
        payload: Mapping[str, Any],
        *,
        on_conflict: str,
    ) -> Record:
        table = self._table(collection)
        values = self._payload(table, payload)
        if on_conflict not in values:
            raise ConstraintError(f"Upsert into {collection} needs a value for {on_conflict}")

        conflict_column = table.c[on_conflict]
        try:
            with self._session_factory() as db:
                row = db.execute(
                    select(table).where(conflict_column == values[on_conflict])
                ).first()
                if row is None:
                    values.setdefault("id", new_id())
                    db.execute(insert(table).values(**values))
                    record_id, old, change = values["id"], None, ChangeType.INSERT
                else:
                    old = self._row_to_record(row)
                    record_id, change = old["id"], ChangeType.UPDATE
                    values.pop("id", None)
                    db.execute(update(table).where(table.c.id == record_id).values(**values))
                db.commit()
                record = self._reload(db, table, record_id)
        except IntegrityError as exc:
            raise ConstraintError(f"Upsert into {collection} rejected: {exc.orig}") from exc
        except OperationalError as exc:
            raise BackendConnectionError(f"Upsert into {collection} failed: {exc}") from exc

        await self._publish(ChangeEvent(collection, change, record, old))
        return record

    async def delete(self, collection: str, record_id: str) -> None:
        table = self._table(collection)
        try:
            with self._session_factory() as db:
                old = self._select_by_id(db, table, record_id)
                if old is None:
                    raise RecordNotFoundError(f"No {collection} record with id {record_id}")
                db.execute(delete(table).where(table.c.id == record_id))
                db.commit()
        except IntegrityError as exc:
            raise ConstraintError(f"Delete from {collection} rejected: {exc.orig}") from exc
        except OperationalError as exc:
            raise BackendConnectionError(f"Delete from {collection} failed: {exc}") from exc

        await self._publish(ChangeEvent(collection, ChangeType.DELETE, old, old))

    async def upload(
        self,
        bucket: str,
        path: str,
        data: bytes,
        *,
        content_type: str | None = None,
        upsert: bool = False,
    ) -> str:
        try:
            with self._session_factory() as db:
                existing = db.get(StoredObject, (bucket, path))
                if existing is not None and not upsert:
                    raise StorageError(f"Object {bucket}/{path} already exists")
                if existing is None:
                    db.add(
                        StoredObject(
                            bucket=bucket,
                            path=path,
                            content=data,
                            content_type=content_type,
                        )
                    )
                else:
                    existing.content = data
                    existing.content_type = content_type
                    existing.created_at = utcnow()
                db.commit()
        except SQLAlchemyError as exc:
            raise StorageError(f"Upload to {bucket}/{path} failed: {exc}") from exc

        return f"{self.public_url}/{bucket}/{path}"

    async def download(self, bucket: str, path: str) -> bytes:
        """Return stored bytes for a bucket path."""
        with self._session_factory() as db:
            stored = db.get(StoredObject, (bucket, path))
            if stored is None:
                raise RecordNotFoundError(f"No object at {bucket}/{path}")
            return stored.content

    async def subscribe(
        self,
        collection: str,
        filters: Sequence[Filter],
        handler: ChangeHandler,
    ) -> LocalSubscription:
        self._table(collection)
        key = next(self._subscriber_ids)
        self._subscribers[key] = (collection, tuple(filters), handler)
        return LocalSubscription(self, key)


__all__ = ["LocalSubscription", "SqlBackend"]
