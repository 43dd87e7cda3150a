from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime
from uuid import uuid4

from sqlalchemy import text as sql_text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from backend.db import get_sessionmaker
from backend.db_init import ENTITY_RECORDS_TABLE, INDEXED_COLUMNS, init_db
from backend.errors import NotFoundError, StoreError

logger = logging.getLogger(__name__)

BILL = "Bill"
SUBSCRIPTION = "Subscription"
NOTIFICATION = "Notification"

RESERVED_FIELDS = {"id", "created_by", "created_date", "updated_date"}


def _new_id() -> str:
    return uuid4().hex


def _now_iso() -> str:
    return datetime.utcnow().isoformat()


def _jsonable(fields: dict) -> dict:
    return json.loads(json.dumps(fields or {}, ensure_ascii=False, default=str))


def matches(record: dict, criteria: dict | None) -> bool:
    for key, expected in (criteria or {}).items():
        if record.get(key) != expected:
            return False
    return True


def sort_records(records: list[dict], sort: str | None) -> list[dict]:
    if not sort:
        return records
    descending = sort.startswith("-")
    field = sort.lstrip("-")
    present = [record for record in records if record.get(field) is not None]
    missing = [record for record in records if record.get(field) is None]
    present.sort(key=lambda record: record[field], reverse=descending)
    return present + missing


class EntityStore:
    """CRUD over typed records. Records are plain dicts with JSON-safe values."""

    async def init(self) -> None:
        return None

    async def list(self, kind: str, owner: str | None = None) -> list[dict]:
        criteria = {"created_by": owner} if owner else {}
        return await self.filter(kind, criteria)

    async def filter(self, kind: str, criteria: dict | None = None, sort: str | None = None) -> list[dict]:
        raise NotImplementedError

    async def get(self, kind: str, record_id: str) -> dict:
        raise NotImplementedError

    async def create(self, kind: str, fields: dict, owner: str | None = None) -> dict:
        raise NotImplementedError

    async def update(self, kind: str, record_id: str, fields: dict) -> dict:
        raise NotImplementedError

    async def delete(self, kind: str, record_id: str) -> None:
        raise NotImplementedError


class MemoryEntityStore(EntityStore):
    def __init__(self):
        self._records: dict[str, dict[str, dict]] = {}
        self._lock = asyncio.Lock()

    def _bucket(self, kind: str) -> dict[str, dict]:
        return self._records.setdefault(kind, {})

    async def filter(self, kind: str, criteria: dict | None = None, sort: str | None = None) -> list[dict]:
        rows = [dict(record) for record in self._bucket(kind).values() if matches(record, criteria)]
        return sort_records(rows, sort)

    async def get(self, kind: str, record_id: str) -> dict:
        record = self._bucket(kind).get(record_id)
        if record is None:
            raise NotFoundError(kind, record_id)
        return dict(record)

    async def create(self, kind: str, fields: dict, owner: str | None = None) -> dict:
        now = _now_iso()
        clean = {k: v for k, v in _jsonable(fields).items() if k not in RESERVED_FIELDS}
        record = {
            "id": _new_id(),
            **clean,
            "created_by": owner,
            "created_date": now,
            "updated_date": now,
        }
        async with self._lock:
            self._bucket(kind)[record["id"]] = record
        return dict(record)

    async def update(self, kind: str, record_id: str, fields: dict) -> dict:
        async with self._lock:
            record = self._bucket(kind).get(record_id)
            if record is None:
                raise NotFoundError(kind, record_id)
            clean = {k: v for k, v in _jsonable(fields).items() if k not in RESERVED_FIELDS}
            record.update(clean)
            record["updated_date"] = _now_iso()
            return dict(record)

    async def delete(self, kind: str, record_id: str) -> None:
        async with self._lock:
            if self._bucket(kind).pop(record_id, None) is None:
                raise NotFoundError(kind, record_id)


class SqlEntityStore(EntityStore):
    """Entity records stored as JSON documents in a single table, one row per record."""

    def __init__(self, session_factory: async_sessionmaker | None = None):
        self._session_factory = session_factory

    @property
    def session_factory(self) -> async_sessionmaker:
        if self._session_factory is None:
            self._session_factory = get_sessionmaker()
        return self._session_factory

    async def init(self) -> None:
        engine = self.session_factory.kw.get("bind")
        await init_db(engine)

    @staticmethod
    def _index_value(value) -> str | None:
        if value is None:
            return None
        return json.dumps(value, ensure_ascii=False, default=str)

    @classmethod
    def _index_columns(cls, data: dict) -> dict:
        return {column: cls._index_value(data.get(field)) for field, column in INDEXED_COLUMNS.items()}

    @staticmethod
    def _row_to_record(row) -> dict:
        try:
            data = json.loads(row.get("data_json") or "{}")
        except Exception:
            data = {}
        if not isinstance(data, dict):
            data = {}
        return {
            "id": row.get("id"),
            **data,
            "created_by": row.get("created_by"),
            "created_date": row.get("created_date"),
            "updated_date": row.get("updated_date"),
        }

    async def filter(self, kind: str, criteria: dict | None = None, sort: str | None = None) -> list[dict]:
        criteria = dict(criteria or {})
        query = (
            f"SELECT id, created_by, data_json, created_date, updated_date "
            f"FROM {ENTITY_RECORDS_TABLE} WHERE kind = :kind"
        )
        params = {"kind": kind}
        if criteria.get("created_by") is not None:
            query += " AND created_by = :created_by"
            params["created_by"] = criteria.pop("created_by")
        if criteria.get("id") is not None:
            query += " AND id = :id"
            params["id"] = criteria.pop("id")
        for field, column in INDEXED_COLUMNS.items():
            if field not in criteria:
                continue
            value = self._index_value(criteria.pop(field))
            if value is None:
                query += f" AND {column} IS NULL"
            else:
                query += f" AND {column} = :{column}"
                params[column] = value
        query += " ORDER BY created_date ASC"
        try:
            async with self.session_factory() as session:
                rows = (await session.execute(sql_text(query), params)).mappings().all()
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to query {kind}: {exc}") from exc
        records = [self._row_to_record(row) for row in rows]
        return sort_records([record for record in records if matches(record, criteria)], sort)

    async def get(self, kind: str, record_id: str) -> dict:
        rows = await self.filter(kind, {"id": record_id})
        if not rows:
            raise NotFoundError(kind, record_id)
        return rows[0]

    async def create(self, kind: str, fields: dict, owner: str | None = None) -> dict:
        now = _now_iso()
        data = {k: v for k, v in _jsonable(fields).items() if k not in RESERVED_FIELDS}
        row = {
            "id": _new_id(),
            "kind": kind,
            "created_by": owner,
            "data_json": json.dumps(data, ensure_ascii=False),
            "created_date": now,
            "updated_date": now,
            **self._index_columns(data),
        }
        try:
            async with self.session_factory() as session:
                await session.execute(
                    sql_text(
                        f"""
                        INSERT INTO {ENTITY_RECORDS_TABLE}
                        (id, kind, created_by, ix_user_id, ix_type, ix_status, ix_read,
                         data_json, created_date, updated_date)
                        VALUES (:id, :kind, :created_by, :ix_user_id, :ix_type, :ix_status, :ix_read,
                                :data_json, :created_date, :updated_date)
                        """
                    ),
                    row,
                )
                await session.commit()
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to create {kind}: {exc}") from exc
        return {"id": row["id"], **data, "created_by": owner, "created_date": now, "updated_date": now}

    async def update(self, kind: str, record_id: str, fields: dict) -> dict:
        existing = await self.get(kind, record_id)
        data = {k: v for k, v in existing.items() if k not in RESERVED_FIELDS}
        data.update({k: v for k, v in _jsonable(fields).items() if k not in RESERVED_FIELDS})
        now = _now_iso()
        try:
            async with self.session_factory() as session:
                await session.execute(
                    sql_text(
                        f"""
                        UPDATE {ENTITY_RECORDS_TABLE}
                        SET data_json = :data_json, updated_date = :updated_date,
                            ix_user_id = :ix_user_id, ix_type = :ix_type,
                            ix_status = :ix_status, ix_read = :ix_read
                        WHERE id = :id AND kind = :kind
                        """
                    ),
                    {
                        "id": record_id,
                        "kind": kind,
                        "data_json": json.dumps(data, ensure_ascii=False),
                        "updated_date": now,
                        **self._index_columns(data),
                    },
                )
                await session.commit()
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to update {kind} {record_id}: {exc}") from exc
        return {**existing, **data, "updated_date": now}

    async def delete(self, kind: str, record_id: str) -> None:
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    sql_text(f"DELETE FROM {ENTITY_RECORDS_TABLE} WHERE id = :id AND kind = :kind"),
                    {"id": record_id, "kind": kind},
                )
                deleted = result.rowcount
                await session.commit()
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to delete {kind} {record_id}: {exc}") from exc
        if not deleted:
            raise NotFoundError(kind, record_id)
