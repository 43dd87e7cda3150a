from __future__ import annotations

from sqlalchemy import text as sql_text
from sqlalchemy.ext.asyncio import AsyncEngine

from backend.db import get_engine


ENTITY_RECORDS_TABLE = "entity_records"

# Record fields mirrored into their own columns so filters on them run in SQL.
INDEXED_COLUMNS = {
    "user_id": "ix_user_id",
    "type": "ix_type",
    "status": "ix_status",
    "read": "ix_read",
}


async def init_db(engine: AsyncEngine | None = None):
    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.execute(
            sql_text(
                f"""
                CREATE TABLE IF NOT EXISTS {ENTITY_RECORDS_TABLE} (
                    id TEXT PRIMARY KEY,
                    kind TEXT NOT NULL,
                    created_by TEXT,
                    ix_user_id TEXT,
                    ix_type TEXT,
                    ix_status TEXT,
                    ix_read TEXT,
                    data_json TEXT NOT NULL,
                    created_date TEXT NOT NULL,
                    updated_date TEXT NOT NULL
                )
                """
            )
        )

    async def ensure_index(index_sql: str) -> None:
        try:
            async with engine.begin() as conn:
                await conn.execute(sql_text(index_sql))
        except Exception:
            return

    await ensure_index(
        f"CREATE INDEX IF NOT EXISTS idx_{ENTITY_RECORDS_TABLE}_kind_owner "
        f"ON {ENTITY_RECORDS_TABLE} (kind, created_by)"
    )
    await ensure_index(
        f"CREATE INDEX IF NOT EXISTS idx_{ENTITY_RECORDS_TABLE}_kind_user_type_read "
        f"ON {ENTITY_RECORDS_TABLE} (kind, ix_user_id, ix_type, ix_read)"
    )
    await ensure_index(
        f"CREATE INDEX IF NOT EXISTS idx_{ENTITY_RECORDS_TABLE}_kind_status "
        f"ON {ENTITY_RECORDS_TABLE} (kind, ix_status)"
    )
