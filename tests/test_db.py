import pytest

from backend.db import _normalize_database_url


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("postgres://u:p@db.example.com/app", "postgresql+asyncpg://u:p@db.example.com/app"),
        ("postgresql://u:p@db.example.com/app", "postgresql+asyncpg://u:p@db.example.com/app"),
        ("postgresql+psycopg2://u:p@localhost/app", "postgresql+asyncpg://u:p@localhost/app"),
        (
            "postgresql://u:p@db.example.com/app?sslmode=require&channel_binding=require",
            "postgresql+asyncpg://u:p@db.example.com/app?ssl=require",
        ),
        ("sqlite+aiosqlite:///./bills.db", "sqlite+aiosqlite:///./bills.db"),
        ("  ", ""),
    ],
)
def test_normalize_database_url(raw, expected):
    assert _normalize_database_url(raw) == expected
