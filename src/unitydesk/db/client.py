"""Database connection helpers."""

from contextlib import asynccontextmanager, contextmanager
from typing import AsyncIterator, Iterator, Optional

import psycopg
from psycopg.rows import dict_row

from unitydesk.config import Settings


def get_connection(settings: Optional[Settings] = None) -> psycopg.Connection:
    """Create a new database connection."""
    settings = settings or Settings()
    return psycopg.connect(settings.get_database_url())


@contextmanager
def db_cursor(settings: Optional[Settings] = None) -> Iterator[psycopg.Cursor]:
    """Yield a cursor with automatic commit/rollback."""
    conn = get_connection(settings)
    try:
        with conn.cursor() as cursor:
            yield cursor
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


@asynccontextmanager
async def async_db_cursor(
    settings: Optional[Settings] = None,
) -> AsyncIterator[psycopg.AsyncCursor]:
    """Async variant of :func:`db_cursor`; rows come back as dicts."""
    settings = settings or Settings()
    conn = await psycopg.AsyncConnection.connect(settings.get_database_url())
    try:
        async with conn.cursor(row_factory=dict_row) as cursor:
            yield cursor
        await conn.commit()
    except Exception:
        await conn.rollback()
        raise
    finally:
        await conn.close()
