from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional

import psycopg

Connect = Callable[[str], Any]


@contextmanager
def connect(dsn: str, *, connect_fn: Optional[Connect] = None) -> Iterator[Any]:
    """One transaction per block: commit on clean exit, rollback on error."""
    conn = (connect_fn or psycopg.connect)(dsn)
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def execute(conn: Any, sql: str, params: tuple = ()) -> None:
    with conn.cursor() as cur:
        cur.execute(sql, params)


def fetchone(conn: Any, sql: str, params: tuple = ()) -> Optional[tuple]:
    with conn.cursor() as cur:
        cur.execute(sql, params)
        return cur.fetchone()
