from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator, Optional

from portfolio_agent.core.models import StrategyState

from .db import Connect, connect, execute, fetchone

# Arbitrary but fixed key for pg_advisory_xact_lock; serializes every session.
STATE_LOCK_KEY = 7_305_118_001

SQL_CREATE = """
CREATE TABLE IF NOT EXISTS strategy_state (
  id smallint PRIMARY KEY CHECK (id = 1),
  score bigint NOT NULL,
  total_trades bigint NOT NULL,
  last_refinement_ts bigint NOT NULL DEFAULT 0,
  admin text NOT NULL,
  updated_at_utc timestamptz NOT NULL DEFAULT now()
)
"""

SQL_LOCK = "SELECT pg_advisory_xact_lock(%s)"

SQL_GET = """
SELECT score, total_trades, last_refinement_ts, admin
FROM strategy_state
WHERE id = 1
"""

SQL_UPSERT = """
INSERT INTO strategy_state (id, score, total_trades, last_refinement_ts, admin, updated_at_utc)
VALUES (1, %s, %s, %s, %s, now())
ON CONFLICT (id)
DO UPDATE SET
  score = EXCLUDED.score,
  total_trades = EXCLUDED.total_trades,
  last_refinement_ts = EXCLUDED.last_refinement_ts,
  admin = EXCLUDED.admin,
  updated_at_utc = now()
"""


class _PgSession:
    def __init__(self, conn: Any) -> None:
        self._conn = conn

    def load(self) -> Optional[StrategyState]:
        row = fetchone(self._conn, SQL_GET)
        if not row:
            return None
        score, total_trades, last_ts, admin = row
        return StrategyState(
            score=int(score),
            total_trades=int(total_trades),
            last_refinement_timestamp=int(last_ts),
            admin=str(admin),
        )

    def save(self, state: StrategyState) -> None:
        execute(
            self._conn,
            SQL_UPSERT,
            (state.score, state.total_trades, state.last_refinement_timestamp, state.admin),
        )


class PostgresStateStore:
    """Singleton-row table guarded by a transaction-scoped advisory lock.

    The lock is taken before the row is read, which also covers the
    not-yet-initialized case where there is no row to lock.
    """

    def __init__(self, dsn: str, *, connect_fn: Optional[Connect] = None) -> None:
        self._dsn = dsn
        self._connect_fn = connect_fn

    def ensure_schema(self) -> None:
        with connect(self._dsn, connect_fn=self._connect_fn) as conn:
            execute(conn, SQL_CREATE)

    @contextmanager
    def session(self) -> Iterator[_PgSession]:
        with connect(self._dsn, connect_fn=self._connect_fn) as conn:
            execute(conn, SQL_LOCK, (STATE_LOCK_KEY,))
            yield _PgSession(conn)
