from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from psycopg import AsyncConnection, sql
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from config.logging_config import log
from conversation.models import UserProfile
from database.base import check_user_fields

SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS users (
        identity TEXT PRIMARY KEY,
        email TEXT,
        location TEXT,
        price_min INTEGER,
        price_max INTEGER,
        surface_min INTEGER,
        surface_max INTEGER,
        property_type TEXT,
        notifications BOOLEAN NOT NULL DEFAULT TRUE,
        created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        last_active TIMESTAMPTZ NOT NULL DEFAULT now()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS searches (
        id SERIAL PRIMARY KEY,
        identity TEXT NOT NULL,
        query TEXT NOT NULL,
        results INTEGER NOT NULL,
        created_at TIMESTAMPTZ NOT NULL DEFAULT now()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS user_sessions (
        identity TEXT PRIMARY KEY,
        current_step TEXT NOT NULL,
        session_data JSONB NOT NULL DEFAULT '{}'::jsonb,
        expires_at TIMESTAMPTZ NOT NULL
    )
    """,
)

USER_COLUMNS = """
    identity, email, location, price_min, price_max, surface_min, surface_max,
    property_type, notifications, created_at, last_active
"""


class PostgresStore:
    def __init__(self, db_url: str):
        self.db_url = db_url

    async def _connect(self) -> AsyncConnection:
        return await AsyncConnection.connect(self.db_url, row_factory=dict_row)

    async def setup_schema(self) -> None:
        async with await self._connect() as conn:
            async with conn.cursor() as cur:
                for ddl in SCHEMA:
                    await cur.execute(ddl)
        log.info("PostgreSQL schema ready")

    # -----------------------
    # Sessions
    # -----------------------

    async def upsert_session(self, identity: str, step: str, payload: Dict[str, Any], expires_at: datetime) -> None:
        async with await self._connect() as conn:
            await conn.execute(
                """
                INSERT INTO user_sessions (identity, current_step, session_data, expires_at)
                VALUES (%s, %s, %s, %s)
                ON CONFLICT (identity)
                DO UPDATE SET
                    current_step = EXCLUDED.current_step,
                    session_data = EXCLUDED.session_data,
                    expires_at = EXCLUDED.expires_at
                """,
                (identity, step, Jsonb(payload), expires_at),
            )

    async def load_session(self, identity: str) -> Optional[Dict[str, Any]]:
        async with await self._connect() as conn:
            cur = await conn.execute(
                """
                SELECT current_step, session_data, expires_at
                FROM user_sessions
                WHERE identity = %s AND expires_at > now()
                """,
                (identity,),
            )
            row = await cur.fetchone()
        if not row:
            return None
        return {
            "step": row["current_step"],
            "payload": row["session_data"] or {},
            "expires_at": row["expires_at"],
        }

    async def delete_session(self, identity: str) -> None:
        async with await self._connect() as conn:
            await conn.execute("DELETE FROM user_sessions WHERE identity = %s", (identity,))

    async def delete_expired_sessions(self) -> int:
        async with await self._connect() as conn:
            cur = await conn.execute("DELETE FROM user_sessions WHERE expires_at < now()")
            return cur.rowcount

    # -----------------------
    # Users
    # -----------------------

    async def ensure_user(self, identity: str) -> UserProfile:
        async with await self._connect() as conn:
            await conn.execute(
                "INSERT INTO users (identity) VALUES (%s) ON CONFLICT (identity) DO NOTHING",
                (identity,),
            )
            cur = await conn.execute(f"SELECT {USER_COLUMNS} FROM users WHERE identity = %s", (identity,))
            row = await cur.fetchone()
        return UserProfile(**row)

    async def get_user(self, identity: str) -> Optional[UserProfile]:
        async with await self._connect() as conn:
            cur = await conn.execute(f"SELECT {USER_COLUMNS} FROM users WHERE identity = %s", (identity,))
            row = await cur.fetchone()
        return UserProfile(**row) if row else None

    async def update_user(self, identity: str, **fields: Any) -> None:
        check_user_fields(fields)
        assignments = [sql.SQL("{} = %s").format(sql.Identifier(k)) for k in fields]
        assignments.append(sql.SQL("last_active = now()"))
        query = sql.SQL("UPDATE users SET {} WHERE identity = %s").format(sql.SQL(", ").join(assignments))

        async with await self._connect() as conn:
            await conn.execute(
                "INSERT INTO users (identity) VALUES (%s) ON CONFLICT (identity) DO NOTHING",
                (identity,),
            )
            await conn.execute(query, (*fields.values(), identity))

    async def users_with_alerts(self) -> List[UserProfile]:
        async with await self._connect() as conn:
            cur = await conn.execute(
                f"SELECT {USER_COLUMNS} FROM users WHERE notifications AND email IS NOT NULL"
            )
            rows = await cur.fetchall()
        return [UserProfile(**r) for r in rows]

    # -----------------------
    # Search log
    # -----------------------

    async def log_search(self, identity: str, query: str, results: int) -> None:
        async with await self._connect() as conn:
            await conn.execute(
                "INSERT INTO searches (identity, query, results) VALUES (%s, %s, %s)",
                (identity, query, results),
            )

    async def count_searches(self, identity: Optional[str] = None) -> int:
        async with await self._connect() as conn:
            if identity is None:
                cur = await conn.execute("SELECT COUNT(*) AS count FROM searches")
            else:
                cur = await conn.execute(
                    "SELECT COUNT(*) AS count FROM searches WHERE identity = %s", (identity,)
                )
            row = await cur.fetchone()
        return row["count"] if row else 0

    async def count_users(self) -> int:
        async with await self._connect() as conn:
            cur = await conn.execute("SELECT COUNT(*) AS count FROM users")
            row = await cur.fetchone()
        return row["count"] if row else 0
