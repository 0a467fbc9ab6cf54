"""Postgres repository for accounts and their shops."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from psycopg import errors
from psycopg.rows import tuple_row
from psycopg_pool import ConnectionPool

from .domain.account import Account, Credentials, Shop
from .errors import ConflictError, HandleTakenError, NamespaceConflictError

logger = logging.getLogger(__name__)

USER_NAME_CONSTRAINT = "users_user_name_key"
SHOP_NAME_CONSTRAINT = "shops_shop_name_key"

SCHEMA_STATEMENTS = (
    f"""
    CREATE TABLE IF NOT EXISTS users (
        user_id TEXT PRIMARY KEY,
        user_name TEXT NOT NULL,
        password_hash TEXT NOT NULL,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        CONSTRAINT {USER_NAME_CONSTRAINT} UNIQUE (user_name)
    )
    """,
    f"""
    CREATE TABLE IF NOT EXISTS shops (
        shop_id TEXT PRIMARY KEY,
        shop_name TEXT NOT NULL,
        user_id TEXT NOT NULL REFERENCES users (user_id) ON DELETE CASCADE,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        CONSTRAINT {SHOP_NAME_CONSTRAINT} UNIQUE (shop_name)
    )
    """,
    "CREATE INDEX IF NOT EXISTS shops_user_id_idx ON shops (user_id)",
)


def conflict_for_constraint(constraint_name: str | None) -> ConflictError:
    """Map a violated unique constraint onto the caller-visible conflict."""
    if constraint_name == USER_NAME_CONSTRAINT:
        return HandleTakenError()
    if constraint_name == SHOP_NAME_CONSTRAINT:
        return NamespaceConflictError()
    logger.error("unexpected unique violation on constraint %s", constraint_name)
    return ConflictError("Conflicting record already exists")


class AccountRepository:
    """Postgres-backed persistence for accounts and shops."""

    def __init__(self, pool: ConnectionPool) -> None:
        """Store the connection pool used for all database interactions."""
        self._pool = pool

    def ensure_schema(self) -> None:
        """Create tables and unique constraints when they do not exist yet."""
        with self._pool.connection() as conn:
            with conn.transaction():
                for statement in SCHEMA_STATEMENTS:
                    conn.execute(statement)

    def create_account(self, *, user_name: str, password_hash: str, shop_names: list[str]) -> Account:
        """Insert the account and every shop in one transaction.

        A unique violation on either table rolls the whole unit back and is
        raised as the matching ``ConflictError``.
        """
        user_id = str(uuid.uuid4())
        now = datetime.now(timezone.utc)
        shops = [
            Shop(shop_id=str(uuid.uuid4()), shop_name=name, user_id=user_id, created_at=now)
            for name in shop_names
        ]

        try:
            with self._pool.connection() as conn:
                with conn.transaction():
                    with conn.cursor(row_factory=tuple_row) as cur:
                        cur.execute(
                            """
                            INSERT INTO users (user_id, user_name, password_hash, created_at)
                            VALUES (%s, %s, %s, %s)
                            """,
                            (user_id, user_name, password_hash, now),
                        )
                        cur.executemany(
                            """
                            INSERT INTO shops (shop_id, shop_name, user_id, created_at)
                            VALUES (%s, %s, %s, %s)
                            """,
                            [(s.shop_id, s.shop_name, s.user_id, s.created_at) for s in shops],
                        )
        except errors.UniqueViolation as exc:
            raise conflict_for_constraint(exc.diag.constraint_name) from exc

        return Account(user_id=user_id, user_name=user_name, created_at=now, shops=shops)

    def user_name_exists(self, user_name: str) -> bool:
        with self._pool.connection() as conn:
            row = conn.execute("SELECT 1 FROM users WHERE user_name = %s", (user_name,)).fetchone()
        return row is not None

    def get_credentials(self, user_name: str) -> Credentials | None:
        """Return the account and its password digest for signin, or ``None``."""
        with self._pool.connection() as conn:
            with conn.cursor(row_factory=tuple_row) as cur:
                cur.execute(
                    """
                    SELECT user_id, user_name, created_at, password_hash
                    FROM users
                    WHERE user_name = %s
                    """,
                    (user_name,),
                )
                row = cur.fetchone()
                if not row:
                    return None
                account = Account(user_id=row[0], user_name=row[1], created_at=row[2])
                account.shops = self._fetch_shops(cur, account.user_id)
        return Credentials(account=account, password_hash=row[3])

    def get_account(self, user_id: str) -> Account | None:
        """Fetch an account with its shops or return ``None``."""
        with self._pool.connection() as conn:
            with conn.cursor(row_factory=tuple_row) as cur:
                cur.execute(
                    "SELECT user_id, user_name, created_at FROM users WHERE user_id = %s",
                    (user_id,),
                )
                row = cur.fetchone()
                if not row:
                    return None
                account = Account(user_id=row[0], user_name=row[1], created_at=row[2])
                account.shops = self._fetch_shops(cur, account.user_id)
        return account

    def get_shop(self, shop_name: str) -> Shop | None:
        with self._pool.connection() as conn:
            with conn.cursor(row_factory=tuple_row) as cur:
                cur.execute(
                    """
                    SELECT shop_id, shop_name, user_id, created_at
                    FROM shops
                    WHERE shop_name = %s
                    """,
                    (shop_name,),
                )
                row = cur.fetchone()
        if not row:
            return None
        return Shop(*row)

    def _fetch_shops(self, cur, user_id: str) -> list[Shop]:
        cur.execute(
            """
            SELECT shop_id, shop_name, user_id, created_at
            FROM shops
            WHERE user_id = %s
            ORDER BY created_at, shop_name
            """,
            (user_id,),
        )
        return [Shop(*row) for row in cur.fetchall()]
