"""Postgres-backed account store and hobby catalog."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

import psycopg
from psycopg.errors import UniqueViolation
from psycopg.rows import tuple_row
from psycopg_pool import ConnectionPool

from .domain.account import Account, Gender, Hobby, Role
from .domain.errors import DuplicateAccountError, InfrastructureError

ACTIVE_ACCOUNT_ID_INDEX = "accounts_active_account_id_key"
ACTIVE_EMAIL_INDEX = "accounts_active_email_key"

SCHEMA_SQL = f"""
CREATE TABLE IF NOT EXISTS hobbies (
    hobby_id BIGINT PRIMARY KEY,
    name TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS accounts (
    record_id BIGSERIAL PRIMARY KEY,
    account_id TEXT NOT NULL,
    display_name TEXT NOT NULL,
    password_hash TEXT NOT NULL,
    email TEXT NOT NULL,
    gender TEXT,
    age INTEGER,
    alarm_enabled BOOLEAN NOT NULL DEFAULT TRUE,
    roles TEXT[] NOT NULL DEFAULT ARRAY['{Role.USER.value}'],
    deleted BOOLEAN NOT NULL DEFAULT FALSE,
    deleted_at TIMESTAMPTZ,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    CONSTRAINT accounts_deleted_at_consistent CHECK (deleted = (deleted_at IS NOT NULL))
);

CREATE UNIQUE INDEX IF NOT EXISTS {ACTIVE_ACCOUNT_ID_INDEX}
    ON accounts (account_id) WHERE NOT deleted;
CREATE UNIQUE INDEX IF NOT EXISTS {ACTIVE_EMAIL_INDEX}
    ON accounts (email) WHERE NOT deleted;

CREATE TABLE IF NOT EXISTS account_hobbies (
    record_id BIGINT NOT NULL REFERENCES accounts (record_id) ON DELETE CASCADE,
    hobby_id BIGINT NOT NULL REFERENCES hobbies (hobby_id),
    PRIMARY KEY (record_id, hobby_id)
);
"""

_SELECT_ACCOUNT = """
    SELECT a.record_id, a.account_id, a.display_name, a.password_hash, a.email,
           a.gender, a.age, a.alarm_enabled, a.roles, a.deleted, a.deleted_at,
           COALESCE(array_agg(h.hobby_id ORDER BY h.hobby_id) FILTER (WHERE h.hobby_id IS NOT NULL), '{{}}'),
           COALESCE(array_agg(h.name ORDER BY h.hobby_id) FILTER (WHERE h.hobby_id IS NOT NULL), '{{}}')
    FROM accounts a
    LEFT JOIN account_hobbies ah ON ah.record_id = a.record_id
    LEFT JOIN hobbies h ON h.hobby_id = ah.hobby_id
    WHERE {column} = %s AND a.deleted = %s
    GROUP BY a.record_id
    ORDER BY a.record_id DESC
    LIMIT 1
"""


def duplicate_field_for(constraint_name: str | None) -> str:
    """Map a violated unique index name to the account field it protects."""
    if constraint_name == ACTIVE_EMAIL_INDEX:
        return "email"
    return "account_id"


def map_account_row(row: tuple) -> Account:
    """Convert a raw account tuple (with aggregated hobbies) into an ``Account``."""
    hobby_ids, hobby_names = row[11] or [], row[12] or []
    return Account(
        record_id=row[0],
        account_id=row[1],
        display_name=row[2],
        password_hash=row[3],
        email=row[4],
        gender=Gender(row[5]) if row[5] else None,
        age=row[6],
        alarm_enabled=row[7],
        roles={Role(role) for role in row[8] or []},
        deleted=row[9],
        deleted_at=row[10],
        hobbies={Hobby(hobby_id=hid, name=name) for hid, name in zip(hobby_ids, hobby_names)},
    )


class PostgresAccountStore:
    """Account persistence where active-row uniqueness is enforced by partial indexes."""

    def __init__(self, pool: ConnectionPool) -> None:
        """Store the connection pool used for all database interactions."""
        self._pool = pool

    @contextmanager
    def _connection(self) -> Iterator[psycopg.Connection]:
        try:
            with self._pool.connection() as conn:
                yield conn
        except UniqueViolation as exc:
            raise DuplicateAccountError(duplicate_field_for(exc.diag.constraint_name)) from exc
        except psycopg.Error as exc:
            raise InfrastructureError(f"account store unavailable: {exc}") from exc

    def create_schema(self) -> None:
        """Apply the account tables and indexes; safe to run repeatedly."""
        with self._connection() as conn:
            conn.execute(SCHEMA_SQL)
            conn.commit()

    def _find(self, column: str, value: str, *, deleted: bool) -> Account | None:
        with self._connection() as conn:
            with conn.cursor(row_factory=tuple_row) as cur:
                cur.execute(_SELECT_ACCOUNT.format(column=column), (value, deleted))
                row = cur.fetchone()
        if not row:
            return None
        return map_account_row(row)

    def find_active_by_account_id(self, account_id: str) -> Account | None:
        return self._find("a.account_id", account_id, deleted=False)

    def find_active_by_email(self, email: str) -> Account | None:
        return self._find("a.email", email, deleted=False)

    def find_deleted_by_account_id(self, account_id: str) -> Account | None:
        return self._find("a.account_id", account_id, deleted=True)

    def find_deleted_by_email(self, email: str) -> Account | None:
        return self._find("a.email", email, deleted=True)

    def _replace_hobbies(self, cur: psycopg.Cursor, record_id: int, hobbies: set[Hobby]) -> None:
        cur.execute("DELETE FROM account_hobbies WHERE record_id = %s", (record_id,))
        if hobbies:
            cur.executemany(
                "INSERT INTO account_hobbies (record_id, hobby_id) VALUES (%s, %s)",
                [(record_id, hobby.hobby_id) for hobby in sorted(hobbies, key=lambda h: h.hobby_id)],
            )

    def insert(self, account: Account) -> Account:
        """Persist a new account row with its hobby links and return it with ``record_id`` set."""
        with self._connection() as conn:
            with conn.cursor(row_factory=tuple_row) as cur:
                cur.execute(
                    """
                    INSERT INTO accounts (account_id, display_name, password_hash, email, gender, age,
                                          alarm_enabled, roles, deleted, deleted_at)
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                    RETURNING record_id
                    """,
                    (
                        account.account_id,
                        account.display_name,
                        account.password_hash,
                        account.email,
                        account.gender.value if account.gender else None,
                        account.age,
                        account.alarm_enabled,
                        sorted(role.value for role in account.roles),
                        account.deleted,
                        account.deleted_at,
                    ),
                )
                (record_id,) = cur.fetchone()
                self._replace_hobbies(cur, record_id, account.hobbies)
            conn.commit()
        account.record_id = record_id
        return account

    def update(self, account: Account) -> None:
        """Overwrite the mutable columns and hobby links of an existing row in one transaction."""
        if account.record_id is None:
            raise ValueError("cannot update an account that was never stored")
        with self._connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE accounts
                    SET display_name = %s, password_hash = %s, gender = %s, age = %s,
                        alarm_enabled = %s, roles = %s, deleted = %s, deleted_at = %s,
                        updated_at = NOW()
                    WHERE record_id = %s
                    """,
                    (
                        account.display_name,
                        account.password_hash,
                        account.gender.value if account.gender else None,
                        account.age,
                        account.alarm_enabled,
                        sorted(role.value for role in account.roles),
                        account.deleted,
                        account.deleted_at,
                        account.record_id,
                    ),
                )
                self._replace_hobbies(cur, account.record_id, account.hobbies)
            conn.commit()

    def hard_delete(self, account: Account) -> None:
        """Permanently remove the row; hobby links cascade."""
        with self._connection() as conn:
            with conn.cursor() as cur:
                cur.execute("DELETE FROM accounts WHERE record_id = %s", (account.record_id,))
            conn.commit()


class PostgresHobbyCatalog:
    """Read-only lookup over the ``hobbies`` table."""

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def resolve(self, hobby_id: int) -> Hobby | None:
        try:
            with self._pool.connection() as conn:
                with conn.cursor(row_factory=tuple_row) as cur:
                    cur.execute("SELECT hobby_id, name FROM hobbies WHERE hobby_id = %s", (hobby_id,))
                    row = cur.fetchone()
        except psycopg.Error as exc:
            raise InfrastructureError(f"hobby catalog unavailable: {exc}") from exc
        if not row:
            return None
        return Hobby(hobby_id=row[0], name=row[1])
