"""
Local Store Schema

Versioned table definitions for a tenant database. Versions are applied
in ascending order and only ever add tables or indexes, so upgrading an
existing database keeps every row it already holds. The version a
database is at lives in SQLite's user_version pragma.

    v1: transactions (indexed by date, type, category), budget
    v2: accounts, profiles
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class SchemaMigration:
    """One additive schema step."""
    version: int
    description: str
    statements: tuple[str, ...]
    tables: tuple[str, ...]


SCHEMA_MIGRATIONS: tuple[SchemaMigration, ...] = (
    SchemaMigration(
        version=1,
        description="transactions and budget",
        tables=("transactions", "budget"),
        statements=(
            """
            CREATE TABLE IF NOT EXISTS transactions (
                id TEXT PRIMARY KEY,
                date TEXT NOT NULL,              -- ISO-8601 timestamp
                description TEXT NOT NULL,
                amount TEXT NOT NULL,            -- Decimal as text, always > 0
                type TEXT NOT NULL,              -- 'Income' or 'Expense'
                category TEXT NOT NULL,
                source TEXT NOT NULL,            -- 'Manual' or 'UPI'
                notes TEXT,
                tags TEXT                        -- JSON array or NULL
            );
            """,
            "CREATE INDEX IF NOT EXISTS idx_transactions_date ON transactions(date);",
            "CREATE INDEX IF NOT EXISTS idx_transactions_type ON transactions(type);",
            "CREATE INDEX IF NOT EXISTS idx_transactions_category ON transactions(category);",
            """
            CREATE TABLE IF NOT EXISTS budget (
                category TEXT PRIMARY KEY,
                amount TEXT NOT NULL             -- Decimal as text, >= 0
            );
            """,
        ),
    ),
    SchemaMigration(
        version=2,
        description="accounts and profiles",
        tables=("accounts", "profiles"),
        statements=(
            """
            CREATE TABLE IF NOT EXISTS accounts (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                type TEXT NOT NULL,              -- 'UPI' or 'Bank'
                icon TEXT NOT NULL               -- IconId value
            );
            """,
            """
            CREATE TABLE IF NOT EXISTS profiles (
                username TEXT PRIMARY KEY,
                full_name TEXT,
                bio TEXT,
                avatar TEXT
            );
            """,
        ),
    ),
)

LATEST_SCHEMA_VERSION = SCHEMA_MIGRATIONS[-1].version


def _check_order() -> None:
    versions = [m.version for m in SCHEMA_MIGRATIONS]
    if versions != list(range(1, len(versions) + 1)):
        raise RuntimeError(f"Schema versions must be 1..n in order, got {versions}")


_check_order()


def migrations_between(current: int, target: int) -> list[SchemaMigration]:
    """Migrations that take a database from current to target, in order."""
    return [m for m in SCHEMA_MIGRATIONS if current < m.version <= target]


def tables_at(version: int) -> tuple[str, ...]:
    """Tables present in a database at the given version."""
    tables: list[str] = []
    for m in SCHEMA_MIGRATIONS:
        if m.version <= version:
            tables.extend(m.tables)
    return tuple(tables)
