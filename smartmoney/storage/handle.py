"""
Local Store Handle

A LocalStoreHandle is the live connection to one tenant's SQLite
database. It moves through these states:

    UNOPENED --open()--> OPEN --close()--> CLOSED --open()--> OPEN
        \\--open() fails--> FAILED --open()--> OPEN

- Table operations open an UNOPENED handle on first use.
- A CLOSED handle raises NotOpenError until open() is called again.
- A FAILED handle raises StorageUnavailableError without retrying;
  only an explicit open() tries again.

Opening creates the database at the target schema version, or upgrades
an older one one version at a time, each step in its own transaction.

All operations on a handle are serialized by an asyncio lock. A task
that holds handle.transaction() can keep issuing operations on the same
handle; every other task waits until the transaction commits or rolls
back, so nobody observes half of a multi-table write.
"""

import asyncio
import sqlite3
from contextlib import asynccontextmanager
from enum import Enum
from pathlib import Path
from typing import Any, AsyncIterator, Iterable, Optional

import structlog

from smartmoney.audit import AuditLogger
from smartmoney.storage.interface import (
    DuplicateError,
    NotOpenError,
    StorageError,
    StorageUnavailableError,
)
from smartmoney.storage.schema import LATEST_SCHEMA_VERSION, migrations_between
from smartmoney.storage.tables import (
    AccountsTable,
    BudgetTable,
    ProfilesTable,
    TransactionsTable,
)


logger = structlog.get_logger(__name__)


class HandleState(str, Enum):
    UNOPENED = "unopened"
    OPEN = "open"
    CLOSED = "closed"
    FAILED = "failed"


class LocalStoreHandle:
    """
    Connection to one tenant's local database.

    Exposes the four tables as attributes: transactions, accounts,
    budget and profiles.
    """

    def __init__(
        self,
        name: str,
        path: Path,
        tenant_id: Optional[str] = None,
        schema_version: int = LATEST_SCHEMA_VERSION,
        busy_timeout_seconds: float = 5.0,
        audit_logger: Optional[AuditLogger] = None,
    ):
        """
        Args:
            name: Storage name, e.g. store_alice
            path: Database file
            tenant_id: Owning tenant, for logging
            schema_version: Version to create or upgrade to on open.
                            Older versions are only useful in tests.
            busy_timeout_seconds: How long SQLite waits on a locked file
            audit_logger: Where lifecycle events go
        """
        if not 1 <= schema_version <= LATEST_SCHEMA_VERSION:
            raise ValueError(f"Unknown schema version: {schema_version}")

        self.name = name
        self.path = Path(path)
        self.tenant_id = tenant_id
        self.target_version = schema_version
        self._busy_timeout = busy_timeout_seconds
        self._audit_logger = audit_logger

        self._conn: Optional[sqlite3.Connection] = None
        self._state = HandleState.UNOPENED
        self._last_error: Optional[str] = None

        self._lock = asyncio.Lock()
        self._open_lock = asyncio.Lock()
        self._tx_owner: Optional[asyncio.Task] = None

        self.transactions = TransactionsTable(self)
        self.accounts = AccountsTable(self)
        self.budget = BudgetTable(self)
        self.profiles = ProfilesTable(self)

    def __repr__(self) -> str:
        return f"LocalStoreHandle({self.name!r}, state={self._state.value})"

    @property
    def state(self) -> HandleState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state is HandleState.OPEN

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def open(self) -> None:
        """
        Open the database, creating or upgrading it as needed.

        Opening an open handle is a no-op.

        Raises:
            StorageUnavailableError: If the file can't be created or read,
                is not a database, or has a newer schema than this code knows
        """
        async with self._open_lock:
            if self._state is HandleState.OPEN:
                return

            try:
                conn, from_version = self._connect()
            except StorageUnavailableError as e:
                await self._fail(str(e))
                raise
            except (sqlite3.Error, OSError) as e:
                await self._fail(str(e))
                raise StorageUnavailableError(f"Could not open {self.name}: {e}") from e

            self._conn = conn
            self._state = HandleState.OPEN
            self._last_error = None

        if self._audit_logger:
            if from_version and from_version < self.target_version:
                await self._audit_logger.log_schema_upgraded(
                    self.tenant_id, self.name, from_version, self.target_version
                )
            await self._audit_logger.log_store_opened(
                self.tenant_id, self.name, self.target_version
            )

    async def close(self) -> None:
        """
        Release the connection. Closing a closed handle is a no-op.

        Raises:
            StorageError: If called from inside this handle's transaction
        """
        if self._owns_transaction():
            raise StorageError(f"Cannot close {self.name} inside its own transaction")

        async with self._lock:
            was_open = self._conn is not None
            if self._conn is not None:
                self._conn.close()
                self._conn = None
            self._state = HandleState.CLOSED

        if was_open and self._audit_logger:
            await self._audit_logger.log_store_closed(self.tenant_id, self.name)

    async def ensure_open(self) -> None:
        """Open lazily on first use; refuse closed or failed handles."""
        if self._state is HandleState.OPEN:
            return
        if self._state is HandleState.CLOSED:
            raise NotOpenError(f"{self.name} is closed")
        if self._state is HandleState.FAILED:
            raise StorageUnavailableError(
                f"{self.name} failed to open earlier: {self._last_error}"
            )
        await self.open()

    def _connect(self) -> tuple[sqlite3.Connection, int]:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(
            self.path,
            timeout=self._busy_timeout,
            isolation_level=None,
        )
        try:
            conn.row_factory = sqlite3.Row
            from_version = self._upgrade(conn)
        except BaseException:
            conn.close()
            raise
        return conn, from_version

    def _upgrade(self, conn: sqlite3.Connection) -> int:
        current = conn.execute("PRAGMA user_version;").fetchone()[0]
        if current > self.target_version:
            raise StorageUnavailableError(
                f"{self.name} is at schema v{current}, newer than v{self.target_version}"
            )

        for migration in migrations_between(current, self.target_version):
            conn.execute("BEGIN IMMEDIATE;")
            try:
                for stmt in migration.statements:
                    conn.execute(stmt)
                conn.execute(f"PRAGMA user_version = {migration.version};")
                conn.execute("COMMIT;")
            except BaseException:
                if conn.in_transaction:
                    conn.execute("ROLLBACK;")
                raise
            logger.debug(
                "schema_migration_applied",
                storage=self.name,
                version=migration.version,
                description=migration.description,
            )
        return current

    async def _fail(self, error: str) -> None:
        self._state = HandleState.FAILED
        self._last_error = error
        if self._audit_logger:
            await self._audit_logger.log_store_open_failed(self.tenant_id, self.name, error)

    # -------------------------------------------------------------------------
    # Serialized access
    # -------------------------------------------------------------------------

    def _owns_transaction(self) -> bool:
        return self._tx_owner is not None and self._tx_owner is asyncio.current_task()

    @asynccontextmanager
    async def _serialized(self) -> AsyncIterator[sqlite3.Connection]:
        if self._owns_transaction():
            yield self._conn
            return
        async with self._lock:
            # The handle may have been closed while we waited.
            await self.ensure_open()
            yield self._conn

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["LocalStoreHandle"]:
        """
        Group operations into one atomic unit.

        Nested use from the same task joins the outer transaction.
        Raising inside the block rolls everything back.
        """
        await self.ensure_open()
        if self._owns_transaction():
            yield self
            return

        async with self._serialized() as conn:
            try:
                conn.execute("BEGIN IMMEDIATE;")
            except sqlite3.Error as e:
                raise StorageError(f"Could not start a transaction on {self.name}: {e}") from e

            self._tx_owner = asyncio.current_task()
            try:
                yield self
            except BaseException:
                if conn.in_transaction:
                    conn.execute("ROLLBACK;")
                raise
            else:
                try:
                    conn.execute("COMMIT;")
                except sqlite3.Error as e:
                    if conn.in_transaction:
                        conn.execute("ROLLBACK;")
                    raise StorageError(f"Commit failed on {self.name}: {e}") from e
            finally:
                self._tx_owner = None

    async def execute(self, sql: str, params: Iterable[Any] = ()) -> sqlite3.Cursor:
        await self.ensure_open()
        async with self._serialized() as conn:
            return _run(conn.execute, self.name, sql, tuple(params))

    async def executemany(
        self,
        sql: str,
        seq_of_params: Iterable[Iterable[Any]],
    ) -> sqlite3.Cursor:
        await self.ensure_open()
        async with self._serialized() as conn:
            return _run(conn.executemany, self.name, sql, [tuple(p) for p in seq_of_params])

    async def fetch_all(self, sql: str, params: Iterable[Any] = ()) -> list[sqlite3.Row]:
        cur = await self.execute(sql, params)
        return cur.fetchall()

    async def fetch_one(self, sql: str, params: Iterable[Any] = ()) -> Optional[sqlite3.Row]:
        cur = await self.execute(sql, params)
        return cur.fetchone()

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    async def schema_version(self) -> int:
        row = await self.fetch_one("PRAGMA user_version;")
        return int(row[0])

    async def table_names(self) -> list[str]:
        rows = await self.fetch_all(
            "SELECT name FROM sqlite_master WHERE type = 'table' ORDER BY name;"
        )
        return [r["name"] for r in rows]

    async def has_data(self) -> bool:
        """True if any table holds at least one row."""
        for table in await self.table_names():
            row = await self.fetch_one(f"SELECT 1 FROM {table} LIMIT 1;")
            if row is not None:
                return True
        return False


def _run(method, storage_name: str, sql: str, params: Any) -> sqlite3.Cursor:
    try:
        return method(sql, params)
    except sqlite3.IntegrityError as e:
        raise DuplicateError(f"{storage_name}: {e}") from e
    except sqlite3.Error as e:
        raise StorageError(f"{storage_name}: {e}") from e
