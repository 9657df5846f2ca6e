"""
SQLite Record Tables

One class per table of a tenant database. Every operation goes through
the owning LocalStoreHandle, which opens the database on first use and
serializes access. Bulk operations run inside handle.transaction(), so
they are all-or-nothing and join an enclosing transaction if there is one.

Decimals are stored as text to keep amounts exact; transaction tags are
stored as a JSON array.
"""

import json
import sqlite3
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Any, Iterable, Optional, Union

from smartmoney.models.records import (
    AccountType,
    StoredAccount,
    StoredBudgetEntry,
    StoredProfile,
    StoredTransaction,
    TransactionCategory,
    TransactionSource,
    TransactionType,
)
from smartmoney.storage.interface import (
    NotFoundError,
    RecordT,
    RecordTableInterface,
    StorageError,
)

if TYPE_CHECKING:
    from smartmoney.storage.handle import LocalStoreHandle


class SQLiteRecordTable(RecordTableInterface[RecordT]):
    """
    Generic table implementation.

    Subclasses declare the table layout and the two row converters.
    """

    table_name: str
    primary_key: str
    columns: tuple[str, ...]
    model: type
    order_by: Optional[str] = None

    def __init__(self, handle: "LocalStoreHandle"):
        self._handle = handle

    def _to_row(self, record: RecordT) -> tuple:
        raise NotImplementedError

    def _from_row(self, row: sqlite3.Row) -> RecordT:
        raise NotImplementedError

    def _decode(self, row: sqlite3.Row) -> RecordT:
        """
        Convert a row, reporting a row that doesn't form a valid record
        as a StorageError.
        """
        try:
            return self._from_row(row)
        except (ValueError, TypeError, ArithmeticError) as e:
            key = row[self.primary_key]
            raise StorageError(
                f"{self.table_name} row {key!r} is unreadable: {e}"
            ) from e

    @staticmethod
    def _key(key: Any) -> str:
        if isinstance(key, Enum):
            return str(key.value)
        return str(key)

    @property
    def _select(self) -> str:
        return f"SELECT {', '.join(self.columns)} FROM {self.table_name}"

    @property
    def _insert(self) -> str:
        placeholders = ", ".join("?" for _ in self.columns)
        return f"INTO {self.table_name}({', '.join(self.columns)}) VALUES({placeholders});"

    async def get(self, key: Any) -> Optional[RecordT]:
        row = await self._handle.fetch_one(
            f"{self._select} WHERE {self.primary_key} = ?;",
            (self._key(key),),
        )
        if row is None:
            return None
        return self._decode(row)

    async def list_all(self) -> list[RecordT]:
        rows = await self._handle.fetch_all(
            f"{self._select} ORDER BY {self.order_by or self.primary_key};"
        )
        return [self._decode(r) for r in rows]

    async def count(self) -> int:
        row = await self._handle.fetch_one(
            f"SELECT COUNT(*) AS n FROM {self.table_name};"
        )
        return int(row["n"])

    async def add(self, record: RecordT) -> None:
        await self._handle.execute(f"INSERT {self._insert}", self._to_row(record))

    async def put(self, record: RecordT) -> None:
        await self._handle.execute(f"INSERT OR REPLACE {self._insert}", self._to_row(record))

    async def update(self, key: Any, changes: dict[str, Any]) -> RecordT:
        if self.primary_key in changes and self._key(changes[self.primary_key]) != self._key(key):
            raise ValueError(f"{self.table_name}.{self.primary_key} cannot be changed")

        async with self._handle.transaction():
            current = await self.get(key)
            if current is None:
                raise NotFoundError(f"{self.table_name} has no row {self._key(key)!r}")
            data = current.model_dump()
            data.update(changes)
            updated = self.model.model_validate(data)
            await self.put(updated)
        return updated

    async def delete(self, key: Any) -> bool:
        cur = await self._handle.execute(
            f"DELETE FROM {self.table_name} WHERE {self.primary_key} = ?;",
            (self._key(key),),
        )
        return cur.rowcount > 0

    async def bulk_add(self, records: Iterable[RecordT]) -> int:
        rows = [self._to_row(r) for r in records]
        if not rows:
            return 0
        async with self._handle.transaction():
            await self._handle.executemany(f"INSERT {self._insert}", rows)
        return len(rows)

    async def bulk_put(self, records: Iterable[RecordT]) -> int:
        rows = [self._to_row(r) for r in records]
        if not rows:
            return 0
        async with self._handle.transaction():
            await self._handle.executemany(f"INSERT OR REPLACE {self._insert}", rows)
        return len(rows)

    async def bulk_delete(self, keys: Iterable[Any]) -> int:
        params = [(self._key(k),) for k in keys]
        if not params:
            return 0
        async with self._handle.transaction():
            cur = await self._handle.executemany(
                f"DELETE FROM {self.table_name} WHERE {self.primary_key} = ?;",
                params,
            )
        return cur.rowcount

    async def clear(self) -> None:
        await self._handle.execute(f"DELETE FROM {self.table_name};")


class TransactionsTable(SQLiteRecordTable[StoredTransaction]):
    """Transactions, newest first, with date/type/category indexes."""

    table_name = "transactions"
    primary_key = "id"
    columns = ("id", "date", "description", "amount", "type", "category", "source", "notes", "tags")
    model = StoredTransaction
    order_by = "date DESC, id"

    INDEXED_FIELDS = ("type", "category")

    def _to_row(self, record: StoredTransaction) -> tuple:
        return (
            record.id,
            record.date,
            record.description,
            str(record.amount),
            record.type.value,
            record.category.value,
            record.source.value,
            record.notes,
            json.dumps(record.tags) if record.tags is not None else None,
        )

    def _from_row(self, row: sqlite3.Row) -> StoredTransaction:
        return StoredTransaction(
            id=row["id"],
            date=row["date"],
            description=row["description"],
            amount=Decimal(row["amount"]),
            type=TransactionType(row["type"]),
            category=TransactionCategory(row["category"]),
            source=TransactionSource(row["source"]),
            notes=row["notes"],
            tags=json.loads(row["tags"]) if row["tags"] is not None else None,
        )

    async def where(self, field: str, value: Any) -> list[StoredTransaction]:
        """Transactions whose indexed field equals value, newest first."""
        if field not in self.INDEXED_FIELDS:
            raise ValueError(f"transactions can only be filtered by {self.INDEXED_FIELDS}")
        rows = await self._handle.fetch_all(
            f"{self._select} WHERE {field} = ? ORDER BY {self.order_by};",
            (self._key(value),),
        )
        return [self._decode(r) for r in rows]

    async def between(
        self,
        start: Union[str, date, datetime],
        end: Union[str, date, datetime],
    ) -> list[StoredTransaction]:
        """
        Transactions with start <= date < end, newest first.

        Bounds are compared as ISO-8601 strings, so they should use the
        same format (and timezone suffix) as the stored dates.
        """
        rows = await self._handle.fetch_all(
            f"{self._select} WHERE date >= ? AND date < ? ORDER BY {self.order_by};",
            (_iso(start), _iso(end)),
        )
        return [self._decode(r) for r in rows]


class AccountsTable(SQLiteRecordTable[StoredAccount]):
    table_name = "accounts"
    primary_key = "id"
    columns = ("id", "name", "type", "icon")
    model = StoredAccount
    order_by = "name, id"

    def _to_row(self, record: StoredAccount) -> tuple:
        return (record.id, record.name, record.type.value, record.icon)

    def _from_row(self, row: sqlite3.Row) -> StoredAccount:
        return StoredAccount(
            id=row["id"],
            name=row["name"],
            type=AccountType(row["type"]),
            icon=row["icon"],
        )


class BudgetTable(SQLiteRecordTable[StoredBudgetEntry]):
    """Budget entries keyed by category. No row means no budget set."""

    table_name = "budget"
    primary_key = "category"
    columns = ("category", "amount")
    model = StoredBudgetEntry

    def _to_row(self, record: StoredBudgetEntry) -> tuple:
        return (record.category.value, str(record.amount))

    def _from_row(self, row: sqlite3.Row) -> StoredBudgetEntry:
        return StoredBudgetEntry(
            category=TransactionCategory(row["category"]),
            amount=Decimal(row["amount"]),
        )

    async def amount_for(self, category: TransactionCategory) -> Optional[Decimal]:
        """The budget for a category, or None when no budget is set."""
        entry = await self.get(category)
        return entry.amount if entry is not None else None

    async def as_mapping(self) -> dict[TransactionCategory, Decimal]:
        return {e.category: e.amount for e in await self.list_all()}


class ProfilesTable(SQLiteRecordTable[StoredProfile]):
    table_name = "profiles"
    primary_key = "username"
    columns = ("username", "full_name", "bio", "avatar")
    model = StoredProfile

    def _to_row(self, record: StoredProfile) -> tuple:
        return (record.username, record.full_name, record.bio, record.avatar)

    def _from_row(self, row: sqlite3.Row) -> StoredProfile:
        return StoredProfile(
            username=row["username"],
            full_name=row["full_name"],
            bio=row["bio"],
            avatar=row["avatar"],
        )


def _iso(value: Union[str, date, datetime]) -> str:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value
