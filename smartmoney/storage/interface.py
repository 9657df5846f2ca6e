"""
Abstract Storage Interface

Every per-table store a tenant handle exposes implements
RecordTableInterface. The rename engine and the session layer only talk
to this interface, so the same algorithms work against the SQLite tables
here or a cached mirror of server rows.

The exception hierarchy at the bottom is the storage error taxonomy.
"""

from abc import ABC, abstractmethod
from typing import Any, Generic, Iterable, Optional, TypeVar

from pydantic import BaseModel


RecordT = TypeVar("RecordT", bound=BaseModel)


class RecordTableInterface(ABC, Generic[RecordT]):
    """
    Abstract interface for one table of a tenant's store.

    Keys are the record's primary-key value (a string or a str Enum).
    """

    @abstractmethod
    async def get(self, key: Any) -> Optional[RecordT]:
        """
        Retrieve a record by primary key.

        Returns:
            The record if found, None otherwise
        """
        pass

    @abstractmethod
    async def list_all(self) -> list[RecordT]:
        """Return every record in the table."""
        pass

    @abstractmethod
    async def count(self) -> int:
        """Number of records in the table."""
        pass

    @abstractmethod
    async def add(self, record: RecordT) -> None:
        """
        Insert a new record.

        Raises:
            DuplicateError: If the primary key already exists
        """
        pass

    @abstractmethod
    async def put(self, record: RecordT) -> None:
        """Insert or overwrite a record (last write wins)."""
        pass

    @abstractmethod
    async def update(self, key: Any, changes: dict[str, Any]) -> RecordT:
        """
        Apply a partial update and return the updated record.

        Raises:
            NotFoundError: If no record has this key
            ValueError: If changes touch the primary key or fail validation
        """
        pass

    @abstractmethod
    async def delete(self, key: Any) -> bool:
        """
        Delete a record by key.

        Returns:
            True if a record was deleted
        """
        pass

    @abstractmethod
    async def bulk_add(self, records: Iterable[RecordT]) -> int:
        """
        Insert many new records, all or nothing.

        Raises:
            DuplicateError: If any primary key already exists
        """
        pass

    @abstractmethod
    async def bulk_put(self, records: Iterable[RecordT]) -> int:
        """Insert or overwrite many records, all or nothing."""
        pass

    @abstractmethod
    async def bulk_delete(self, keys: Iterable[Any]) -> int:
        """Delete many records; returns how many existed."""
        pass

    @abstractmethod
    async def clear(self) -> None:
        """Delete every record in the table."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class StorageUnavailableError(StorageError):
    """A tenant's storage could not be created, opened or upgraded."""
    pass


class NotOpenError(StorageError):
    """Operation attempted on an explicitly closed handle."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class RenameConflictError(StorageError):
    """The rename target already has data."""
    pass


class RenameFailedError(StorageError):
    """A rename step failed; the old tenant's data is untouched."""

    def __init__(self, message: str, residual_paths: Optional[list[str]] = None):
        super().__init__(message)
        self.residual_paths = residual_paths or []
