"""
Storage Package

Per-tenant local SQLite databases: schema, handles, the tenant registry
and the rename engine.
"""

from smartmoney.storage.interface import (
    DuplicateError,
    NotFoundError,
    NotOpenError,
    RecordTableInterface,
    RenameConflictError,
    RenameFailedError,
    StorageError,
    StorageUnavailableError,
)
from smartmoney.storage.schema import LATEST_SCHEMA_VERSION, SCHEMA_MIGRATIONS
from smartmoney.storage.handle import HandleState, LocalStoreHandle
from smartmoney.storage.registry import TenantRegistry, validate_tenant_id
from smartmoney.storage.rename import (
    RenameFailureReason,
    RenameResult,
    TenantRenamer,
    TenantSnapshot,
    read_snapshot,
    write_snapshot,
)

__all__ = [
    # Interfaces
    "RecordTableInterface",
    # Exceptions
    "DuplicateError",
    "NotFoundError",
    "NotOpenError",
    "RenameConflictError",
    "RenameFailedError",
    "StorageError",
    "StorageUnavailableError",
    # Schema
    "LATEST_SCHEMA_VERSION",
    "SCHEMA_MIGRATIONS",
    # Handles and registry
    "HandleState",
    "LocalStoreHandle",
    "TenantRegistry",
    "validate_tenant_id",
    # Rename
    "RenameFailureReason",
    "RenameResult",
    "TenantRenamer",
    "TenantSnapshot",
    "read_snapshot",
    "write_snapshot",
]
