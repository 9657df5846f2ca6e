"""
Tenant Registry

Maps a tenant id to its LocalStoreHandle. A registry is an ordinary
object created once per application session and passed to whatever
needs it; tests create as many isolated registries as they like.

Guarantees:
- resolve() returns the same handle for a tenant id until evict()
- resolve() and evict() never interleave, so two handles for one
  tenant id can't coexist in one registry
- resolve() does not open storage; the handle opens lazily
"""

import asyncio
import re
from pathlib import Path
from typing import Optional
from uuid import UUID

import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from smartmoney.audit import AuditLogger
from smartmoney.config import StoreSettings, get_settings
from smartmoney.storage.handle import LocalStoreHandle
from smartmoney.storage.interface import StorageError


logger = structlog.get_logger(__name__)

TENANT_ID_PATTERN = re.compile(r"^[A-Za-z0-9_.@+-]{1,64}$")

# SQLite side files that belong to a database file.
_SIDE_FILE_SUFFIXES = ("-journal", "-wal", "-shm")


def validate_tenant_id(tenant_id: str) -> str:
    """
    Check that a tenant id can be used inside a storage name.

    Raises:
        ValueError: If the id is empty or has characters outside [A-Za-z0-9_.@+-]
    """
    if not tenant_id:
        raise ValueError("A tenant id is required to get a database handle.")
    if not TENANT_ID_PATTERN.match(tenant_id) or tenant_id in (".", ".."):
        raise ValueError(f"Invalid tenant id: {tenant_id!r}")
    return tenant_id


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
    retry=retry_if_exception_type(PermissionError),
    reraise=True,
)
async def remove_database_files(path: Path) -> bool:
    """
    Delete a database file and its side files.

    Retries briefly on PermissionError (a file still held by another
    process) without blocking the event loop between attempts.
    Returns True if the main file existed.
    """
    existed = path.exists()
    # Main file last: if anything fails, the database itself is still there.
    for suffix in _SIDE_FILE_SUFFIXES:
        path.with_name(path.name + suffix).unlink(missing_ok=True)
    path.unlink(missing_ok=True)
    return existed


class TenantRegistry:
    """
    Process-scoped cache of tenant handles.

    Each tenant's storage is the file <data_dir>/<name_prefix><tenant_id><file_suffix>.
    """

    def __init__(
        self,
        settings: Optional[StoreSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._settings = settings or get_settings().store
        self._audit_logger = audit_logger
        self._handles: dict[str, LocalStoreHandle] = {}
        self._lock = asyncio.Lock()

    @property
    def settings(self) -> StoreSettings:
        return self._settings

    @property
    def audit_logger(self) -> Optional[AuditLogger]:
        return self._audit_logger

    def storage_name(self, tenant_id: str) -> str:
        """Deterministic storage name, e.g. store_alice."""
        return f"{self._settings.name_prefix}{validate_tenant_id(tenant_id)}"

    def storage_path(self, tenant_id: str) -> Path:
        return self._settings.data_dir / f"{self.storage_name(tenant_id)}{self._settings.file_suffix}"

    def staging_path(self, tenant_id: str) -> Path:
        """Where a rename into tenant_id writes before swapping in."""
        path = self.storage_path(tenant_id)
        return path.with_name(path.name + self._settings.staging_suffix)

    def storage_exists(self, tenant_id: str) -> bool:
        return self.storage_path(tenant_id).exists()

    def tenant_ids_like(self, tenant_id: str) -> list[str]:
        """
        Tenant ids with storage on disk that equal tenant_id ignoring case.

        Staging and SQLite side files are not tenants and are skipped.
        """
        validate_tenant_id(tenant_id)
        data_dir = self._settings.data_dir
        if not data_dir.is_dir():
            return []

        prefix = self._settings.name_prefix
        suffix = self._settings.file_suffix
        wanted = tenant_id.lower()
        found = []
        for path in sorted(data_dir.iterdir()):
            name = path.name
            if not (name.startswith(prefix) and name.endswith(suffix)):
                continue
            candidate = name[len(prefix):len(name) - len(suffix)]
            if candidate.endswith(self._settings.staging_suffix):
                continue
            if TENANT_ID_PATTERN.match(candidate) and candidate.lower() == wanted:
                found.append(candidate)
        return found

    async def storage_has_data(self, tenant_id: str) -> bool:
        """
        True if the tenant's storage exists and any table holds a row.

        Uses the cached handle when it is open; otherwise a short-lived
        uncached handle, so checking never adds to the cache.
        """
        if not self.storage_exists(tenant_id):
            return False
        handle = self.cached(tenant_id)
        if handle is not None and handle.is_open:
            return await handle.has_data()

        checker = self.new_handle(tenant_id)
        try:
            await checker.open()
            return await checker.has_data()
        finally:
            await checker.close()

    def cached(self, tenant_id: str) -> Optional[LocalStoreHandle]:
        """The cached handle for a tenant, without creating one."""
        return self._handles.get(tenant_id)

    def cached_tenants(self) -> list[str]:
        return sorted(self._handles)

    def new_handle(
        self,
        tenant_id: str,
        path: Optional[Path] = None,
        name: Optional[str] = None,
    ) -> LocalStoreHandle:
        """
        Build a handle with this registry's settings without caching it.

        Used for staging databases that must never be visible
        through resolve().
        """
        return LocalStoreHandle(
            name=name or self.storage_name(tenant_id),
            path=path or self.storage_path(tenant_id),
            tenant_id=tenant_id,
            busy_timeout_seconds=self._settings.busy_timeout_seconds,
            audit_logger=self._audit_logger,
        )

    async def resolve(self, tenant_id: str) -> LocalStoreHandle:
        """
        Return the tenant's handle, creating and caching it on first use.

        The handle comes back in whatever state it is in; a new one is
        unopened and opens on first table access.

        Raises:
            ValueError: If tenant_id is empty or invalid
        """
        validate_tenant_id(tenant_id)
        async with self._lock:
            handle = self._handles.get(tenant_id)
            if handle is not None:
                return handle
            handle = self.new_handle(tenant_id)
            self._handles[tenant_id] = handle
            logger.debug("tenant_handle_created", tenant_id=tenant_id, storage=handle.name)
            return handle

    async def evict(self, tenant_id: str) -> Optional[LocalStoreHandle]:
        """
        Drop a tenant's handle from the cache.

        Does not close the handle or touch its storage.
        Returns the evicted handle, if there was one.
        """
        async with self._lock:
            handle = self._handles.pop(tenant_id, None)
        if handle is not None:
            logger.debug("tenant_handle_evicted", tenant_id=tenant_id)
        return handle

    async def delete_storage(
        self,
        tenant_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """
        Permanently delete a tenant's database.

        The tenant must not have an open cached handle.
        Returns True if a database existed.

        Raises:
            StorageError: If the handle is still open or the files can't be removed
        """
        handle = self.cached(tenant_id)
        if handle is not None and handle.is_open:
            raise StorageError(f"Close {handle.name} before deleting it")

        path = self.storage_path(tenant_id)
        try:
            existed = await remove_database_files(path)
        except OSError as e:
            raise StorageError(f"Could not delete {path.name}: {e}") from e

        if existed and self._audit_logger:
            await self._audit_logger.log_store_deleted(
                tenant_id, self.storage_name(tenant_id), correlation_id
            )
        return existed

    async def close_all(self) -> None:
        """Close every cached handle (e.g. on application shutdown)."""
        async with self._lock:
            handles = list(self._handles.values())
        for handle in handles:
            await handle.close()
