"""
Tenant Rename / Migration Engine

Moves a tenant's whole dataset to a new tenant id and retires the old
storage. Observers see either the old data under the old id (rename
failed) or all of it under the new id (rename succeeded), never a mix.

Steps:
1. Read every row of the old tenant's database into memory.
2. Write all rows into a staging database beside the target, in one
   transaction. The profile row is re-keyed to the new username.
3. Close the old and new handles and evict both from the registry.
4. Swap the staging file into the target's place (os.replace).
5. Delete the old database. If that fails while the old database is
   still there, the swap is undone.

Any failure before step 4 leaves the target untouched and the staging
file removed. The old tenant's database is never modified before the
swap, so a failed rename keeps it fully usable.
"""

import asyncio
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional
from uuid import UUID

import structlog
from pydantic import BaseModel, Field

from smartmoney.audit import AuditLogger, create_correlation_id
from smartmoney.models.records import (
    StoredAccount,
    StoredBudgetEntry,
    StoredProfile,
    StoredTransaction,
)
from smartmoney.storage.handle import HandleState, LocalStoreHandle
from smartmoney.storage.interface import (
    RenameConflictError,
    RenameFailedError,
    StorageError,
)
from smartmoney.storage.registry import (
    TenantRegistry,
    remove_database_files,
    validate_tenant_id,
)


logger = structlog.get_logger(__name__)


class RenameFailureReason(str, Enum):
    INVALID_TENANT = "invalid_tenant"
    CONFLICT = "conflict"
    FAILED = "failed"


class RenameResult(BaseModel):
    """Outcome of a rename. Callers must check success before switching identity."""

    success: bool
    old_tenant_id: str
    new_tenant_id: str
    correlation_id: UUID
    reason: Optional[RenameFailureReason] = None
    message: Optional[str] = None
    copied: dict[str, int] = Field(
        default_factory=dict,
        description="Rows copied per table"
    )
    residual_paths: list[str] = Field(
        default_factory=list,
        description="Files a failed rename could not clean up"
    )

    @property
    def conflict(self) -> bool:
        return self.reason == RenameFailureReason.CONFLICT


@dataclass
class TenantSnapshot:
    """Every row of one tenant database, held in memory."""

    transactions: list[StoredTransaction] = field(default_factory=list)
    accounts: list[StoredAccount] = field(default_factory=list)
    budget: list[StoredBudgetEntry] = field(default_factory=list)
    profiles: list[StoredProfile] = field(default_factory=list)

    def counts(self) -> dict[str, int]:
        return {
            "transactions": len(self.transactions),
            "accounts": len(self.accounts),
            "budget": len(self.budget),
            "profiles": len(self.profiles),
        }

    def rekeyed(self, old_username: str, new_username: str) -> "TenantSnapshot":
        """Copy with the old tenant's profile row keyed to the new username."""
        return TenantSnapshot(
            transactions=list(self.transactions),
            accounts=list(self.accounts),
            budget=list(self.budget),
            profiles=[
                p.model_copy(update={"username": new_username}) if p.username == old_username else p
                for p in self.profiles
            ],
        )


async def read_snapshot(handle: LocalStoreHandle) -> TenantSnapshot:
    return TenantSnapshot(
        transactions=await handle.transactions.list_all(),
        accounts=await handle.accounts.list_all(),
        budget=await handle.budget.list_all(),
        profiles=await handle.profiles.list_all(),
    )


async def write_snapshot(handle: LocalStoreHandle, snapshot: TenantSnapshot) -> None:
    """Insert every row of a snapshot in one transaction."""
    async with handle.transaction():
        await handle.transactions.bulk_add(snapshot.transactions)
        await handle.accounts.bulk_add(snapshot.accounts)
        await handle.budget.bulk_add(snapshot.budget)
        await handle.profiles.bulk_add(snapshot.profiles)


class TenantRenamer:
    """
    Runs renames against one TenantRegistry.

    Renames through the same renamer run one at a time.
    """

    def __init__(
        self,
        registry: TenantRegistry,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._registry = registry
        self._audit_logger = audit_logger or registry.audit_logger
        self._lock = asyncio.Lock()

    async def rename_tenant(self, old_tenant_id: str, new_tenant_id: str) -> RenameResult:
        """
        Move all of old_tenant_id's data to new_tenant_id.

        Never raises; failures are reported in the returned RenameResult.
        """
        correlation_id = create_correlation_id()

        def failure(reason: RenameFailureReason, message: str, **extra) -> RenameResult:
            return RenameResult(
                success=False,
                old_tenant_id=old_tenant_id,
                new_tenant_id=new_tenant_id,
                correlation_id=correlation_id,
                reason=reason,
                message=message,
                **extra,
            )

        try:
            validate_tenant_id(old_tenant_id)
            validate_tenant_id(new_tenant_id)
        except ValueError as e:
            return failure(RenameFailureReason.INVALID_TENANT, str(e))

        if old_tenant_id == new_tenant_id:
            return RenameResult(
                success=True,
                old_tenant_id=old_tenant_id,
                new_tenant_id=new_tenant_id,
                correlation_id=correlation_id,
                message="Nothing to rename.",
            )
        if old_tenant_id.lower() == new_tenant_id.lower():
            # Would be the same file on case-insensitive filesystems.
            return failure(
                RenameFailureReason.INVALID_TENANT,
                "Tenant ids that differ only by case can't be renamed into each other.",
            )

        async with self._lock:
            if self._audit_logger:
                await self._audit_logger.log_rename_started(
                    old_tenant_id, new_tenant_id, correlation_id
                )

            try:
                await self._check_target(new_tenant_id)
            except RenameConflictError as e:
                if self._audit_logger:
                    await self._audit_logger.log_rename_rejected(
                        old_tenant_id, new_tenant_id, str(e), correlation_id
                    )
                return failure(RenameFailureReason.CONFLICT, str(e))
            except Exception as e:
                return await self._failed(
                    failure, old_tenant_id, new_tenant_id, e, correlation_id
                )

            try:
                copied = await self._migrate(old_tenant_id, new_tenant_id, correlation_id)
            except Exception as e:
                # Any failure, including an unreadable row, becomes a result.
                return await self._failed(
                    failure, old_tenant_id, new_tenant_id, e, correlation_id
                )

            if self._audit_logger:
                await self._audit_logger.log_rename_completed(
                    old_tenant_id, new_tenant_id, copied, correlation_id
                )
            return RenameResult(
                success=True,
                old_tenant_id=old_tenant_id,
                new_tenant_id=new_tenant_id,
                correlation_id=correlation_id,
                copied=copied,
            )

    async def _check_target(self, new_tenant_id: str) -> None:
        """
        Tenants whose ids differ from the target only by case count as
        the target: on a case-insensitive filesystem they share its file.

        Raises:
            RenameConflictError: If the target, or a case variant of it,
                already holds data
        """
        for tenant_id in self._registry.tenant_ids_like(new_tenant_id):
            if not await self._registry.storage_has_data(tenant_id):
                continue
            if tenant_id == new_tenant_id:
                raise RenameConflictError(f"{new_tenant_id} already has data")
            raise RenameConflictError(
                f"{tenant_id} already has data and differs from {new_tenant_id} only by case"
            )

    async def _migrate(
        self,
        old_tenant_id: str,
        new_tenant_id: str,
        correlation_id: UUID,
    ) -> dict[str, int]:
        registry = self._registry

        old_handle = await registry.resolve(old_tenant_id)
        if old_handle.state is HandleState.CLOSED:
            await old_handle.open()
        snapshot = (await read_snapshot(old_handle)).rekeyed(old_tenant_id, new_tenant_id)

        staging_path = registry.staging_path(new_tenant_id)
        await remove_database_files(staging_path)
        staging = registry.new_handle(
            new_tenant_id,
            path=staging_path,
            name=registry.storage_name(new_tenant_id) + registry.settings.staging_suffix,
        )
        try:
            await staging.open()
            await write_snapshot(staging, snapshot)
        finally:
            await staging.close()

        await old_handle.close()
        new_handle = registry.cached(new_tenant_id)
        if new_handle is not None:
            await new_handle.close()
        await registry.evict(old_tenant_id)
        await registry.evict(new_tenant_id)

        target_path = registry.storage_path(new_tenant_id)
        await remove_database_files(target_path)
        os.replace(staging_path, target_path)

        try:
            await registry.delete_storage(old_tenant_id, correlation_id)
        except StorageError as e:
            if not registry.storage_exists(old_tenant_id):
                # Old database is gone; the new one is the only copy now.
                logger.warning(
                    "old_storage_partially_deleted",
                    tenant_id=old_tenant_id,
                    error=str(e),
                )
                return snapshot.counts()
            try:
                await remove_database_files(target_path)
            except OSError as undo_error:
                raise RenameFailedError(
                    f"Could not delete old storage ({e}) and could not undo the copy ({undo_error})",
                    residual_paths=[str(target_path)],
                ) from e
            raise RenameFailedError(f"Could not delete old storage: {e}") from e

        return snapshot.counts()

    async def _failed(
        self,
        failure,
        old_tenant_id: str,
        new_tenant_id: str,
        error: Exception,
        correlation_id: UUID,
    ) -> RenameResult:
        residual: list[str] = []
        staging_path = self._registry.staging_path(new_tenant_id)
        try:
            await remove_database_files(staging_path)
        except OSError:
            residual.append(str(staging_path))
        if isinstance(error, RenameFailedError):
            residual.extend(error.residual_paths)

        if residual:
            message = (
                f"Rename failed: {error}. {old_tenant_id}'s data is intact; "
                f"partial data was left in {', '.join(residual)}"
            )
        else:
            message = (
                f"Rename failed: {error}. {old_tenant_id}'s data is intact "
                "and no partial data was left behind"
            )

        logger.error(
            "rename_failed",
            old_tenant_id=old_tenant_id,
            new_tenant_id=new_tenant_id,
            error=str(error),
            exc_info=error,
        )
        if self._audit_logger:
            await self._audit_logger.log_rename_failed(
                old_tenant_id, new_tenant_id, str(error), correlation_id
            )
        return failure(RenameFailureReason.FAILED, message, residual_paths=residual)
