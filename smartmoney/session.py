"""
Tenant Session

The identity-facing side of the local store. The identity provider tells
us who logged in, who logged out and what a user wants to be called;
this module turns that into registry, handle and rename calls.

- login opens the tenant's store and makes sure a profile row exists
- logout forgets the current tenant but leaves its data on disk
- change_username only switches identity after the rename succeeded
"""

import re
from typing import Optional

import structlog
from pydantic import BaseModel

from smartmoney.audit import AuditLogger, configure_logging
from smartmoney.config import AppSettings, StoreSettings, get_settings
from smartmoney.models.records import StoredProfile
from smartmoney.seed import seed_tenant
from smartmoney.storage.handle import HandleState, LocalStoreHandle
from smartmoney.storage.interface import StorageError
from smartmoney.storage.registry import TenantRegistry
from smartmoney.storage.rename import RenameResult, TenantRenamer


logger = structlog.get_logger(__name__)

USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_]{3,15}$")

INVALID_USERNAME_MESSAGE = (
    "Username must be 3-15 characters and contain only letters, numbers, or underscores."
)
USERNAME_TAKEN_MESSAGE = "This username is already taken."
RENAME_FAILED_MESSAGE = "Failed to update user data. Please try again."


class NotLoggedInError(Exception):
    """No tenant is logged in."""
    pass


class UsernameChangeResult(BaseModel):
    success: bool
    message: Optional[str] = None
    rename: Optional[RenameResult] = None


class TenantSession:
    """
    Tracks the logged-in tenant for one application session.

    Usage:
        session = TenantSession(registry)
        handle = await session.login("alice")
        await handle.transactions.add(...)
        result = await session.change_username("alicia")
    """

    def __init__(
        self,
        registry: TenantRegistry,
        renamer: Optional[TenantRenamer] = None,
        audit_logger: Optional[AuditLogger] = None,
        seed_new_tenants: bool = False,
    ):
        self._registry = registry
        self._audit_logger = audit_logger or registry.audit_logger
        self._renamer = renamer or TenantRenamer(registry, self._audit_logger)
        self._seed_new_tenants = seed_new_tenants
        self._current: Optional[str] = None

    @property
    def current_tenant_id(self) -> Optional[str]:
        return self._current

    @property
    def is_logged_in(self) -> bool:
        return self._current is not None

    async def login(self, tenant_id: str) -> LocalStoreHandle:
        """
        Open the tenant's store and make it current.

        Raises:
            ValueError: If tenant_id is invalid
            StorageUnavailableError: If the store can't be opened
        """
        is_new = not self._registry.storage_exists(tenant_id)
        handle = await self._registry.resolve(tenant_id)
        if handle.state is not HandleState.OPEN:
            await handle.open()

        if await handle.profiles.get(tenant_id) is None:
            await handle.profiles.put(StoredProfile(username=tenant_id))

        if is_new and self._seed_new_tenants:
            try:
                counts = await seed_tenant(handle)
            except StorageError as e:
                # Login proceeds without defaults.
                logger.error("tenant_seed_failed", tenant_id=tenant_id, error=str(e))
                if self._audit_logger:
                    await self._audit_logger.log_error(
                        "tenant_seed_failed", str(e), tenant_id=tenant_id
                    )
            else:
                if self._audit_logger:
                    await self._audit_logger.log_tenant_seeded(tenant_id, counts)

        self._current = tenant_id
        if self._audit_logger:
            await self._audit_logger.log_session_started(tenant_id, is_new)
        return handle

    async def logout(self) -> None:
        """Forget the current tenant. Local storage is left as it is."""
        tenant_id = self._current
        self._current = None
        if tenant_id and self._audit_logger:
            await self._audit_logger.log_session_ended(tenant_id)

    async def handle(self) -> LocalStoreHandle:
        if self._current is None:
            raise NotLoggedInError("No user is logged in.")
        return await self._registry.resolve(self._current)

    async def update_profile(
        self,
        full_name: Optional[str] = None,
        bio: Optional[str] = None,
        avatar: Optional[str] = None,
    ) -> StoredProfile:
        """Overwrite the current tenant's profile fields."""
        handle = await self.handle()
        profile = StoredProfile(
            username=self._current,
            full_name=full_name,
            bio=bio,
            avatar=avatar,
        )
        await handle.profiles.put(profile)
        return profile

    async def is_username_taken(self, username: str) -> bool:
        """
        A username is taken when storage for it, under any letter case,
        exists and holds data.
        """
        for tenant_id in self._registry.tenant_ids_like(username):
            if await self._registry.storage_has_data(tenant_id):
                return True
        return False

    async def change_username(self, new_username: str) -> UsernameChangeResult:
        """
        Rename the current tenant.

        The current tenant only changes when the rename succeeded.
        """
        trimmed = new_username.strip()
        if self._current is None:
            return UsernameChangeResult(success=False, message="No user is logged in.")
        if self._current.lower() == trimmed.lower():
            return UsernameChangeResult(success=True)
        if not USERNAME_PATTERN.match(trimmed):
            return UsernameChangeResult(success=False, message=INVALID_USERNAME_MESSAGE)
        if await self.is_username_taken(trimmed):
            return UsernameChangeResult(success=False, message=USERNAME_TAKEN_MESSAGE)

        result = await self._renamer.rename_tenant(self._current, trimmed)
        if not result.success:
            if result.conflict:
                message = USERNAME_TAKEN_MESSAGE
            else:
                message = f"{RENAME_FAILED_MESSAGE} ({result.message})"
            return UsernameChangeResult(success=False, message=message, rename=result)

        self._current = trimmed
        return UsernameChangeResult(success=True, rename=result)


def create_session(
    store_settings: Optional[StoreSettings] = None,
    app_settings: Optional[AppSettings] = None,
    audit_logger: Optional[AuditLogger] = None,
) -> TenantSession:
    """
    Factory function to create the session components.

    Args:
        store_settings: Storage settings; defaults to the environment
        app_settings: App settings; defaults to the environment
        audit_logger: Defaults to a local-only AuditLogger
    """
    settings = get_settings()
    store_settings = store_settings or settings.store
    app_settings = app_settings or settings.app
    configure_logging(app_settings.log_level)
    audit_logger = audit_logger or AuditLogger()

    registry = TenantRegistry(store_settings, audit_logger)
    return TenantSession(
        registry,
        audit_logger=audit_logger,
        seed_new_tenants=app_settings.seed_new_tenants,
    )
