"""
Audit Logger

Every lifecycle change of a tenant's storage is logged:
opens, schema upgrades, closes, deletions, renames and sessions.

The audit logger:
- Is async so it can be awaited from storage coroutines
- Never raises (a failed log line must not fail a rename)
- Supports correlation IDs to trace the steps of one operation
- Keeps a bounded in-memory history for inspection
"""

import logging
from collections import deque
from typing import Optional
from uuid import UUID, uuid4

import structlog

from smartmoney.models.audit import AuditEvent, AuditEventBuilder


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """Route structlog output through stdlib logging at the given level."""
    logging.basicConfig(format="%(message)s", level=level.upper())


class AuditLogger:
    """
    Central audit logging service.

    Logs events to the structured local log and keeps the most
    recent ones in memory.
    """

    def __init__(self, history_size: int = 500):
        """
        Initialize audit logger.

        Args:
            history_size: How many recent events to keep in memory.
        """
        self._history: deque[AuditEvent] = deque(maxlen=history_size)
        self._logger = structlog.get_logger("smartmoney.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Returns False if the event could not be written locally.
        """
        self._history.append(event)

        try:
            log_dict = event.to_log_dict()
            if event.severity.value in ("error", "critical"):
                self._logger.error("audit_event", **log_dict)
            elif event.severity.value == "warning":
                self._logger.warning("audit_event", **log_dict)
            elif event.severity.value == "debug":
                self._logger.debug("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except Exception as e:
            # Log failure but don't raise
            logging.getLogger(__name__).error(
                "audit log write failed for %s: %s", event.event_id, e
            )
            return False

        return True

    def recent_events(self, limit: int = 100) -> list[AuditEvent]:
        """Most recent events, newest first."""
        events = list(self._history)
        events.reverse()
        return events[:limit]

    def events_by_correlation_id(self, correlation_id: UUID) -> list[AuditEvent]:
        """All remembered events of one operation, in chronological order."""
        return [e for e in self._history if e.correlation_id == correlation_id]

    async def log_store_opened(
        self,
        tenant_id: Optional[str],
        storage_name: str,
        schema_version: int,
    ) -> None:
        await self.log(
            AuditEventBuilder.store_opened(tenant_id, storage_name, schema_version)
        )

    async def log_store_open_failed(
        self,
        tenant_id: Optional[str],
        storage_name: str,
        error: str,
    ) -> None:
        await self.log(
            AuditEventBuilder.store_open_failed(tenant_id, storage_name, error)
        )

    async def log_schema_upgraded(
        self,
        tenant_id: Optional[str],
        storage_name: str,
        from_version: int,
        to_version: int,
    ) -> None:
        await self.log(
            AuditEventBuilder.schema_upgraded(
                tenant_id, storage_name, from_version, to_version
            )
        )

    async def log_store_closed(self, tenant_id: Optional[str], storage_name: str) -> None:
        await self.log(AuditEventBuilder.store_closed(tenant_id, storage_name))

    async def log_store_deleted(
        self,
        tenant_id: str,
        storage_name: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(
            AuditEventBuilder.store_deleted(tenant_id, storage_name, correlation_id)
        )

    async def log_rename_started(
        self,
        old_tenant_id: str,
        new_tenant_id: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(
            AuditEventBuilder.rename_started(old_tenant_id, new_tenant_id, correlation_id)
        )

    async def log_rename_rejected(
        self,
        old_tenant_id: str,
        new_tenant_id: str,
        reason: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(
            AuditEventBuilder.rename_rejected(
                old_tenant_id, new_tenant_id, reason, correlation_id
            )
        )

    async def log_rename_completed(
        self,
        old_tenant_id: str,
        new_tenant_id: str,
        copied: dict[str, int],
        correlation_id: UUID,
    ) -> None:
        await self.log(
            AuditEventBuilder.rename_completed(
                old_tenant_id, new_tenant_id, copied, correlation_id
            )
        )

    async def log_rename_failed(
        self,
        old_tenant_id: str,
        new_tenant_id: str,
        error: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(
            AuditEventBuilder.rename_failed(
                old_tenant_id, new_tenant_id, error, correlation_id
            )
        )

    async def log_session_started(self, tenant_id: str, is_new_tenant: bool) -> None:
        await self.log(AuditEventBuilder.session_started(tenant_id, is_new_tenant))

    async def log_session_ended(self, tenant_id: str) -> None:
        await self.log(AuditEventBuilder.session_ended(tenant_id))

    async def log_tenant_seeded(self, tenant_id: str, counts: dict[str, int]) -> None:
        await self.log(AuditEventBuilder.tenant_seeded(tenant_id, counts))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        tenant_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(
            AuditEventBuilder.system_error(
                error_type=error_type,
                error_message=error_message,
                details=details,
                tenant_id=tenant_id,
                correlation_id=correlation_id,
            )
        )


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a multi-step operation (e.g. a rename)
    and pass it through all subsequent steps.
    """
    return uuid4()
