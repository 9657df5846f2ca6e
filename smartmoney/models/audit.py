"""
Audit Models for SmartMoney

Every lifecycle change of a tenant's local storage is recorded as an
AuditEvent: opening, schema upgrades, closing, deletion and renames.
Events are append-only.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Storage lifecycle
    STORE_OPENED = "store_opened"
    STORE_OPEN_FAILED = "store_open_failed"
    SCHEMA_UPGRADED = "schema_upgraded"
    STORE_CLOSED = "store_closed"
    STORE_DELETED = "store_deleted"

    # Rename
    RENAME_STARTED = "rename_started"
    RENAME_REJECTED = "rename_rejected"
    RENAME_COMPLETED = "rename_completed"
    RENAME_FAILED = "rename_failed"

    # Session
    SESSION_STARTED = "session_started"
    SESSION_ENDED = "session_ended"
    TENANT_SEEDED = "tenant_seeded"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    tenant_id names the tenant whose storage the event is about.
    correlation_id ties together every event of one multi-step
    operation, such as all the events of a single rename.
    """

    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )

    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    tenant_id: Optional[str] = Field(
        default=None,
        description="Tenant whose storage this event relates to"
    )
    correlation_id: Optional[UUID] = None

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "tenant_id": self.tenant_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.store_opened("alice", "store_alice", 2)
        await audit_logger.log(event)
    """

    @staticmethod
    def store_opened(
        tenant_id: Optional[str],
        storage_name: str,
        schema_version: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORE_OPENED,
            tenant_id=tenant_id,
            description=f"Opened {storage_name}",
            details={"storage_name": storage_name, "schema_version": schema_version},
        )

    @staticmethod
    def store_open_failed(
        tenant_id: Optional[str],
        storage_name: str,
        error: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORE_OPEN_FAILED,
            severity=AuditSeverity.ERROR,
            tenant_id=tenant_id,
            description=f"Could not open {storage_name}",
            details={"storage_name": storage_name},
            error_message=error,
        )

    @staticmethod
    def schema_upgraded(
        tenant_id: Optional[str],
        storage_name: str,
        from_version: int,
        to_version: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SCHEMA_UPGRADED,
            tenant_id=tenant_id,
            description=f"Upgraded {storage_name} from v{from_version} to v{to_version}",
            details={
                "storage_name": storage_name,
                "from_version": from_version,
                "to_version": to_version,
            },
        )

    @staticmethod
    def store_closed(tenant_id: Optional[str], storage_name: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORE_CLOSED,
            severity=AuditSeverity.DEBUG,
            tenant_id=tenant_id,
            description=f"Closed {storage_name}",
            details={"storage_name": storage_name},
        )

    @staticmethod
    def store_deleted(
        tenant_id: str,
        storage_name: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORE_DELETED,
            severity=AuditSeverity.WARNING,
            tenant_id=tenant_id,
            correlation_id=correlation_id,
            description=f"Deleted {storage_name}",
            details={"storage_name": storage_name},
        )

    @staticmethod
    def rename_started(
        old_tenant_id: str,
        new_tenant_id: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RENAME_STARTED,
            tenant_id=old_tenant_id,
            correlation_id=correlation_id,
            description=f"Renaming {old_tenant_id} to {new_tenant_id}",
            details={"new_tenant_id": new_tenant_id},
        )

    @staticmethod
    def rename_rejected(
        old_tenant_id: str,
        new_tenant_id: str,
        reason: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RENAME_REJECTED,
            severity=AuditSeverity.WARNING,
            tenant_id=old_tenant_id,
            correlation_id=correlation_id,
            description=f"Rename to {new_tenant_id} rejected",
            details={"new_tenant_id": new_tenant_id},
            error_message=reason,
        )

    @staticmethod
    def rename_completed(
        old_tenant_id: str,
        new_tenant_id: str,
        copied: dict[str, int],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RENAME_COMPLETED,
            tenant_id=new_tenant_id,
            correlation_id=correlation_id,
            description=f"Renamed {old_tenant_id} to {new_tenant_id}",
            details={"old_tenant_id": old_tenant_id, "copied": copied},
        )

    @staticmethod
    def rename_failed(
        old_tenant_id: str,
        new_tenant_id: str,
        error: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RENAME_FAILED,
            severity=AuditSeverity.ERROR,
            tenant_id=old_tenant_id,
            correlation_id=correlation_id,
            description=f"Rename to {new_tenant_id} failed",
            details={"new_tenant_id": new_tenant_id},
            error_message=error,
        )

    @staticmethod
    def session_started(tenant_id: str, is_new_tenant: bool) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SESSION_STARTED,
            tenant_id=tenant_id,
            description=f"{tenant_id} logged in",
            details={"is_new_tenant": is_new_tenant},
        )

    @staticmethod
    def session_ended(tenant_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SESSION_ENDED,
            tenant_id=tenant_id,
            description=f"{tenant_id} logged out",
        )

    @staticmethod
    def tenant_seeded(tenant_id: str, counts: dict[str, int]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TENANT_SEEDED,
            tenant_id=tenant_id,
            description=f"Seeded default data for {tenant_id}",
            details=counts,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        tenant_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            tenant_id=tenant_id,
            correlation_id=correlation_id,
            description=f"System error: {error_type}",
            details=details or {},
            error_message=error_message,
        )
