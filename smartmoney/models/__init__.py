"""
Data Models Package

Pydantic models for everything that is stored in, or logged about,
a tenant's local database.
"""

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
from smartmoney.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Stored records
    "AccountType",
    "StoredAccount",
    "StoredBudgetEntry",
    "StoredProfile",
    "StoredTransaction",
    "TransactionCategory",
    "TransactionSource",
    "TransactionType",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
