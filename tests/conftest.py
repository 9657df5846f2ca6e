"""
Shared fixtures.

Every test gets its own data directory under tmp_path, its own
registry and a local-only audit logger. No test touches ./data.
"""

import asyncio
from decimal import Decimal

import pytest

from smartmoney.audit import AuditLogger
from smartmoney.config import StoreSettings
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
from smartmoney.storage import TenantRegistry


def run(coro):
    """Drive a coroutine to completion from a synchronous test."""
    return asyncio.run(coro)


@pytest.fixture
def store_settings(tmp_path):
    return StoreSettings(data_dir=tmp_path / "data", busy_timeout_seconds=1.0)


@pytest.fixture
def audit_logger():
    return AuditLogger()


@pytest.fixture
def registry(store_settings, audit_logger):
    return TenantRegistry(store_settings, audit_logger)


def make_transaction(
    id: str,
    amount: str = "10.00",
    date: str = "2024-12-01T10:00:00+00:00",
    type: TransactionType = TransactionType.EXPENSE,
    category: TransactionCategory = TransactionCategory.FOOD,
    **extra,
) -> StoredTransaction:
    return StoredTransaction(
        id=id,
        date=date,
        description=extra.pop("description", f"Transaction {id}"),
        amount=Decimal(amount),
        type=type,
        category=category,
        source=extra.pop("source", TransactionSource.MANUAL),
        **extra,
    )


def make_account(id: str = "acc-1", icon: str = "GooglePayIcon") -> StoredAccount:
    return StoredAccount(id=id, name="Google Pay", type=AccountType.UPI, icon=icon)


def make_budget(category: TransactionCategory, amount: str) -> StoredBudgetEntry:
    return StoredBudgetEntry(category=category, amount=Decimal(amount))


def make_profile(username: str) -> StoredProfile:
    return StoredProfile(username=username, full_name="Alice Example", bio="Saving up")
