"""
Tests for SmartMoney models

Test strategy:
1. Unit tests for individual components (models, validators)
2. Integration tests for flows against real SQLite files under tmp_path
3. No shared state between tests (each gets its own registry)
"""

import pytest
from decimal import Decimal
from uuid import uuid4

from pydantic import ValidationError

from smartmoney.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from smartmoney.models.records import (
    StoredBudgetEntry,
    StoredProfile,
    StoredTransaction,
    TransactionCategory,
    TransactionSource,
    TransactionType,
)


class TestRecordModels:
    """Tests for the stored record models."""

    def test_transaction_creation(self):
        """Test StoredTransaction creation with defaults."""
        t = StoredTransaction(
            id="t1",
            date="2024-12-01T10:00:00+00:00",
            description="Zomato Order",
            amount=Decimal("450.00"),
            type=TransactionType.EXPENSE,
            category=TransactionCategory.FOOD,
        )
        assert t.source == TransactionSource.MANUAL
        assert t.notes is None
        assert t.tags is None

    def test_transaction_rejects_zero_and_negative_amount(self):
        """Test that amounts must be strictly positive."""
        for amount in ("0", "-100"):
            with pytest.raises(ValueError):
                StoredTransaction(
                    id="t1",
                    date="2024-12-01",
                    description="Test",
                    amount=Decimal(amount),
                    type=TransactionType.EXPENSE,
                    category=TransactionCategory.FOOD,
                )

    def test_transaction_date_validation(self):
        """Test that dates must be ISO-8601."""
        with pytest.raises(ValueError):
            StoredTransaction(
                id="t1",
                date="01/12/2024",
                description="Test",
                amount=Decimal("1"),
                type=TransactionType.INCOME,
                category=TransactionCategory.SALARY,
            )

    def test_transaction_accepts_z_suffix(self):
        """Test that a trailing Z is accepted as UTC."""
        t = StoredTransaction(
            id="t1",
            date="2024-12-01T10:00:00.000Z",
            description="Salary",
            amount=Decimal("85000"),
            type=TransactionType.INCOME,
            category=TransactionCategory.SALARY,
        )
        assert t.date == "2024-12-01T10:00:00.000Z"

    def test_signed_amount(self):
        """Test that expenses are negative and income positive."""
        base = dict(
            id="t1",
            date="2024-12-01",
            description="Test",
            amount=Decimal("10"),
            category=TransactionCategory.OTHER,
        )
        assert StoredTransaction(type=TransactionType.EXPENSE, **base).signed_amount == Decimal("-10")
        assert StoredTransaction(type=TransactionType.INCOME, **base).signed_amount == Decimal("10")

    def test_records_are_frozen(self):
        """Test that stored records can't be mutated in place."""
        profile = StoredProfile(username="alice")
        with pytest.raises(ValidationError):
            profile.username = "bob"

    def test_budget_allows_zero_but_not_negative(self):
        """Test that a zero budget is valid and a negative one is not."""
        entry = StoredBudgetEntry(category=TransactionCategory.HEALTH, amount=Decimal("0"))
        assert entry.amount == Decimal("0")
        with pytest.raises(ValueError):
            StoredBudgetEntry(category=TransactionCategory.HEALTH, amount=Decimal("-1"))

    def test_category_values(self):
        """Test category enum values as they are written to storage."""
        assert TransactionCategory.FOOD.value == "Food"
        assert TransactionCategory.FREELANCE.value == "Freelance"
        assert len(TransactionCategory) == 9


class TestAuditModels:
    """Tests for audit models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.STORE_OPENED,
            description="Opened store_alice",
        )
        assert event.event_type == AuditEventType.STORE_OPENED
        assert event.severity == AuditSeverity.INFO
        assert event.timestamp.tzinfo is not None

    def test_audit_event_to_log_dict(self):
        """Test conversion to a log dictionary."""
        correlation_id = uuid4()
        event = AuditEvent(
            event_type=AuditEventType.STORE_DELETED,
            tenant_id="alice",
            correlation_id=correlation_id,
            description="Deleted store_alice",
        )
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "store_deleted"
        assert log_dict["tenant_id"] == "alice"
        assert log_dict["correlation_id"] == str(correlation_id)

    def test_audit_event_builder_rename_completed(self):
        """Test AuditEventBuilder.rename_completed."""
        correlation_id = uuid4()
        event = AuditEventBuilder.rename_completed(
            "alice", "alicia", {"transactions": 3}, correlation_id
        )
        assert event.event_type == AuditEventType.RENAME_COMPLETED
        assert event.tenant_id == "alicia"
        assert event.details["old_tenant_id"] == "alice"
        assert event.details["copied"] == {"transactions": 3}

    def test_audit_event_builder_rename_failed(self):
        """Test AuditEventBuilder.rename_failed."""
        event = AuditEventBuilder.rename_failed("alice", "alicia", "disk full", uuid4())
        assert event.severity == AuditSeverity.ERROR
        assert event.error_message == "disk full"
