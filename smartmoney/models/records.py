"""
Stored Record Models for SmartMoney

These models define the storage-facing shape of every row kept in a
tenant's local database. They are designed to:
1. Enforce the record invariants at runtime (positive amounts, enums)
2. Hold only serializable values (no UI objects)
3. Round-trip through storage unchanged

The UI-facing Account (which carries an icon capability instead of a
string identifier) lives in smartmoney.adapters.accounts.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Direction of a transaction."""
    INCOME = "Income"
    EXPENSE = "Expense"


class TransactionCategory(str, Enum):
    """
    Supported transaction categories.

    Budgets are keyed by category, so this set is also the set of
    possible budget entries per tenant.
    """
    FOOD = "Food"
    BILLS = "Bills"
    SHOPPING = "Shopping"
    TRANSPORT = "Transport"
    ENTERTAINMENT = "Entertainment"
    HEALTH = "Health"
    SALARY = "Salary"
    FREELANCE = "Freelance"
    OTHER = "Other"


class TransactionSource(str, Enum):
    """Where a transaction came from."""
    MANUAL = "Manual"
    UPI = "UPI"


class AccountType(str, Enum):
    """Kind of linked account."""
    UPI = "UPI"
    BANK = "Bank"


# =============================================================================
# STORED RECORDS
# =============================================================================

class StoredTransaction(BaseModel):
    """
    A transaction row.

    The id is the primary key and never changes once created.
    The date stays an ISO-8601 string so range queries on the
    date index compare lexicographically.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: str = Field(
        ...,
        min_length=1,
        description="Unique transaction id"
    )
    date: str = Field(
        ...,
        description="ISO-8601 timestamp"
    )
    description: str = Field(
        ...,
        max_length=500,
        description="What the money was for"
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Positive amount; direction is given by type"
    )
    type: TransactionType
    category: TransactionCategory
    source: TransactionSource = TransactionSource.MANUAL
    notes: Optional[str] = Field(
        default=None,
        max_length=1000,
    )
    tags: Optional[list[str]] = Field(
        default=None,
        description="Ordered list of free-text tags"
    )

    @field_validator('date')
    @classmethod
    def validate_date(cls, v: str) -> str:
        """Reject anything that is not an ISO-8601 date or timestamp."""
        try:
            datetime.fromisoformat(v.replace("Z", "+00:00"))
        except ValueError:
            raise ValueError(f"Not an ISO-8601 timestamp: {v!r}")
        return v

    @property
    def signed_amount(self) -> Decimal:
        """Amount with expenses negative."""
        if self.type == TransactionType.EXPENSE:
            return -self.amount
        return self.amount


class StoredAccount(BaseModel):
    """
    A linked account row.

    icon holds a stable string identifier (see IconId), never the icon
    object itself. Unknown identifiers are kept as-is so that rows written
    by a newer client still load.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=100)
    type: AccountType
    icon: str = Field(
        ...,
        description="Stable icon identifier"
    )


class StoredBudgetEntry(BaseModel):
    """
    A budget for one category.

    A missing entry means "no budget set", which is different
    from an entry with amount 0.
    """
    model_config = ConfigDict(frozen=True)

    category: TransactionCategory
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Budget limit for the category"
    )


class StoredProfile(BaseModel):
    """The tenant's profile row, keyed by the tenant's current username."""
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    username: str = Field(..., min_length=1)
    full_name: Optional[str] = Field(default=None, max_length=200)
    bio: Optional[str] = Field(default=None, max_length=1000)
    avatar: Optional[str] = Field(
        default=None,
        description="Opaque encoded image (e.g. a data URL)"
    )
