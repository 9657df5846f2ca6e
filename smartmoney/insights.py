"""
Spending Insights

Aggregates a tenant's transactions for the dashboard and budget views.

All numbers come from the tenant's local store; nothing is estimated.
Ranges are half-open (start <= date < end) and use the date index.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Union

from pydantic import BaseModel

from smartmoney.models.records import (
    StoredTransaction,
    TransactionCategory,
    TransactionType,
)
from smartmoney.storage.handle import LocalStoreHandle


DateBound = Union[str, date, datetime]


class PeriodTotals(BaseModel):
    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")
    transaction_count: int = 0

    @property
    def net(self) -> Decimal:
        return self.income - self.expense


class BudgetStatus(BaseModel):
    """
    Spend against budget for one category.

    budget is None when no budget is set for the category, which is
    not the same as a budget of 0.
    """
    category: TransactionCategory
    budget: Optional[Decimal] = None
    spent: Decimal = Decimal("0")

    @property
    def has_budget(self) -> bool:
        return self.budget is not None

    @property
    def remaining(self) -> Optional[Decimal]:
        if self.budget is None:
            return None
        return self.budget - self.spent

    @property
    def over_budget(self) -> bool:
        return self.budget is not None and self.spent > self.budget


class SpendingInsights:
    """Read-only aggregations over one tenant handle."""

    def __init__(self, handle: LocalStoreHandle):
        self._handle = handle

    async def _in_range(
        self,
        start: Optional[DateBound],
        end: Optional[DateBound],
    ) -> list[StoredTransaction]:
        if start is None and end is None:
            return await self._handle.transactions.list_all()
        # Open-ended bounds; ISO timestamps sort between these.
        return await self._handle.transactions.between(
            start if start is not None else "0000",
            end if end is not None else "9999",
        )

    async def totals(
        self,
        start: Optional[DateBound] = None,
        end: Optional[DateBound] = None,
    ) -> PeriodTotals:
        income = Decimal("0")
        expense = Decimal("0")
        transactions = await self._in_range(start, end)
        for t in transactions:
            if t.type == TransactionType.INCOME:
                income += t.amount
            else:
                expense += t.amount
        return PeriodTotals(income=income, expense=expense, transaction_count=len(transactions))

    async def spending_by_category(
        self,
        start: Optional[DateBound] = None,
        end: Optional[DateBound] = None,
    ) -> dict[TransactionCategory, Decimal]:
        """Expense totals per category; categories with no spend are omitted."""
        out: dict[TransactionCategory, Decimal] = {}
        for t in await self._in_range(start, end):
            if t.type != TransactionType.EXPENSE:
                continue
            out[t.category] = out.get(t.category, Decimal("0")) + t.amount
        return out

    async def budget_status(
        self,
        start: Optional[DateBound] = None,
        end: Optional[DateBound] = None,
    ) -> list[BudgetStatus]:
        """One row per category that has a budget or any spend, in category order."""
        budgets = await self._handle.budget.as_mapping()
        spent = await self.spending_by_category(start, end)
        return [
            BudgetStatus(
                category=category,
                budget=budgets.get(category),
                spent=spent.get(category, Decimal("0")),
            )
            for category in TransactionCategory
            if category in budgets or category in spent
        ]
