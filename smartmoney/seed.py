"""
Default Data for New Tenants

Linked accounts and budgets a brand-new tenant starts with, plus an
optional month of sample transactions for demos.
"""

import random
from datetime import datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Optional

from smartmoney.adapters.icons import IconId
from smartmoney.models.records import (
    AccountType,
    StoredAccount,
    StoredBudgetEntry,
    StoredTransaction,
    TransactionCategory,
    TransactionSource,
    TransactionType,
)
from smartmoney.storage.handle import LocalStoreHandle


DEFAULT_ACCOUNTS = [
    StoredAccount(id="acc-1", name="Google Pay", type=AccountType.UPI, icon=IconId.GOOGLE_PAY.value),
    StoredAccount(id="acc-2", name="HDFC Bank", type=AccountType.BANK, icon=IconId.BANK.value),
]

DEFAULT_BUDGETS = [
    StoredBudgetEntry(category=TransactionCategory.FOOD, amount=Decimal("15000")),
    StoredBudgetEntry(category=TransactionCategory.SHOPPING, amount=Decimal("20000")),
    StoredBudgetEntry(category=TransactionCategory.TRANSPORT, amount=Decimal("5000")),
    StoredBudgetEntry(category=TransactionCategory.BILLS, amount=Decimal("10000")),
    StoredBudgetEntry(category=TransactionCategory.ENTERTAINMENT, amount=Decimal("7000")),
]

MONTHLY_SALARY = Decimal("85000")

# category -> (descriptions, minimum amount, spread)
_EXPENSE_PATTERNS: dict[TransactionCategory, tuple[list[str], int, int]] = {
    TransactionCategory.FOOD: (
        ["Groceries from Blinkit", "Zomato Order", "Swiggy Dinner", "Cafe Coffee Day"], 100, 800
    ),
    TransactionCategory.SHOPPING: (
        ["Myntra Shopping", "Amazon Purchase", "Flipkart Order"], 500, 3000
    ),
    TransactionCategory.TRANSPORT: (
        ["Uber Ride", "Ola Cab", "Metro Card Recharge"], 50, 400
    ),
    TransactionCategory.BILLS: (
        ["Electricity Bill", "Wi-Fi Bill", "Phone Recharge"], 300, 1500
    ),
    TransactionCategory.ENTERTAINMENT: (
        ["Netflix Subscription", "Movie Tickets", "Spotify Premium"], 200, 600
    ),
    TransactionCategory.HEALTH: (
        ["Pharmacy", "Doctor Visit"], 150, 1000
    ),
    TransactionCategory.OTHER: (
        ["Miscellaneous Expense"], 50, 500
    ),
}


def sample_transactions(
    today: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
    days: int = 30,
) -> list[StoredTransaction]:
    """
    A salary on the first of the month and 1-3 expenses a day for `days` days.

    Deterministic for a given `today` and seeded `rng`.
    """
    today = today or datetime.now(timezone.utc)
    rng = rng or random.Random()
    transactions: list[StoredTransaction] = []

    month_start = datetime.combine(today.date().replace(day=1), time(), tzinfo=today.tzinfo)
    transactions.append(
        StoredTransaction(
            id="seed-salary",
            date=month_start.isoformat(),
            description="Monthly Salary",
            amount=MONTHLY_SALARY,
            type=TransactionType.INCOME,
            category=TransactionCategory.SALARY,
            source=TransactionSource.MANUAL,
        )
    )

    categories = list(_EXPENSE_PATTERNS)
    for day in range(days):
        when = today - timedelta(days=day)
        for n in range(rng.randint(1, 3)):
            category = rng.choice(categories)
            descriptions, minimum, spread = _EXPENSE_PATTERNS[category]
            transactions.append(
                StoredTransaction(
                    id=f"seed-{day:02d}-{n}",
                    date=when.isoformat(),
                    description=rng.choice(descriptions),
                    amount=Decimal(rng.randrange(spread) + minimum),
                    type=TransactionType.EXPENSE,
                    category=category,
                    source=TransactionSource.UPI if rng.random() > 0.5 else TransactionSource.MANUAL,
                )
            )
    return transactions


async def seed_tenant(
    handle: LocalStoreHandle,
    include_transactions: bool = False,
    rng: Optional[random.Random] = None,
) -> dict[str, int]:
    """
    Write the default accounts and budgets (and optionally sample
    transactions) in one transaction. Existing rows with the same keys
    are overwritten.
    """
    transactions = sample_transactions(rng=rng) if include_transactions else []
    async with handle.transaction():
        accounts = await handle.accounts.bulk_put(DEFAULT_ACCOUNTS)
        budgets = await handle.budget.bulk_put(DEFAULT_BUDGETS)
        added = await handle.transactions.bulk_put(transactions)
    return {"accounts": accounts, "budget": budgets, "transactions": added}
