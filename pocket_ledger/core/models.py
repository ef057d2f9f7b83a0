# pocket_ledger/core/models.py
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional


class TransactionType(str, Enum):
    INCOME = "Income"
    EXPENSE = "Expense"


@dataclass(frozen=True)
class Transaction:
    kind: TransactionType
    category: str
    amount: Decimal
    description: str = ""
    timestamp: datetime = field(default_factory=datetime.now)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @property
    def signed_amount(self) -> Decimal:
        return self.amount if self.kind is TransactionType.INCOME else -self.amount


@dataclass(frozen=True)
class Budget:
    monthly_limit: Decimal
    month: int
    year: int

    def covers(self, month: int, year: int) -> bool:
        return self.month == month and self.year == year


@dataclass
class LedgerState:
    """Everything that is loaded and saved as one unit."""
    transactions: List[Transaction] = field(default_factory=list)
    custom_categories: List[str] = field(default_factory=list)
    current_budget: Optional[Budget] = None


@dataclass(frozen=True)
class BudgetStatus:
    budget: Budget
    spent: Decimal
    remaining: Decimal
    percent_used: Decimal

    @property
    def exceeded(self) -> bool:
        return self.spent > self.budget.monthly_limit

    @property
    def low(self) -> bool:
        # under a fifth of the limit left
        return (
            not self.exceeded
            and self.remaining < self.budget.monthly_limit * Decimal("0.2")
        )


def as_local_time(ts: datetime) -> datetime:
    """Return ``ts`` as naive local time so all timestamps compare."""
    if ts.tzinfo is None:
        return ts
    return ts.astimezone().replace(tzinfo=None)
