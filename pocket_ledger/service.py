from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional

from pocket_ledger.core.errors import PersistenceError, ValidationError
from pocket_ledger.core.models import (
    Budget,
    BudgetStatus,
    Transaction,
    TransactionType,
    as_local_time,
)
from pocket_ledger.store import JsonStore

logger = logging.getLogger(__name__)


def _to_decimal(value) -> Decimal:
    if isinstance(value, bool):
        raise ValidationError("amount must be a number")
    if isinstance(value, float):
        # go through str() so 0.1 stays 0.1
        value = str(value)
    try:
        result = Decimal(value)
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise ValidationError("amount must be a number") from exc
    if not result.is_finite():
        raise ValidationError("amount must be a number")
    return result


def _to_kind(kind) -> TransactionType:
    try:
        return TransactionType(kind)
    except ValueError as exc:
        raise ValidationError(f"unknown transaction kind: {kind!r}") from exc


def _newest_first(transactions) -> List[Transaction]:
    # Reverse first so that, after the stable sort, equal timestamps come out
    # most-recently-inserted first.
    return sorted(reversed(transactions), key=lambda tx: tx.timestamp, reverse=True)


def _in_month(tx: Transaction, month: int, year: int) -> bool:
    return tx.timestamp.month == month and tx.timestamp.year == year


class LedgerService:
    """Owns the live ledger and is the only thing that changes it.

    The state is loaded from ``store`` once, on construction. Every mutating
    call validates its input, changes the in-memory state and then saves the
    whole state back. If that save fails the change stays in memory and
    :class:`PersistenceError` is raised, so memory and disk can disagree
    until the next successful save.
    """

    def __init__(self, store: JsonStore) -> None:
        self._store = store
        self._state = store.load()

    def _persist(self) -> None:
        try:
            self._store.save(self._state)
        except PersistenceError:
            logger.error("Save failed; in-memory ledger now differs from disk")
            raise

    # ------------------------------------------------------------------
    # transactions

    def add_transaction(
        self,
        kind: TransactionType | str,
        category: str,
        amount,
        description: str = "",
        timestamp: Optional[datetime] = None,
    ) -> Transaction:
        kind = _to_kind(kind)
        value = _to_decimal(amount)
        if value <= 0:
            raise ValidationError("amount must be positive")
        if not category or not category.strip():
            raise ValidationError("category must not be empty")

        tx = Transaction(
            kind=kind,
            category=category,
            amount=value,
            description=description or "",
            timestamp=as_local_time(timestamp) if timestamp else datetime.now(),
        )
        self._state.transactions.append(tx)
        logger.info("Added %s %s in %r", kind.value.lower(), value, category)
        self._persist()
        return tx

    def calculate_balance(self) -> Decimal:
        return sum(
            (tx.signed_amount for tx in self._state.transactions), Decimal("0")
        )

    def get_all_transactions(self) -> List[Transaction]:
        return _newest_first(self._state.transactions)

    def get_transactions_by_month(self, month: int, year: int) -> List[Transaction]:
        return _newest_first(
            [tx for tx in self._state.transactions if _in_month(tx, month, year)]
        )

    def get_category_statistics(
        self, month: int, year: int, kind: TransactionType | str
    ) -> Dict[str, Decimal]:
        """Sum amounts per category for one kind of transaction in a month.

        Categories with nothing in the period are left out. The mapping has
        no meaningful order.
        """
        kind = _to_kind(kind)
        totals: Dict[str, Decimal] = defaultdict(Decimal)
        for tx in self._state.transactions:
            if tx.kind is kind and _in_month(tx, month, year):
                totals[tx.category] += tx.amount
        return dict(totals)

    # ------------------------------------------------------------------
    # budget

    def set_budget(self, amount, month: int, year: int) -> Budget:
        value = _to_decimal(amount)
        if value < 0:
            raise ValidationError("budget must not be negative")
        if not 1 <= month <= 12:
            raise ValidationError("month must be between 1 and 12")

        budget = Budget(monthly_limit=value, month=month, year=year)
        self._state.current_budget = budget
        logger.info("Budget for %02d/%d set to %s", month, year, value)
        self._persist()
        return budget

    def get_current_budget(self) -> Optional[Budget]:
        return self._state.current_budget

    def get_budget_status(
        self, month: Optional[int] = None, year: Optional[int] = None
    ) -> Optional[BudgetStatus]:
        """Compare the current budget with the expenses of its month.

        Returns ``None`` when no budget is set, the limit is zero, or the
        budget belongs to a different month than the one asked for (the
        current month by default).
        """
        now = datetime.now()
        month = now.month if month is None else month
        year = now.year if year is None else year
        budget = self._state.current_budget
        if budget is None or budget.monthly_limit <= 0 or not budget.covers(month, year):
            return None

        spent = sum(
            self.get_category_statistics(month, year, TransactionType.EXPENSE).values(),
            Decimal("0"),
        )
        return BudgetStatus(
            budget=budget,
            spent=spent,
            remaining=budget.monthly_limit - spent,
            percent_used=spent / budget.monthly_limit * 100,
        )

    # ------------------------------------------------------------------
    # categories

    def add_custom_category(self, label: str) -> None:
        if not label or not label.strip():
            raise ValidationError("category must not be empty")
        if label in self._state.custom_categories:
            return
        self._state.custom_categories.append(label)
        logger.info("Added custom category %r", label)
        self._persist()

    def get_custom_categories(self) -> List[str]:
        return list(self._state.custom_categories)
