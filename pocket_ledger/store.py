from __future__ import annotations

import json
import logging
import os
import stat
import tempfile
from datetime import datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Dict

from pocket_ledger.core.errors import PersistenceError
from pocket_ledger.core.models import (
    Budget,
    LedgerState,
    Transaction,
    TransactionType,
    as_local_time,
)

logger = logging.getLogger(__name__)


class CorruptStateError(ValueError):
    """Raised internally when a data file cannot be decoded into a ledger."""


def _decimal(value) -> Decimal:
    # bool is an int subclass and never a valid amount
    if isinstance(value, bool) or not isinstance(value, (str, int, Decimal)):
        raise CorruptStateError(f"Invalid amount: {value!r}")
    try:
        result = Decimal(value)
    except InvalidOperation as exc:
        raise CorruptStateError(f"Invalid amount: {value!r}") from exc
    if not result.is_finite():
        raise CorruptStateError(f"Invalid amount: {value!r}")
    return result


def _decode_transaction(record: Dict[str, object]) -> Transaction:
    return Transaction(
        id=str(record["id"]),
        kind=TransactionType(record["kind"]),
        category=str(record["category"]),
        amount=_decimal(record["amount"]),
        description=str(record.get("description") or ""),
        timestamp=as_local_time(datetime.fromisoformat(record["timestamp"])),
    )


def _decode_budget(record) -> Budget | None:
    if record is None:
        return None
    month = int(record["month"])
    if not 1 <= month <= 12:
        raise CorruptStateError(f"Invalid budget month: {month}")
    return Budget(
        monthly_limit=_decimal(record["monthly_limit"]),
        month=month,
        year=int(record["year"]),
    )


def decode_state(data) -> LedgerState:
    """Build a LedgerState from parsed JSON, raising CorruptStateError on bad shape."""
    if not isinstance(data, dict):
        raise CorruptStateError("Top-level value is not an object")
    try:
        transactions = [
            _decode_transaction(r) for r in data.get("transactions") or []
        ]
        categories = data.get("custom_categories") or []
        if not isinstance(categories, list) or not all(
            isinstance(c, str) for c in categories
        ):
            raise CorruptStateError("Custom categories must be a list of strings")
        budget = _decode_budget(data.get("current_budget"))
    except CorruptStateError:
        raise
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise CorruptStateError(str(exc)) from exc

    unique = []
    for label in categories:
        if label not in unique:
            unique.append(label)
    return LedgerState(
        transactions=transactions,
        custom_categories=unique,
        current_budget=budget,
    )


def encode_state(state: LedgerState) -> Dict[str, object]:
    budget = state.current_budget
    return {
        "transactions": [
            {
                "id": tx.id,
                "kind": tx.kind.value,
                "category": tx.category,
                "amount": str(tx.amount),
                "description": tx.description,
                "timestamp": tx.timestamp.isoformat(),
            }
            for tx in state.transactions
        ],
        "custom_categories": list(state.custom_categories),
        "current_budget": (
            {
                "monthly_limit": str(budget.monthly_limit),
                "month": budget.month,
                "year": budget.year,
            }
            if budget is not None
            else None
        ),
    }


class JsonStore:
    """Whole-file JSON persistence for a LedgerState.

    Parameters
    ----------
    path:
        Location of the data file. It does not need to exist yet.
    """

    def __init__(self, path: str | Path = "finance_data.json") -> None:
        self.path = Path(path)

    def load(self) -> LedgerState:
        if not self.path.exists():
            logger.debug("No data file at %s, starting empty", self.path)
            return LedgerState()

        try:
            with self.path.open("r", encoding="utf-8") as fp:
                text = fp.read()
        except UnicodeDecodeError:
            return self._recover("file is not valid UTF-8")
        except OSError as exc:
            raise PersistenceError(f"Could not read {self.path}: {exc}") from exc

        try:
            state = decode_state(json.loads(text, parse_float=Decimal))
        except (json.JSONDecodeError, CorruptStateError) as exc:
            return self._recover(str(exc))

        logger.debug(
            "Loaded %d transaction(s) from %s", len(state.transactions), self.path
        )
        return state

    def _recover(self, reason: str) -> LedgerState:
        # Unreadable content is treated the same as a missing file.
        logger.warning(
            "Data file %s is corrupt (%s); starting with an empty ledger",
            self.path,
            reason,
        )
        return LedgerState()

    def save(self, state: LedgerState) -> None:
        payload = json.dumps(encode_state(state), indent=2, ensure_ascii=False)
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
            )
            with os.fdopen(fd, "w", encoding="utf-8") as fp:
                fp.write(payload)
            # mkstemp creates 0600; keep the existing file's mode instead
            mode = (
                stat.S_IMODE(self.path.stat().st_mode)
                if self.path.exists()
                else 0o644
            )
            os.chmod(tmp_name, mode)
            os.replace(tmp_name, self.path)
        except OSError as exc:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise PersistenceError(f"Could not write {self.path}: {exc}") from exc
        logger.debug(
            "Saved %d transaction(s) to %s", len(state.transactions), self.path
        )
