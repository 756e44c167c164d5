"""Expense store interface and the in-memory backend.

One ExpenseStore holds one ledger. A LedgerDirectory maps conversations to
ledgers and is what the router uses as its store resolver.
"""

import itertools
import threading
import uuid
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional, Protocol, Tuple

from core.logging import get_module_logger
from modules.expenses.models import Account, Budget, Category, Expense

logger = get_module_logger()


class LedgerStoreError(Exception):
    """Raised when a ledger backend cannot complete an operation."""

    pass


class ExpenseStore(Protocol):
    """Operations on one ledger."""

    ledger_id: str

    def get_accounts(self) -> List[Account]: ...

    def add_account(self, icon: str, name: str) -> Account: ...

    def get_categories(self) -> List[Category]: ...

    def add_category(self, icon: str, name: str) -> Category: ...

    def add_expense(
        self,
        account_id: int,
        category_id: int,
        amount: Decimal,
        spent_on: date,
        description: str,
    ) -> Expense: ...

    def remove_expense(self, expense_id: int) -> bool: ...

    def change_expense_date(self, expense_id: int, spent_on: date) -> bool: ...

    def get_expenses(
        self, start: Optional[date] = None, end: Optional[date] = None
    ) -> List[Expense]: ...

    def set_budget(self, category_id: int, value: Decimal) -> Budget: ...

    def get_budgets(self) -> List[Budget]: ...


class LedgerDirectory(Protocol):
    """Resolves and creates the ledger of a conversation."""

    def resolve(self, conversation_id: str) -> Optional[ExpenseStore]: ...

    def create(self, conversation_id: str) -> Tuple[ExpenseStore, bool]: ...


def in_range(expense: Expense, start: Optional[date], end: Optional[date]) -> bool:
    """True when ``start <= spent_on < end`` (open bounds when None)."""
    if start is not None and expense.spent_on < start:
        return False
    if end is not None and expense.spent_on >= end:
        return False
    return True


def newest_first(expenses: List[Expense]) -> List[Expense]:
    return sorted(expenses, key=lambda e: (e.spent_on, e.id), reverse=True)


class InMemoryExpenseStore:
    """Process-local ledger, lost on restart."""

    def __init__(self, ledger_id: Optional[str] = None):
        self.ledger_id = ledger_id or str(uuid.uuid4())
        self._accounts: Dict[int, Account] = {}
        self._categories: Dict[int, Category] = {}
        self._expenses: Dict[int, Expense] = {}
        self._budgets: Dict[int, Budget] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def get_accounts(self) -> List[Account]:
        with self._lock:
            return list(self._accounts.values())

    def add_account(self, icon: str, name: str) -> Account:
        with self._lock:
            account = Account(id=next(self._ids), icon=icon, name=name)
            self._accounts[account.id] = account
        logger.info("account_added", ledger_id=self.ledger_id, account_id=account.id)
        return account

    def get_categories(self) -> List[Category]:
        with self._lock:
            return list(self._categories.values())

    def add_category(self, icon: str, name: str) -> Category:
        with self._lock:
            category = Category(id=next(self._ids), icon=icon, name=name)
            self._categories[category.id] = category
        logger.info(
            "category_added", ledger_id=self.ledger_id, category_id=category.id
        )
        return category

    def add_expense(
        self,
        account_id: int,
        category_id: int,
        amount: Decimal,
        spent_on: date,
        description: str,
    ) -> Expense:
        with self._lock:
            expense = Expense(
                id=next(self._ids),
                account_id=account_id,
                category_id=category_id,
                amount=amount,
                spent_on=spent_on,
                description=description,
            )
            self._expenses[expense.id] = expense
        logger.info("expense_added", ledger_id=self.ledger_id, expense_id=expense.id)
        return expense

    def remove_expense(self, expense_id: int) -> bool:
        with self._lock:
            removed = self._expenses.pop(expense_id, None) is not None
        logger.info(
            "expense_removed",
            ledger_id=self.ledger_id,
            expense_id=expense_id,
            removed=removed,
        )
        return removed

    def change_expense_date(self, expense_id: int, spent_on: date) -> bool:
        with self._lock:
            expense = self._expenses.get(expense_id)
            if expense is None:
                return False
            self._expenses[expense_id] = expense.model_copy(update={"spent_on": spent_on})
        return True

    def get_expenses(
        self, start: Optional[date] = None, end: Optional[date] = None
    ) -> List[Expense]:
        """Expenses with ``start <= spent_on < end``, newest first."""
        with self._lock:
            expenses = [e for e in self._expenses.values() if in_range(e, start, end)]
        return newest_first(expenses)

    def set_budget(self, category_id: int, value: Decimal) -> Budget:
        """Set the monthly budget of a category, replacing any previous one."""
        with self._lock:
            budget = Budget(id=next(self._ids), category_id=category_id, value=value)
            self._budgets[category_id] = budget
        logger.info("budget_set", ledger_id=self.ledger_id, category_id=category_id)
        return budget

    def get_budgets(self) -> List[Budget]:
        with self._lock:
            return list(self._budgets.values())


class InMemoryLedgerDirectory:
    """Conversation to ledger mapping kept in process memory."""

    def __init__(self):
        self._ledgers: Dict[str, InMemoryExpenseStore] = {}
        self._lock = threading.Lock()

    def resolve(self, conversation_id: str) -> Optional[InMemoryExpenseStore]:
        with self._lock:
            return self._ledgers.get(conversation_id)

    def create(self, conversation_id: str) -> Tuple[InMemoryExpenseStore, bool]:
        """Return the conversation's ledger, creating it if needed.

        Returns:
            The store and whether it was just created.
        """
        with self._lock:
            existing = self._ledgers.get(conversation_id)
            if existing is not None:
                return existing, False
            store = InMemoryExpenseStore()
            self._ledgers[conversation_id] = store
        logger.info(
            "ledger_created", conversation_id=conversation_id, ledger_id=store.ledger_id
        )
        return store, True
