"""Fixtures for expense module tests."""

from datetime import date
from decimal import Decimal

import pytest

from modules.expenses.models import Account, Budget, Category, Expense
from modules.expenses.store import InMemoryExpenseStore


@pytest.fixture
def store():
    return InMemoryExpenseStore(ledger_id="ledger-1")


@pytest.fixture
def categories():
    return [
        Category(id=1, icon="🍔", name="Food"),
        Category(id=2, icon="🚌", name="Transport"),
    ]


@pytest.fixture
def accounts():
    return [Account(id=3, icon="💳", name="Visa")]


@pytest.fixture
def make_expense():
    def _factory(
        id=10,
        amount="12",
        spent_on=date(2024, 3, 15),
        category_id=1,
        account_id=3,
        description="Lunch",
    ):
        return Expense(
            id=id,
            account_id=account_id,
            category_id=category_id,
            amount=Decimal(amount),
            spent_on=spent_on,
            description=description,
        )

    return _factory


@pytest.fixture
def make_budget():
    def _factory(category_id=1, value="200", id=20):
        return Budget(id=id, category_id=category_id, value=Decimal(value))

    return _factory
