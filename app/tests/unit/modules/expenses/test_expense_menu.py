"""Unit tests for the expense menu provider."""

import pytest

from infrastructure.conversations import SuggestedReplies
from modules.expenses.menu import expense_menu

pytestmark = pytest.mark.unit


@pytest.fixture
def default():
    return SuggestedReplies(labels=["/help", "/add_expense"], columns=2, one_time=False)


def test_without_ledger_offers_start(default):
    menu = expense_menu(None, default)

    assert menu.labels == ["/start"]
    assert menu.one_time is False


def test_empty_ledger_offers_setup_commands(store, default):
    menu = expense_menu(store, default)

    assert menu.labels == ["/add_account", "/add_category"]


def test_missing_categories_only(store, default):
    store.add_account("💳", "Visa")

    assert expense_menu(store, default).labels == ["/add_category"]


def test_complete_ledger_uses_default(store, default):
    store.add_account("💳", "Visa")
    store.add_category("🍔", "Food")

    assert expense_menu(store, default) is default
