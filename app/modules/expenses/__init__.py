"""Expense tracking module.

Registers the ledger commands and provides the ledger directory used as the
router's store resolver.
"""

from core.config import settings
from core.logging import get_module_logger
from modules.expenses.commands import register
from modules.expenses.dynamodb_store import DynamoDBLedgerDirectory
from modules.expenses.menu import expense_menu
from modules.expenses.store import InMemoryLedgerDirectory, LedgerDirectory

logger = get_module_logger()


def get_ledger_directory() -> LedgerDirectory:
    """Ledger directory for the configured ``STORE_BACKEND``."""
    if settings.store.BACKEND == "dynamodb":
        logger.info("ledger_directory_selected", backend="dynamodb")
        return DynamoDBLedgerDirectory()

    logger.info("ledger_directory_selected", backend="memory")
    return InMemoryLedgerDirectory()


__all__ = ["register", "expense_menu", "get_ledger_directory"]
