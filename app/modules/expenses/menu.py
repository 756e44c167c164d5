"""Suggested replies offered after a command finishes."""

from typing import Any, List, Optional

from core.config import settings
from infrastructure.conversations import SuggestedReplies


def expense_menu(store: Optional[Any], default: SuggestedReplies) -> SuggestedReplies:
    """Point at the setup commands while the ledger is incomplete.

    Args:
        store: The conversation's ExpenseStore, or None without a ledger.
        default: The router's menu (important commands).

    Returns:
        ``/start`` without a ledger, the missing ``/add_account`` and
        ``/add_category`` while there are no accounts or categories, and the
        default menu otherwise.
    """
    columns = settings.conversation.MENU_COLUMNS
    if store is None:
        return SuggestedReplies(
            labels=[settings.conversation.SETUP_TRIGGER], columns=columns, one_time=False
        )

    missing: List[str] = []
    if not store.get_accounts():
        missing.append("/add_account")
    if not store.get_categories():
        missing.append("/add_category")
    if missing:
        return SuggestedReplies(labels=missing, columns=columns, one_time=False)
    return default
