"""Interfaces the engine expects from transports and stores."""

from typing import Any, Optional, Protocol

from infrastructure.conversations.models import SuggestedReplies
from infrastructure.operations import OperationResult


class Session(Protocol):
    """Reply capability bound to one conversation.

    Transports implement this; the engine never talks to a chat API directly.
    """

    conversation_id: str

    def send(
        self, text: str, suggested_replies: Optional[SuggestedReplies] = None
    ) -> OperationResult:
        """Deliver ``text`` with optional quick-reply buttons."""
        ...  # pylint: disable=unnecessary-ellipsis


class StoreResolver(Protocol):
    """Resolves the store handle bound to a conversation, if any."""

    def resolve(self, conversation_id: str) -> Optional[Any]:
        ...  # pylint: disable=unnecessary-ellipsis


class NullStoreResolver:
    """Resolver for bots without a store: every conversation resolves to None."""

    def resolve(self, conversation_id: str) -> Optional[Any]:
        return None
