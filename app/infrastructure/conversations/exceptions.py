"""Exceptions for the interaction chain engine.

Every engine exception derives from ConversationError so that callers can
catch engine failures without catching programmer errors raised by step
callbacks.
"""

from typing import Optional


class ConversationError(Exception):
    """Base exception for all conversation engine errors.

    Example:
        try:
            registry.register("/add_account", "Adds an account")
        except ConversationError as e:
            logger.error("command_registration_failed", error=str(e))
    """

    pass


class ChainDefinitionError(ConversationError):
    """Raised when a chain is built incorrectly.

    Chains are linear, so a builder position accepts exactly one next step.

    Example:
        >>> builder = registry.register("/x", "X")
        >>> builder.tap(first)
        >>> builder.tap(second)
        Traceback (most recent call last):
        ...
        ChainDefinitionError: Chain for '/x' already continues after step 0
    """

    pass


class CommandAlreadyRegisteredError(ConversationError):
    """Raised when a trigger (literal or pattern) is registered twice."""

    pass


class GuardFailure(ConversationError):
    """Raised by a guard step callback to stop the chain.

    The message is sent to the conversation and the terminal state is
    rendered.

    Example:
        def require_accounts(context):
            if not context.store.get_accounts():
                raise GuardFailure("No accounts yet.\\nUse /add_account to create one.")
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidAnswer(ConversationError):
    """Raised by a free text parser to reject an answer.

    When no message is given the configured invalid answer reply is used.
    """

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or "invalid answer")
        self.message = message
