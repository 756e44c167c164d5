"""Interaction chain engine.

Commands are registered on a CommandRegistry as linear chains of steps
(free text, confirm, choice, tap, guard). The MessageRouter dispatches each
inbound message either to the conversation's pending answer or to a command,
which starts a fresh ChainRun.

Usage:
    from infrastructure.conversations import CommandRegistry, MessageRouter

    def pong(context):
        context.reply("pong")

    registry = CommandRegistry()
    registry.register("/ping", "Replies pong").tap(pong)
    router = MessageRouter(registry)
"""

from infrastructure.conversations.builder import ChainBuilder
from infrastructure.conversations.exceptions import (
    ChainDefinitionError,
    CommandAlreadyRegisteredError,
    ConversationError,
    GuardFailure,
    InvalidAnswer,
)
from infrastructure.conversations.models import (
    ChainContext,
    ChainState,
    Choice,
    CommandDescriptor,
    InboundMessage,
    PendingAnswer,
    RouteKind,
    StepKind,
    SuggestedReplies,
)
from infrastructure.conversations.protocols import (
    NullStoreResolver,
    Session,
    StoreResolver,
)
from infrastructure.conversations.registry import Command, CommandRegistry
from infrastructure.conversations.results import StepResult, StepStatus
from infrastructure.conversations.router import MenuProvider, MessageRouter
from infrastructure.conversations.runner import ChainRun
from infrastructure.conversations.signal import CompletionSignal
from infrastructure.conversations.slots import PendingAnswerSlots
from infrastructure.conversations.steps import ChainDefinition

__all__ = [
    "ChainBuilder",
    "ChainContext",
    "ChainDefinition",
    "ChainDefinitionError",
    "ChainRun",
    "ChainState",
    "Choice",
    "Command",
    "CommandAlreadyRegisteredError",
    "CommandDescriptor",
    "CommandRegistry",
    "CompletionSignal",
    "ConversationError",
    "GuardFailure",
    "InboundMessage",
    "InvalidAnswer",
    "MenuProvider",
    "MessageRouter",
    "NullStoreResolver",
    "PendingAnswer",
    "PendingAnswerSlots",
    "RouteKind",
    "Session",
    "StepKind",
    "StepResult",
    "StepStatus",
    "StoreResolver",
    "SuggestedReplies",
]
