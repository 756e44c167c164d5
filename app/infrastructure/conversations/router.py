"""Message router.

Dispatches every inbound message in a fixed precedence order:

1. the reserved cancel trigger;
2. the conversation's armed pending answer (takes the raw text, even when it
   equals a command trigger);
3. literal triggers;
4. pattern triggers, first registered first;
5. command-looking text that matched nothing ("No such command");
6. anything else ("Unknown command.").

Addressing suffixes such as ``@budget_bot`` are stripped before trigger
matching. With ``CONVERSATION_ANSWER_BEFORE_COMMANDS=false`` literal triggers
are tried before the pending answer.
"""

import threading
from contextlib import contextmanager
from typing import Any, Callable, Dict, Generator, List, Optional, Tuple

from core.config import ConversationSettings, settings
from core.logging import bind_conversation_context, get_module_logger
from infrastructure.conversations.help import format_main_commands, main_menu
from infrastructure.conversations.models import (
    ChainContext,
    InboundMessage,
    RouteKind,
    SuggestedReplies,
)
from infrastructure.conversations.protocols import (
    NullStoreResolver,
    Session,
    StoreResolver,
)
from infrastructure.conversations.registry import Command, CommandRegistry
from infrastructure.conversations.runner import ChainRun
from infrastructure.conversations.slots import PendingAnswerSlots

logger = get_module_logger()

# (store, default menu) -> menu to offer with terminal replies
MenuProvider = Callable[[Optional[Any], SuggestedReplies], SuggestedReplies]


class MessageRouter:
    """Routes inbound messages to commands and pending answers.

    Args:
        registry: Registered commands.
        store_resolver: Resolves the store handle of a conversation.
        slots: Pending answer slots (a fresh table by default).
        menu_provider: Computes the suggested replies sent with terminal
            replies. Defaults to the important commands.
        labels: Conversation settings override.
        address_suffixes: Trailing suffixes stripped from triggers.

    Example:
        router = MessageRouter(registry, store_resolver=directory)
        router.dispatch(InboundMessage(text="/add_account", conversation_id="C1:U1"), session)
    """

    def __init__(
        self,
        registry: CommandRegistry,
        store_resolver: Optional[StoreResolver] = None,
        slots: Optional[PendingAnswerSlots] = None,
        menu_provider: Optional[MenuProvider] = None,
        labels: Optional[ConversationSettings] = None,
        address_suffixes: Optional[List[str]] = None,
    ):
        self.registry = registry
        self.store_resolver = store_resolver or NullStoreResolver()
        self.slots = slots if slots is not None else PendingAnswerSlots()
        self.menu_provider = menu_provider
        self.labels = labels or settings.conversation
        self.address_suffixes = (
            address_suffixes
            if address_suffixes is not None
            else settings.address_suffixes
        )
        # conversation id -> (lock, number of dispatches holding or waiting on it)
        self._locks: Dict[str, Tuple[threading.Lock, int]] = {}
        self._locks_guard = threading.Lock()

    @contextmanager
    def _conversation_lock(self, conversation_id: str) -> Generator[None, None, None]:
        """Serialize dispatches of one conversation.

        The lock is dropped from the table once no dispatch holds or waits
        on it, so the table only holds conversations being served.
        """
        with self._locks_guard:
            lock, users = self._locks.get(conversation_id, (threading.Lock(), 0))
            self._locks[conversation_id] = (lock, users + 1)
        try:
            with lock:
                yield
        finally:
            with self._locks_guard:
                _, users = self._locks[conversation_id]
                if users <= 1:
                    del self._locks[conversation_id]
                else:
                    self._locks[conversation_id] = (lock, users - 1)

    def strip_address(self, text: str) -> str:
        """Remove one trailing addressing suffix (``/help@budget_bot`` -> ``/help``)."""
        for suffix in self.address_suffixes:
            if suffix and text.endswith(suffix) and len(text) > len(suffix):
                return text[: -len(suffix)].rstrip()
        return text

    def dispatch(self, message: InboundMessage, session: Session) -> RouteKind:
        """Handle one inbound message to completion.

        Messages of the same conversation are serialized. Exceptions raised
        by step callbacks propagate to the caller.

        Returns:
            How the message was routed.
        """
        with self._conversation_lock(message.conversation_id), bind_conversation_context(
            message.conversation_id, user_id=message.user_id
        ):
            route = self._route(message, session)
            logger.info("message_routed", route=route.value)
            return route

    def _route(self, message: InboundMessage, session: Session) -> RouteKind:
        raw = message.text.strip()
        text = self.strip_address(raw)
        conversation_id = message.conversation_id

        if text == self.labels.CANCEL_TRIGGER:
            self.cancel(session)
            return RouteKind.CANCEL

        command = self.registry.get(text)

        if command is not None and not self.labels.ANSWER_BEFORE_COMMANDS:
            self.activate(command, session, text)
            return RouteKind.COMMAND

        pending = self.slots.take(conversation_id)
        if pending is not None:
            logger.info(
                "pending_answer_consumed",
                command=pending.command,
                step_index=pending.step_index,
                step_kind=pending.step_kind.value,
            )
            pending.handler(raw, session)
            return RouteKind.ANSWER

        if command is not None:
            self.activate(command, session, text)
            return RouteKind.COMMAND

        found = self.registry.match(text)
        if found is not None:
            pattern_command, match = found
            self.activate(pattern_command, session, text, match=match)
            return RouteKind.PATTERN

        important = self.registry.descriptors(important_only=True)
        store = self.store_resolver.resolve(conversation_id)
        menu = self.menu(store)

        if text.startswith(self.labels.COMMAND_PREFIX):
            header = self.labels.NO_SUCH_COMMAND_TEMPLATE.format(command=text)
            session.send(format_main_commands(header, important, self.labels), menu)
            return RouteKind.UNKNOWN_COMMAND

        session.send(
            format_main_commands(
                self.labels.UNKNOWN_COMMAND_MESSAGE, important, self.labels
            ),
            menu,
        )
        return RouteKind.FALLBACK

    def activate(
        self,
        command: Command,
        session: Session,
        text: str,
        match: Optional[Any] = None,
    ) -> Optional[ChainRun]:
        """Start a command for the session's conversation.

        Commands that require a store and have none get the setup guidance
        instead, and any waiting run is left untouched. Otherwise a waiting
        run of the conversation is abandoned before the new one starts.

        Args:
            command: The matched command.
            session: Session the trigger arrived on.
            text: Trigger text (suffix stripped).
            match: Regex match for pattern commands.

        Returns:
            The started run, or None for chain-less and refused commands.
        """
        conversation_id = session.conversation_id
        store = self.store_resolver.resolve(conversation_id)

        if command.requires_store and store is None:
            logger.info("command_refused_missing_store", command=command.trigger)
            session.send(
                self.labels.MISSING_STORE_MESSAGE,
                SuggestedReplies(labels=[self.labels.SETUP_TRIGGER], columns=1),
            )
            return None

        context = ChainContext(
            session=session,
            command=text,
            store=store,
            match=match,
            state=command.state_model(),
        )

        if command.action is not None:
            logger.info("action_invoked", command=command.trigger)
            command.action(context)
            return None

        if command.definition is None:
            # Reserved triggers are intercepted before activation
            return None

        self._abandon_waiting(conversation_id)

        run = ChainRun(
            command.definition,
            context,
            self.slots,
            on_finish=self.render_terminal,
            labels=self.labels,
        )
        run.start()
        return run

    def cancel(self, session: Session) -> bool:
        """Abandon the waiting run of the session's conversation.

        Returns:
            True if something was cancelled.
        """
        cancelled = self._abandon_waiting(session.conversation_id)
        store = self.store_resolver.resolve(session.conversation_id)
        if cancelled:
            session.send(self.labels.CANCELLED_MESSAGE, self.menu(store))
        else:
            session.send(self.labels.NOTHING_TO_CANCEL_MESSAGE, self.menu(store))
        return cancelled

    def _abandon_waiting(self, conversation_id: str) -> bool:
        pending = self.slots.take(conversation_id)
        if pending is None:
            return False
        pending.run.abandon()
        return True

    def menu(self, store: Optional[Any]) -> SuggestedReplies:
        """Suggested replies for terminal and fallback messages."""
        default = main_menu(self.registry.descriptors(), self.labels)
        if self.menu_provider is None:
            return default
        return self.menu_provider(store, default)

    def render_terminal(self, context: ChainContext) -> None:
        """Send the "all done" acknowledgement with the current menu.

        The store is resolved again so the menu reflects what the chain just
        created.
        """
        store = self.store_resolver.resolve(context.conversation_id)
        context.reply(self.labels.DONE_MESSAGE, suggested_replies=self.menu(store))
