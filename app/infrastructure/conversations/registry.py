"""Command registry.

Keeps literal triggers in a dict, pattern triggers in registration order and
one CommandDescriptor per command for help and menus. A registry is built at
process start, filled by the feature modules and handed to the router.
"""

import re
import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Pattern, Tuple, Type, Union

from core.config import settings
from core.logging import get_module_logger
from infrastructure.conversations.builder import ChainBuilder
from infrastructure.conversations.exceptions import CommandAlreadyRegisteredError
from infrastructure.conversations.help import format_help
from infrastructure.conversations.models import (
    ChainContext,
    ChainState,
    CommandDescriptor,
)
from infrastructure.conversations.steps import ChainDefinition

logger = get_module_logger()

Trigger = Union[str, Pattern[str]]
Action = Callable[[ChainContext], None]


@dataclass
class Command:
    """A registered command.

    Exactly one of ``definition`` and ``action`` is set, except for reserved
    triggers which the router handles itself.

    Attributes:
        descriptor: Help and menu entry.
        definition: Steps run on activation (chain commands).
        action: Callable run on activation (chain-less commands).
        pattern: Compiled trigger for pattern commands.
        requires_store: Refuse to start when no store resolves.
        state_model: Accumulator model instantiated per activation.
    """

    descriptor: CommandDescriptor
    definition: Optional[ChainDefinition] = None
    action: Optional[Action] = None
    pattern: Optional[Pattern[str]] = None
    requires_store: bool = False
    state_model: Type[ChainState] = field(default=ChainState)

    @property
    def trigger(self) -> str:
        return self.descriptor.trigger

    @property
    def is_reserved(self) -> bool:
        return self.definition is None and self.action is None


def _send_help(registry: "CommandRegistry", context: ChainContext) -> None:
    context.reply(format_help(registry.descriptors()))


class CommandRegistry:
    """Registry of chat commands.

    Seeds the built-in help command (listed first) and reserves the cancel
    trigger.

    Example:
        registry = CommandRegistry()
        registry.register("/get_accounts", "Lists accounts", requires_store=True) \\
            .tap(list_accounts)
        registry.register(re.compile(r"^/remove_(\\d+)$"), "Removes an expense") \\
            .tap(remove_by_id)
    """

    def __init__(self, builtins: bool = True):
        self._literal: Dict[str, Command] = {}
        self._patterns: List[Command] = []
        self._descriptors: List[CommandDescriptor] = []
        self._lock = threading.Lock()

        if builtins:
            labels = settings.conversation
            self.register_action(
                labels.HELP_TRIGGER,
                "Shows this help",
                lambda context: _send_help(self, context),
                important=True,
            )
            self.reserve(labels.CANCEL_TRIGGER, "Cancels the current command")

    def register(
        self,
        trigger: Trigger,
        description: str,
        important: bool = False,
        requires_store: bool = False,
        state_model: Type[ChainState] = ChainState,
    ) -> ChainBuilder:
        """Register a chain command.

        Args:
            trigger: Literal text or compiled regular expression.
            description: Shown by /help and in the fallback reply.
            important: Listed in the main menu.
            requires_store: Refuse to start without a store handle.
            state_model: ChainState subclass for the accumulator.

        Returns:
            A ChainBuilder positioned at the first step.

        Raises:
            CommandAlreadyRegisteredError: If the trigger is taken.
        """
        source = trigger.pattern if isinstance(trigger, re.Pattern) else trigger
        definition = ChainDefinition(trigger=source)
        self._add(
            trigger,
            description,
            important,
            definition=definition,
            requires_store=requires_store,
            state_model=state_model,
        )
        return ChainBuilder(definition)

    def register_action(
        self,
        trigger: Trigger,
        description: str,
        handler: Action,
        important: bool = False,
        requires_store: bool = False,
    ) -> CommandDescriptor:
        """Register a chain-less command whose handler receives the context."""
        command = self._add(
            trigger,
            description,
            important,
            action=handler,
            requires_store=requires_store,
        )
        return command.descriptor

    def reserve(self, trigger: str, description: str) -> CommandDescriptor:
        """List a trigger the router handles itself (e.g. cancel)."""
        return self._add(trigger, description, False).descriptor

    def _add(
        self,
        trigger: Trigger,
        description: str,
        important: bool,
        **kwargs,
    ) -> Command:
        is_pattern = isinstance(trigger, re.Pattern)
        source = trigger.pattern if is_pattern else trigger
        command = Command(
            descriptor=CommandDescriptor(
                trigger=source,
                description=description,
                important=important,
                is_pattern=is_pattern,
            ),
            pattern=trigger if is_pattern else None,
            **kwargs,
        )

        with self._lock:
            if is_pattern:
                if any(
                    existing.pattern.pattern == trigger.pattern
                    and existing.pattern.flags == trigger.flags
                    for existing in self._patterns
                ):
                    raise CommandAlreadyRegisteredError(
                        f"Pattern '{source}' already registered"
                    )
                self._patterns.append(command)
            else:
                if source in self._literal:
                    raise CommandAlreadyRegisteredError(
                        f"Command '{source}' already registered"
                    )
                self._literal[source] = command
            self._descriptors.append(command.descriptor)

        logger.debug(
            "command_registered",
            trigger=source,
            important=important,
            is_pattern=is_pattern,
        )
        return command

    def get(self, text: str) -> Optional[Command]:
        """Exact literal trigger lookup."""
        with self._lock:
            return self._literal.get(text)

    def match(self, text: str) -> Optional[Tuple[Command, "re.Match[str]"]]:
        """First pattern command (in registration order) matching ``text``."""
        with self._lock:
            patterns = list(self._patterns)
        for command in patterns:
            found = command.pattern.search(text)
            if found:
                return command, found
        return None

    def descriptors(self, important_only: bool = False) -> List[CommandDescriptor]:
        """Descriptors in registration order."""
        with self._lock:
            descriptors = list(self._descriptors)
        if important_only:
            return [d for d in descriptors if d.important]
        return descriptors

    def literal_triggers(self, prefix: str = "/") -> List[str]:
        """Literal triggers starting with ``prefix``, in registration order."""
        return [
            d.trigger
            for d in self.descriptors()
            if not d.is_pattern and d.trigger.startswith(prefix)
        ]

    def __contains__(self, trigger: str) -> bool:
        with self._lock:
            return trigger in self._literal or any(
                command.trigger == trigger for command in self._patterns
            )

    def __len__(self) -> int:
        with self._lock:
            return len(self._descriptors)
