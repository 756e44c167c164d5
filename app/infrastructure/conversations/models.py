"""Data models for the interaction chain engine."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, List, Optional

from pydantic import BaseModel, ConfigDict

from core.logging import get_module_logger

if TYPE_CHECKING:  # pragma: no cover
    from infrastructure.conversations.protocols import Session
    from infrastructure.operations import OperationResult

logger = get_module_logger()


class StepKind(str, Enum):
    """Kinds of chain steps."""

    FREE_TEXT = "free_text"
    CONFIRM = "confirm"
    CHOICE = "choice"
    TAP = "tap"
    GUARD = "guard"


class RouteKind(str, Enum):
    """How the router handled an inbound message.

    Attributes:
        CANCEL: The reserved cancel trigger was received.
        ANSWER: The message was consumed by the armed pending answer.
        COMMAND: A literal trigger matched.
        PATTERN: A pattern trigger matched.
        UNKNOWN_COMMAND: Command-looking text that matched nothing.
        FALLBACK: Plain text that matched nothing.
    """

    CANCEL = "cancel"
    ANSWER = "answer"
    COMMAND = "command"
    PATTERN = "pattern"
    UNKNOWN_COMMAND = "unknown_command"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class CommandDescriptor:
    """Help and menu entry for one registered command.

    Attributes:
        trigger: Literal trigger text, or the regex source for patterns.
        description: Human-readable description shown by /help.
        important: Listed in the main menu and in the fallback reply.
        is_pattern: True when the trigger is a regular expression.
    """

    trigger: str
    description: str
    important: bool = False
    is_pattern: bool = False


@dataclass(frozen=True)
class Choice:
    """One option of a multiple-choice step.

    Attributes:
        label: Text shown on the button and expected back as the answer.
        payload: Value passed to the step callback when this option is picked.
    """

    label: str
    payload: Any = None


@dataclass
class SuggestedReplies:
    """Quick replies offered together with a message.

    Attributes:
        labels: Reply texts, in display order.
        columns: Number of labels per row.
        one_time: Whether the client should hide the replies once used.
    """

    labels: List[str] = field(default_factory=list)
    columns: int = 1
    one_time: bool = True

    def rows(self) -> List[List[str]]:
        """Split the labels into rows of ``columns`` entries."""
        width = max(1, self.columns)
        return [
            self.labels[start : start + width]
            for start in range(0, len(self.labels), width)
        ]

    def __bool__(self) -> bool:
        return bool(self.labels)


@dataclass
class InboundMessage:
    """A message received from a transport."""

    text: str
    conversation_id: str
    user_id: Optional[str] = None
    channel_id: Optional[str] = None
    received_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class ChainState(BaseModel):
    """Typed accumulator written by the steps of one activation.

    Commands subclass it to declare the fields their steps fill in. The base
    model accepts arbitrary extra fields.

    Example:
        class NewAccountState(ChainState):
            icon: Optional[str] = None
            title: Optional[str] = None
    """

    model_config = ConfigDict(validate_assignment=True, extra="allow")


@dataclass
class ChainContext:
    """Everything a step callback can see during one activation.

    Attributes:
        session: Reply capability bound to the invoking conversation. Rebound
            to the latest session every time an answer arrives.
        command: Raw trigger text that started the chain.
        store: Store handle resolved at activation, or None.
        match: Regex match for pattern commands.
        state: Per-command accumulator.
    """

    session: "Session"
    command: str
    store: Optional[Any] = None
    match: Optional[Any] = None
    state: ChainState = field(default_factory=ChainState)

    @property
    def conversation_id(self) -> str:
        return self.session.conversation_id

    def reply(
        self, text: str, suggested_replies: Optional[SuggestedReplies] = None
    ) -> "OperationResult":
        """Send a message to the conversation, logging failed deliveries."""
        result = self.session.send(text, suggested_replies=suggested_replies)
        if not result.is_success:
            logger.warning(
                "reply_delivery_failed",
                command=self.command,
                error=result.message,
                error_code=result.error_code,
            )
        return result


@dataclass
class PendingAnswer:
    """The armed "awaiting answer" handler of one conversation.

    Attributes:
        handler: Called with the answer text and the session it arrived on.
        run: The chain run that armed the slot.
        command: Trigger of the command being run.
        step_index: Position of the waiting step in its chain.
        step_kind: Kind of the waiting step.
        armed_at: When the prompt was rendered.
    """

    handler: Callable[[str, "Session"], None]
    run: Any
    command: str
    step_index: int
    step_kind: StepKind
    armed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
