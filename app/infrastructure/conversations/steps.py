"""Step types and chain definitions.

A ChainDefinition is the ordered, linear list of steps registered for one
command. It is built once through the ChainBuilder and instantiated as a
ChainRun on every activation.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Sequence, Union

from infrastructure.conversations.models import ChainContext, Choice, StepKind

Prompt = Union[str, Callable[[ChainContext], str]]
Choices = Union[Sequence[Choice], Callable[[ChainContext], Sequence[Choice]]]
AnswerCallback = Callable[[ChainContext, Any], Any]
ContextCallback = Callable[[ChainContext], Any]
AnswerParser = Callable[[str], Any]


def resolve_prompt(prompt: Prompt, context: ChainContext) -> str:
    """Return the prompt text, calling it with the context if it is callable."""
    if callable(prompt):
        return prompt(context)
    return prompt


@dataclass(frozen=True)
class FreeTextStep:
    """Ask a question and accept any text, optionally parsed.

    Attributes:
        prompt: Question text or a callable building it from the context.
        callback: Called with ``(context, value)``.
        parser: Turns the raw answer into a value. Returning None or raising
            InvalidAnswer rejects the answer.
    """

    prompt: Prompt
    callback: AnswerCallback
    parser: Optional[AnswerParser] = None
    kind: StepKind = field(default=StepKind.FREE_TEXT, init=False)


@dataclass(frozen=True)
class ConfirmStep:
    """Ask a yes/no question; the callback receives a bool."""

    prompt: Prompt
    callback: AnswerCallback
    kind: StepKind = field(default=StepKind.CONFIRM, init=False)


@dataclass(frozen=True)
class ChoiceStep:
    """Offer a set of options; the callback receives the picked payload.

    Attributes:
        prompt: Question text or a callable building it from the context.
        choices: Options, or a callable resolving them on every activation.
        callback: Called with ``(context, payload)``.
        columns: Number of option buttons per row.
        empty_message: Sent when the options resolve empty. Falls back to the
            configured default.
    """

    prompt: Prompt
    choices: Choices
    callback: AnswerCallback
    columns: int = 1
    empty_message: Optional[str] = None
    kind: StepKind = field(default=StepKind.CHOICE, init=False)

    def resolve_choices(self, context: ChainContext) -> List[Choice]:
        if callable(self.choices):
            return list(self.choices(context))
        return list(self.choices)


@dataclass(frozen=True)
class TapStep:
    """Side effect only: no prompt, no answer."""

    callback: ContextCallback
    kind: StepKind = field(default=StepKind.TAP, init=False)


@dataclass(frozen=True)
class GuardStep:
    """Like TapStep, but raising GuardFailure stops the chain with a message."""

    callback: ContextCallback
    kind: StepKind = field(default=StepKind.GUARD, init=False)


Step = Union[FreeTextStep, ConfirmStep, ChoiceStep, TapStep, GuardStep]


@dataclass
class ChainDefinition:
    """Ordered steps of one command."""

    trigger: str
    steps: List[Step] = field(default_factory=list)

    def append(self, step: Step) -> int:
        """Add a step at the end and return its index."""
        self.steps.append(step)
        return len(self.steps) - 1

    def __len__(self) -> int:
        return len(self.steps)
