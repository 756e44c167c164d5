"""Chain runs: one activation of a chain definition.

A run owns one CompletionSignal per step plus a trailing signal that nobody
subscribes to. Step ``i`` is subscribed to signal ``i``; when its callback
says continue, signal ``i + 1`` is emitted. Finding no subscribers on the
next signal means the last step just completed and the terminal state is
rendered.
"""

from functools import partial
from typing import Any, Callable, Dict, List, Optional

from core.config import ConversationSettings, settings
from core.logging import get_module_logger
from infrastructure.conversations.exceptions import GuardFailure, InvalidAnswer
from infrastructure.conversations.models import (
    ChainContext,
    Choice,
    PendingAnswer,
    StepKind,
    SuggestedReplies,
)
from infrastructure.conversations.protocols import Session
from infrastructure.conversations.results import StepResult, StepStatus
from infrastructure.conversations.signal import CompletionSignal
from infrastructure.conversations.slots import PendingAnswerSlots
from infrastructure.conversations.steps import (
    ChainDefinition,
    ChoiceStep,
    ConfirmStep,
    FreeTextStep,
    GuardStep,
    Step,
    TapStep,
    resolve_prompt,
)

logger = get_module_logger()

_INVALID = object()


class ChainRun:
    """Drives one activation of a ChainDefinition.

    Args:
        definition: The command's steps.
        context: Accumulator seeded by the router.
        slots: Pending answer slots shared with the router.
        on_finish: Renders the terminal state. Called exactly once, unless
            the run is abandoned first.
        labels: Conversation settings (labels and canned replies).
    """

    def __init__(
        self,
        definition: ChainDefinition,
        context: ChainContext,
        slots: PendingAnswerSlots,
        on_finish: Callable[[ChainContext], None],
        labels: Optional[ConversationSettings] = None,
    ):
        self.definition = definition
        self.context = context
        self._slots = slots
        self._on_finish = on_finish
        self._labels = labels or settings.conversation
        self._steps: List[Step] = list(definition.steps)
        self._offered: Dict[int, List[Choice]] = {}
        self.finished = False
        self.abandoned = False

        self._signals = [
            CompletionSignal(f"{definition.trigger}#{index}")
            for index in range(len(self._steps) + 1)
        ]
        for index in range(len(self._steps)):
            self._signals[index].subscribe(partial(self._activate, index))

    @property
    def is_active(self) -> bool:
        return not (self.finished or self.abandoned)

    def start(self) -> None:
        """Activate the first step (or finish right away for an empty chain)."""
        logger.info(
            "chain_started",
            command=self.context.command,
            steps=len(self._steps),
        )
        self._advance(0)

    def abandon(self) -> None:
        """Drop the run without rendering the terminal state.

        Used when the conversation is re-routed to another command or
        cancelled. The caller is responsible for the slot.
        """
        if not self.is_active:
            return
        self.abandoned = True
        self._release()
        logger.info("chain_abandoned", command=self.context.command)

    def _advance(self, index: int) -> None:
        if not self.is_active:
            return
        signal = self._signals[index]
        if signal.subscriber_count == 0:
            self._finish()
            return
        signal.emit(self.context)

    def _activate(self, index: int, _value: Any = None) -> None:
        step = self._steps[index]
        logger.debug(
            "step_activated",
            command=self.context.command,
            step_index=index,
            step_kind=step.kind.value,
        )

        if isinstance(step, TapStep):
            self._settle(index, step.callback(self.context))
        elif isinstance(step, GuardStep):
            try:
                outcome = step.callback(self.context)
            except GuardFailure as failure:
                logger.info(
                    "guard_failed",
                    command=self.context.command,
                    step_index=index,
                    reason=failure.message,
                )
                self.context.reply(failure.message)
                self._finish()
                return
            self._settle(index, outcome)
        elif isinstance(step, ChoiceStep):
            self._activate_choice(index, step)
        else:
            self.context.reply(
                resolve_prompt(step.prompt, self.context),
                suggested_replies=self._suggested_replies(index),
            )
            self._arm(index)

    def _activate_choice(self, index: int, step: ChoiceStep) -> None:
        choices = step.resolve_choices(self.context)
        if not choices:
            logger.info(
                "choice_empty", command=self.context.command, step_index=index
            )
            self.context.reply(step.empty_message or self._labels.EMPTY_CHOICE_MESSAGE)
            self._finish()
            return

        self._offered[index] = choices
        prompt = resolve_prompt(step.prompt, self.context)

        if len(choices) == 1:
            only = choices[0]
            self.context.reply(prompt)
            self.context.reply(self._labels.SELECTED_TEMPLATE.format(label=only.label))
            self._settle(index, step.callback(self.context, only.payload))
            return

        self.context.reply(prompt, suggested_replies=self._suggested_replies(index))
        self._arm(index)

    def _suggested_replies(self, index: int) -> Optional[SuggestedReplies]:
        step = self._steps[index]
        if isinstance(step, ConfirmStep):
            return SuggestedReplies(
                labels=[self._labels.AFFIRMATIVE_LABEL, self._labels.NEGATIVE_LABEL],
                columns=2,
            )
        if isinstance(step, ChoiceStep) and len(self._offered.get(index, [])) > 1:
            return SuggestedReplies(
                labels=[choice.label for choice in self._offered[index]],
                columns=step.columns,
            )
        return None

    def _arm(self, index: int) -> None:
        step = self._steps[index]
        self._slots.arm(
            self.context.conversation_id,
            PendingAnswer(
                handler=partial(self._answer, index),
                run=self,
                command=self.context.command,
                step_index=index,
                step_kind=step.kind,
            ),
        )

    def _answer(self, index: int, text: str, session: Session) -> None:
        """Consume an answer for the step at ``index``.

        The router has already taken the slot. Invalid answers re-arm the
        same step.
        """
        if not self.is_active:
            return
        self.context.session = session
        step = self._steps[index]

        value, error = self._parse(index, step, text)
        if value is _INVALID:
            logger.info(
                "answer_rejected",
                command=self.context.command,
                step_index=index,
                step_kind=step.kind.value,
            )
            self.context.reply(
                error or self._labels.INVALID_ANSWER_MESSAGE,
                suggested_replies=self._suggested_replies(index),
            )
            self._arm(index)
            return

        self._settle(index, step.callback(self.context, value))

    def _parse(self, index: int, step: Step, text: str):
        if isinstance(step, ConfirmStep):
            return text == self._labels.AFFIRMATIVE_LABEL, None

        if isinstance(step, ChoiceStep):
            for choice in self._offered.get(index, []):
                if choice.label == text:
                    return choice.payload, None
            return _INVALID, None

        if isinstance(step, FreeTextStep) and step.parser is not None:
            try:
                value = step.parser(text)
            except InvalidAnswer as invalid:
                return _INVALID, invalid.message
            if value is None:
                return _INVALID, None
            return value, None

        return text, None

    def _settle(self, index: int, outcome: Any) -> None:
        result = StepResult.coerce(outcome)
        if result.status == StepStatus.CONTINUE:
            self._advance(index + 1)
            return

        logger.info(
            "chain_stopped",
            command=self.context.command,
            step_index=index,
            status=result.status.value,
        )
        if result.status == StepStatus.FAIL and result.reason:
            self.context.reply(result.reason)
        self._finish()

    def _finish(self) -> None:
        if not self.is_active:
            return
        self.finished = True
        self._release()
        logger.info("chain_finished", command=self.context.command)
        self._on_finish(self.context)

    def _release(self) -> None:
        for signal in self._signals:
            signal.clear()
        self._offered.clear()

    def __repr__(self) -> str:
        return (
            f"ChainRun(command={self.context.command!r}, "
            f"finished={self.finished}, abandoned={self.abandoned})"
        )
