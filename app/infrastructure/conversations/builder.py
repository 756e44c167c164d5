"""Fluent builder for command chains."""

from typing import Optional

from infrastructure.conversations.exceptions import ChainDefinitionError
from infrastructure.conversations.steps import (
    AnswerCallback,
    AnswerParser,
    ChainDefinition,
    Choices,
    ChoiceStep,
    ConfirmStep,
    ContextCallback,
    FreeTextStep,
    GuardStep,
    Prompt,
    Step,
    TapStep,
)


class ChainBuilder:
    """Appends steps to a ChainDefinition.

    Every method appends one step and returns a builder positioned after it,
    so chains read top to bottom:

        registry.register("/add_account", "Adds an account", requires_store=True) \\
            .free_text("Send the account icon", set_icon) \\
            .free_text("Send the account name", set_title) \\
            .confirm(describe_account, confirm_account) \\
            .tap(store_account)

    Chains are linear: a position accepts a single next step.
    """

    def __init__(self, definition: ChainDefinition, position: int = 0):
        self.definition = definition
        self.position = position

    def free_text(
        self,
        prompt: Prompt,
        callback: AnswerCallback,
        parser: Optional[AnswerParser] = None,
    ) -> "ChainBuilder":
        return self._append(FreeTextStep(prompt=prompt, callback=callback, parser=parser))

    def confirm(self, prompt: Prompt, callback: AnswerCallback) -> "ChainBuilder":
        """Yes/No question. The callback receives True for the affirmative label."""
        return self._append(ConfirmStep(prompt=prompt, callback=callback))

    def choice(
        self,
        prompt: Prompt,
        choices: Choices,
        callback: AnswerCallback,
        columns: int = 1,
        empty_message: Optional[str] = None,
    ) -> "ChainBuilder":
        """Multiple choice question.

        Args:
            prompt: Question text or callable.
            choices: Options, or a callable resolving them on each activation.
            callback: Called with ``(context, payload)``.
            columns: Buttons per row.
            empty_message: Reply used when no option is available.

        Returns:
            Builder positioned after the new step.
        """
        return self._append(
            ChoiceStep(
                prompt=prompt,
                choices=choices,
                callback=callback,
                columns=columns,
                empty_message=empty_message,
            )
        )

    def tap(self, callback: ContextCallback) -> "ChainBuilder":
        return self._append(TapStep(callback=callback))

    def guard(self, callback: ContextCallback) -> "ChainBuilder":
        return self._append(GuardStep(callback=callback))

    def _append(self, step: Step) -> "ChainBuilder":
        if len(self.definition) != self.position:
            raise ChainDefinitionError(
                f"Chain for '{self.definition.trigger}' already continues "
                f"after step {self.position - 1}"
            )
        index = self.definition.append(step)
        return ChainBuilder(self.definition, index + 1)
