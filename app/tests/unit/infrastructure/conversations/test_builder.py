"""Unit tests for the chain builder."""

from unittest.mock import MagicMock

import pytest

from infrastructure.conversations import ChainDefinitionError, Choice
from infrastructure.conversations.builder import ChainBuilder
from infrastructure.conversations.models import StepKind
from infrastructure.conversations.steps import (
    ChainDefinition,
    ChoiceStep,
    ConfirmStep,
    FreeTextStep,
    resolve_prompt,
)

pytestmark = pytest.mark.unit


class TestChainBuilder:
    """Tests for ChainBuilder."""

    def test_fluent_chain_appends_in_order(self):
        definition = ChainDefinition(trigger="/add_account")
        parser = MagicMock()

        ChainBuilder(definition).free_text("Icon?", MagicMock(), parser=parser).confirm(
            "Sure?", MagicMock()
        ).choice("Which?", [Choice("A", 1)], MagicMock(), columns=2).guard(
            MagicMock()
        ).tap(
            MagicMock()
        )

        kinds = [step.kind for step in definition.steps]
        assert kinds == [
            StepKind.FREE_TEXT,
            StepKind.CONFIRM,
            StepKind.CHOICE,
            StepKind.GUARD,
            StepKind.TAP,
        ]
        assert definition.steps[0].parser is parser
        assert definition.steps[2].columns == 2
        assert len(definition) == 5

    def test_each_call_returns_builder_after_new_step(self):
        definition = ChainDefinition(trigger="/x")

        first = ChainBuilder(definition).tap(MagicMock())
        second = first.tap(MagicMock())

        assert first.position == 1
        assert second.position == 2

    def test_branching_raises(self):
        """A builder position accepts a single next step."""
        definition = ChainDefinition(trigger="/x")
        builder = ChainBuilder(definition)
        builder.tap(MagicMock())

        with pytest.raises(ChainDefinitionError, match="/x"):
            builder.tap(MagicMock())

        assert len(definition) == 1

    def test_choice_defaults(self):
        definition = ChainDefinition(trigger="/x")

        ChainBuilder(definition).choice("Which?", [], MagicMock())

        step = definition.steps[0]
        assert isinstance(step, ChoiceStep)
        assert step.columns == 1
        assert step.empty_message is None

    def test_step_kinds_are_fixed(self):
        step = FreeTextStep(prompt="Q", callback=MagicMock())
        assert step.kind == StepKind.FREE_TEXT
        assert ConfirmStep(prompt="Q", callback=MagicMock()).kind == StepKind.CONFIRM


class TestPromptsAndChoices:
    """Tests for prompt and choice resolution."""

    def test_resolve_static_prompt(self):
        assert resolve_prompt("Icon?", MagicMock()) == "Icon?"

    def test_resolve_callable_prompt(self):
        context = MagicMock()
        context.state.icon = "💳"

        prompt = resolve_prompt(lambda ctx: f"Name for {ctx.state.icon}?", context)

        assert prompt == "Name for 💳?"

    def test_resolve_static_choices(self):
        choices = (Choice("A", 1), Choice("B", 2))
        step = ChoiceStep(prompt="Which?", choices=choices, callback=MagicMock())

        assert step.resolve_choices(MagicMock()) == [Choice("A", 1), Choice("B", 2)]

    def test_resolve_callable_choices_each_time(self):
        source = MagicMock(side_effect=[[Choice("A", 1)], [Choice("B", 2)]])
        step = ChoiceStep(prompt="Which?", choices=source, callback=MagicMock())

        assert step.resolve_choices(MagicMock()) == [Choice("A", 1)]
        assert step.resolve_choices(MagicMock()) == [Choice("B", 2)]
