"""Unit tests for chain runs.

Runs are driven directly here: the pending answer is taken from the slot
table and its handler called the way the router does it.
"""

from unittest.mock import MagicMock

import pytest

from infrastructure.conversations import (
    ChainContext,
    ChainRun,
    ChainState,
    Choice,
    GuardFailure,
    InvalidAnswer,
    StepKind,
    StepResult,
)
from infrastructure.conversations.builder import ChainBuilder
from infrastructure.conversations.steps import ChainDefinition

pytestmark = pytest.mark.unit


class Draft(ChainState):
    icon: str = ""
    title: str = ""


@pytest.fixture
def definition():
    return ChainDefinition(trigger="/test")


@pytest.fixture
def builder(definition):
    return ChainBuilder(definition)


@pytest.fixture
def on_finish():
    return MagicMock()


@pytest.fixture
def make_run(definition, session, slots, on_finish):
    def _factory(state=None, store=None):
        context = ChainContext(
            session=session,
            command="/test",
            store=store,
            state=state or ChainState(),
        )
        return ChainRun(definition, context, slots, on_finish=on_finish)

    return _factory


@pytest.fixture
def answer(slots, session):
    """Feed an answer to the armed slot like the router does."""

    def _answer(text, on=None):
        pending = slots.take(session.conversation_id)
        assert pending is not None, "no pending answer armed"
        pending.handler(text, on or session)

    return _answer


class TestLifecycle:
    """Tests for starting and finishing runs."""

    def test_empty_chain_finishes_immediately(self, make_run, on_finish, session):
        run = make_run()

        run.start()

        on_finish.assert_called_once_with(run.context)
        assert run.finished is True
        assert run.is_active is False
        assert session.sent == []

    def test_taps_run_in_order_then_finish_once(self, builder, make_run, on_finish):
        calls = []
        builder.tap(lambda ctx: calls.append("first")).tap(
            lambda ctx: calls.append("second")
        )
        run = make_run()

        run.start()

        assert calls == ["first", "second"]
        on_finish.assert_called_once()

    def test_finish_renders_after_last_step(self, builder, make_run, on_finish):
        order = []
        builder.tap(lambda ctx: order.append("tap"))
        on_finish.side_effect = lambda ctx: order.append("terminal")

        make_run().start()

        assert order == ["tap", "terminal"]

    def test_callback_exception_propagates(self, builder, make_run, on_finish):
        builder.tap(MagicMock(side_effect=RuntimeError("boom")))
        run = make_run()

        with pytest.raises(RuntimeError, match="boom"):
            run.start()

        on_finish.assert_not_called()

    def test_invalid_callback_return_raises_type_error(self, builder, make_run):
        builder.tap(lambda ctx: "yes")

        with pytest.raises(TypeError):
            make_run().start()

    def test_repr(self, make_run):
        run = make_run()
        assert repr(run) == "ChainRun(command='/test', finished=False, abandoned=False)"


class TestFreeText:
    """Tests for free text steps."""

    def test_prompt_and_arm(self, builder, make_run, session, slots):
        builder.free_text("Icon of the account?", MagicMock())
        run = make_run()

        run.start()

        assert session.sent == [("Icon of the account?", None)]
        pending = slots.peek(session.conversation_id)
        assert pending.run is run
        assert pending.command == "/test"
        assert pending.step_index == 0
        assert pending.step_kind == StepKind.FREE_TEXT

    def test_answer_reaches_callback_then_finishes(
        self, builder, make_run, answer, on_finish, slots, session
    ):
        callback = MagicMock(return_value=None)
        builder.free_text("Icon?", callback)
        run = make_run()
        run.start()

        answer("💳")

        callback.assert_called_once_with(run.context, "💳")
        on_finish.assert_called_once()
        assert slots.is_armed(session.conversation_id) is False

    def test_callable_prompt_sees_state(self, builder, make_run, answer, session):
        def set_icon(ctx, icon):
            ctx.state.icon = icon

        builder.free_text("Icon?", set_icon).free_text(
            lambda ctx: f"Name for {ctx.state.icon}?", MagicMock()
        )
        make_run(state=Draft()).start()

        answer("🍔")

        assert session.last_text == "Name for 🍔?"

    def test_parser_value_passed_to_callback(self, builder, make_run, answer):
        callback = MagicMock(return_value=None)
        builder.free_text("Amount?", callback, parser=lambda text: int(text) * 2)
        run = make_run()
        run.start()

        answer("21")

        callback.assert_called_once_with(run.context, 42)

    def test_parser_none_rejects_and_rearms(
        self, builder, make_run, answer, session, slots, on_finish
    ):
        callback = MagicMock()
        builder.free_text("Amount?", callback, parser=lambda text: None)
        make_run().start()

        answer("abc")

        callback.assert_not_called()
        on_finish.assert_not_called()
        assert session.last_text == "Invalid answer."
        assert slots.peek(session.conversation_id).step_index == 0

    def test_invalid_answer_with_message(self, builder, make_run, answer, session):
        def parser(text):
            raise InvalidAnswer("Send a number, e.g. 12.50")

        builder.free_text("Amount?", MagicMock(), parser=parser)
        make_run().start()

        answer("abc")

        assert session.last_text == "Send a number, e.g. 12.50"

    def test_invalid_answer_without_message(self, builder, make_run, answer, session):
        def parser(text):
            raise InvalidAnswer()

        builder.free_text("Amount?", MagicMock(), parser=parser)
        make_run().start()

        answer("abc")

        assert session.last_text == "Invalid answer."

    def test_recovers_after_invalid_answer(
        self, builder, make_run, answer, on_finish
    ):
        callback = MagicMock(return_value=None)
        builder.free_text(
            "Amount?", callback, parser=lambda text: int(text) if text.isdigit() else None
        )
        run = make_run()
        run.start()

        answer("twelve")
        answer("12")

        callback.assert_called_once_with(run.context, 12)
        on_finish.assert_called_once()

    def test_answer_rebinds_session(
        self, builder, make_run, answer, session, make_session
    ):
        later = make_session(session.conversation_id)

        def save(ctx):
            ctx.reply("saved")

        builder.free_text("Icon?", MagicMock(return_value=None)).tap(save)
        run = make_run()
        run.start()

        answer("💳", on=later)

        assert run.context.session is later
        assert later.texts == ["saved"]
        assert session.texts == ["Icon?"]


class TestConfirm:
    """Tests for confirm steps."""

    def test_prompt_offers_yes_no(self, builder, make_run, session):
        builder.confirm("Are you sure?", MagicMock())
        make_run().start()

        text, replies = session.sent[-1]
        assert text == "Are you sure?"
        assert replies.labels == ["Yes", "No"]
        assert replies.columns == 2

    @pytest.mark.parametrize(
        "reply,expected",
        [("Yes", True), ("No", False), ("yes", False), ("maybe", False)],
    )
    def test_affirmative_label_maps_to_true(
        self, builder, make_run, answer, reply, expected
    ):
        callback = MagicMock(return_value=None)
        builder.confirm("Are you sure?", callback)
        run = make_run()
        run.start()

        answer(reply)

        callback.assert_called_once_with(run.context, expected)

    def test_confirm_never_rejects(self, builder, make_run, answer, session, on_finish):
        builder.confirm("Are you sure?", MagicMock(return_value=None))
        make_run().start()

        answer("whatever")

        assert "Invalid answer." not in session.texts
        on_finish.assert_called_once()

    def test_false_skips_rest_and_renders_terminal_once(
        self, builder, make_run, answer, on_finish
    ):
        """free_text -> confirm (False on No) -> tap: the tap never runs."""
        order = []
        tap = MagicMock(side_effect=lambda ctx: order.append("tap"))

        def confirm(ctx, confirmed):
            order.append("confirm")
            return confirmed or False

        on_finish.side_effect = lambda ctx: order.append("terminal")
        builder.free_text("Name?", MagicMock(return_value=None)).confirm(
            "Sure?", confirm
        ).tap(tap)
        make_run().start()

        answer("Food")
        answer("No")

        tap.assert_not_called()
        assert order == ["confirm", "terminal"]


class TestChoice:
    """Tests for choice steps."""

    @pytest.fixture
    def choices(self):
        return [Choice("🍔 Food", 1), Choice("🚌 Transport", 2)]

    def test_prompt_offers_labels(self, builder, make_run, session, slots, choices):
        builder.choice("Which category?", choices, MagicMock(), columns=2)
        make_run().start()

        text, replies = session.sent[-1]
        assert text == "Which category?"
        assert replies.labels == ["🍔 Food", "🚌 Transport"]
        assert replies.columns == 2
        assert slots.peek(session.conversation_id).step_kind == StepKind.CHOICE

    def test_label_answer_passes_payload(self, builder, make_run, answer, choices):
        callback = MagicMock(return_value=None)
        builder.choice("Which category?", choices, callback)
        run = make_run()
        run.start()

        answer("🚌 Transport")

        callback.assert_called_once_with(run.context, 2)

    def test_unknown_label_is_rejected_and_rearmed(
        self, builder, make_run, answer, session, slots, choices, on_finish
    ):
        callback = MagicMock()
        builder.choice("Which category?", choices, callback, columns=2)
        make_run().start()

        answer("Snacks")

        callback.assert_not_called()
        on_finish.assert_not_called()
        text, replies = session.sent[-1]
        assert text == "Invalid answer."
        assert replies.labels == ["🍔 Food", "🚌 Transport"]
        assert slots.is_armed(session.conversation_id) is True

    def test_single_option_is_auto_selected(
        self, builder, make_run, session, slots, on_finish
    ):
        callback = MagicMock(return_value=None)
        builder.choice("Which account?", [Choice("💳 Visa", 7)], callback)
        run = make_run()

        run.start()

        assert session.texts == ["Which account?", "💳 Visa selected."]
        callback.assert_called_once_with(run.context, 7)
        assert slots.is_armed(session.conversation_id) is False
        on_finish.assert_called_once()

    def test_single_option_continues_to_next_step(
        self, builder, make_run, session, slots
    ):
        builder.choice(
            "Which account?", [Choice("💳 Visa", 7)], MagicMock(return_value=None)
        ).free_text(
            "Amount?", MagicMock()
        )
        make_run().start()

        assert session.last_text == "Amount?"
        assert slots.peek(session.conversation_id).step_index == 1

    def test_empty_choices_end_the_chain(self, builder, make_run, session, on_finish):
        tap = MagicMock()
        builder.choice("Which expense?", [], MagicMock()).tap(tap)

        make_run().start()

        assert session.texts == ["No options available."]
        tap.assert_not_called()
        on_finish.assert_called_once()

    def test_empty_message_override(self, builder, make_run, session):
        builder.choice("Which expense?", lambda ctx: [], MagicMock(), empty_message="None yet")

        make_run().start()

        assert session.texts == ["None yet"]

    def test_choices_resolved_per_run(self, builder, definition, session, slots):
        source = MagicMock(return_value=[Choice("A", 1), Choice("B", 2)])
        builder.choice("Which?", source, MagicMock())

        for _ in range(2):
            context = ChainContext(session=session, command="/test")
            ChainRun(definition, context, slots, on_finish=MagicMock()).start()

        assert source.call_count == 2


class TestGuardAndResults:
    """Tests for guard steps and tagged results."""

    def test_guard_failure_sends_message_and_stops(
        self, builder, make_run, session, on_finish
    ):
        tap = MagicMock()

        def guard(ctx):
            raise GuardFailure("No accounts yet...")

        builder.guard(guard).tap(tap)

        make_run().start()

        assert session.texts == ["No accounts yet..."]
        tap.assert_not_called()
        on_finish.assert_called_once()

    def test_passing_guard_continues(self, builder, make_run):
        tap = MagicMock(return_value=None)
        builder.guard(lambda ctx: None).tap(tap)

        make_run().start()

        tap.assert_called_once()

    def test_guard_can_abort_with_false(self, builder, make_run, on_finish):
        tap = MagicMock()
        builder.guard(lambda ctx: False).tap(tap)

        make_run().start()

        tap.assert_not_called()
        on_finish.assert_called_once()

    def test_fail_result_sends_reason(self, builder, make_run, session, on_finish):
        tap = MagicMock()
        builder.tap(lambda ctx: StepResult.fail("Storage unavailable")).tap(tap)

        make_run().start()

        assert session.texts == ["Storage unavailable"]
        tap.assert_not_called()
        on_finish.assert_called_once()

    def test_abort_result_is_silent(self, builder, make_run, session, on_finish):
        builder.tap(lambda ctx: StepResult.abort())

        make_run().start()

        assert session.sent == []
        on_finish.assert_called_once()


class TestAbandon:
    """Tests for abandoned runs."""

    def test_abandon_skips_terminal_render(self, builder, make_run, on_finish):
        builder.free_text("Icon?", MagicMock())
        run = make_run()
        run.start()

        run.abandon()

        assert run.abandoned is True
        assert run.is_active is False
        on_finish.assert_not_called()

    def test_answer_after_abandon_is_ignored(self, builder, make_run, slots, session):
        callback = MagicMock()
        builder.free_text("Icon?", callback)
        run = make_run()
        run.start()
        pending = slots.take(session.conversation_id)

        run.abandon()
        pending.handler("💳", session)

        callback.assert_not_called()

    def test_abandon_after_finish_is_noop(self, builder, make_run, on_finish):
        builder.tap(MagicMock(return_value=None))
        run = make_run()
        run.start()

        run.abandon()

        assert run.abandoned is False
        on_finish.assert_called_once()
