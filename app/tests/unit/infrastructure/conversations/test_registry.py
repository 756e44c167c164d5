"""Unit tests for the command registry."""

import re
from unittest.mock import MagicMock

import pytest

from infrastructure.conversations import (
    ChainBuilder,
    ChainState,
    CommandAlreadyRegisteredError,
    CommandRegistry,
    ConversationError,
)

pytestmark = pytest.mark.unit


class TestBuiltins:
    """Tests for the seeded help and cancel triggers."""

    def test_help_and_cancel_are_seeded_first(self):
        registry = CommandRegistry()

        triggers = [d.trigger for d in registry.descriptors()]

        assert triggers == ["/help", "/cancel"]
        assert len(registry) == 2

    def test_help_is_an_important_action(self):
        registry = CommandRegistry()

        command = registry.get("/help")

        assert command.action is not None
        assert command.descriptor.important is True
        assert command.descriptor.description == "Shows this help"

    def test_cancel_is_reserved(self):
        registry = CommandRegistry()

        command = registry.get("/cancel")

        assert command.is_reserved is True
        assert command.descriptor.important is False

    def test_without_builtins(self):
        registry = CommandRegistry(builtins=False)
        assert len(registry) == 0
        assert registry.get("/help") is None

    def test_help_cannot_be_registered_again(self):
        registry = CommandRegistry()
        with pytest.raises(CommandAlreadyRegisteredError):
            registry.register("/help", "Other help")


class TestRegister:
    """Tests for register() and lookups."""

    def test_register_returns_builder_at_first_step(self):
        registry = CommandRegistry()

        builder = registry.register("/add_account", "Adds an account")

        assert isinstance(builder, ChainBuilder)
        assert builder.position == 0
        assert builder.definition.trigger == "/add_account"

    def test_register_records_options(self):
        class Draft(ChainState):
            pass

        registry = CommandRegistry()
        registry.register(
            "/add_account",
            "Adds an account",
            important=True,
            requires_store=True,
            state_model=Draft,
        )

        command = registry.get("/add_account")
        assert command.trigger == "/add_account"
        assert command.requires_store is True
        assert command.state_model is Draft
        assert command.descriptor.important is True
        assert command.is_reserved is False

    def test_duplicate_literal_raises(self):
        registry = CommandRegistry()
        registry.register("/start", "Starts")

        with pytest.raises(CommandAlreadyRegisteredError, match="/start"):
            registry.register("/start", "Starts again")

    def test_duplicate_is_a_conversation_error(self):
        assert issubclass(CommandAlreadyRegisteredError, ConversationError)

    def test_descriptors_in_registration_order_without_duplicates(self):
        """N registered commands come back as N descriptors, in order."""
        registry = CommandRegistry()
        names = [f"/command_{i}" for i in range(10)]
        for name in names:
            registry.register(name, f"Runs {name}").tap(MagicMock())

        triggers = [d.trigger for d in registry.descriptors()]

        assert triggers == ["/help", "/cancel"] + names
        assert len(set(triggers)) == len(triggers)

    def test_descriptors_important_only(self):
        registry = CommandRegistry()
        registry.register("/a", "A", important=True)
        registry.register("/b", "B")

        important = [d.trigger for d in registry.descriptors(important_only=True)]

        assert important == ["/help", "/a"]

    def test_get_is_exact(self):
        registry = CommandRegistry()
        registry.register("/start", "Starts")

        assert registry.get("/start") is not None
        assert registry.get("/start ") is None
        assert registry.get("/Start") is None

    def test_contains(self):
        registry = CommandRegistry()
        registry.register("/start", "Starts")
        registry.register(re.compile(r"^/remove_(\d+)$"), "Removes")

        assert "/start" in registry
        assert r"^/remove_(\d+)$" in registry
        assert "/missing" not in registry

    def test_literal_triggers(self):
        registry = CommandRegistry()
        registry.register("/start", "Starts")
        registry.register("hello", "Greets")
        registry.register(re.compile(r"^/remove_(\d+)$"), "Removes")

        assert registry.literal_triggers() == ["/help", "/cancel", "/start"]


class TestPatterns:
    """Tests for pattern triggers."""

    def test_pattern_descriptor(self):
        registry = CommandRegistry()
        registry.register(re.compile(r"^/remove_(\d+)$"), "Removes an expense")

        descriptor = registry.descriptors()[-1]

        assert descriptor.is_pattern is True
        assert descriptor.trigger == r"^/remove_(\d+)$"

    def test_match_returns_command_and_match(self):
        registry = CommandRegistry()
        registry.register(re.compile(r"^/remove_(\d+)$"), "Removes")

        command, match = registry.match("/remove_12")

        assert command.pattern.pattern == r"^/remove_(\d+)$"
        assert match.group(1) == "12"

    def test_match_uses_registration_order(self):
        """The first registered matching pattern wins."""
        registry = CommandRegistry()
        registry.register(re.compile(r"^/r"), "First")
        registry.register(re.compile(r"^/remove"), "Second")

        command, _ = registry.match("/remove_1")

        assert command.descriptor.description == "First"

    def test_match_none(self):
        registry = CommandRegistry()
        registry.register(re.compile(r"^/remove_(\d+)$"), "Removes")

        assert registry.match("/remove_x") is None

    def test_duplicate_pattern_raises(self):
        registry = CommandRegistry()
        registry.register(re.compile(r"^/x$"), "X")

        with pytest.raises(CommandAlreadyRegisteredError):
            registry.register(re.compile(r"^/x$"), "X again")

    def test_same_source_different_flags_is_allowed(self):
        registry = CommandRegistry()
        registry.register(re.compile(r"^/x$"), "X")
        registry.register(re.compile(r"^/x$", re.IGNORECASE), "X any case")

        assert len(registry) == 4


class TestRegisterAction:
    """Tests for chain-less commands."""

    def test_register_action(self):
        registry = CommandRegistry()
        handler = MagicMock()

        descriptor = registry.register_action("/ping", "Pings", handler, important=True)

        command = registry.get("/ping")
        assert command.action is handler
        assert command.definition is None
        assert descriptor.trigger == "/ping"
        assert descriptor.important is True

    def test_reserve(self):
        registry = CommandRegistry(builtins=False)

        descriptor = registry.reserve("/stop", "Stops")

        assert registry.get("/stop").is_reserved is True
        assert descriptor.description == "Stops"
