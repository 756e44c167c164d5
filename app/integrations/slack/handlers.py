"""Slack listeners feeding the message router.

Three kinds of input reach the router:

- plain messages (direct messages or channel messages the bot can read);
- clicks on suggested-reply buttons, dispatched as the button label;
- slash commands, one per literal ``/`` trigger in the registry.
"""

import re
from typing import Any, Callable, Dict, Optional

from slack_bolt import Ack, App

from core.config import settings
from core.logging import get_module_logger
from infrastructure.conversations import (
    CommandRegistry,
    InboundMessage,
    MessageRouter,
    RouteKind,
)
from integrations.slack.blocks import SUGGESTED_REPLY_ACTION_PATTERN
from integrations.slack.client import SlackClientFacade
from integrations.slack.session import SlackSession

logger = get_module_logger()

LEADING_MENTION = re.compile(r"^\s*<@[A-Z0-9]+(\|[^>]*)?>\s*")

IGNORED_SUBTYPES = {
    "bot_message",
    "message_changed",
    "message_deleted",
    "channel_join",
    "channel_leave",
}


def dispatch_text(
    router: MessageRouter,
    facade: SlackClientFacade,
    text: str,
    channel_id: str,
    user_id: str,
    thread_ts: Optional[str] = None,
) -> Optional[RouteKind]:
    """Dispatch text received from Slack.

    Exceptions raised while routing are logged and swallowed here so that
    one broken command does not take the listener down.

    Returns:
        The route taken, or None when dispatch failed.
    """
    session = SlackSession(facade, channel_id, user_id, thread_ts=thread_ts)
    message = InboundMessage(
        text=text,
        conversation_id=session.conversation_id,
        user_id=user_id,
        channel_id=channel_id,
    )
    try:
        return router.dispatch(message, session)
    except Exception as e:  # pylint: disable=broad-except
        logger.exception(
            "message_dispatch_failed",
            conversation_id=session.conversation_id,
            error=str(e),
        )
        return None


def unescape_text(text: str) -> str:
    """Undo the ``&amp;``, ``&lt;`` and ``&gt;`` escaping Slack applies to typed text."""
    return text.replace("&lt;", "<").replace("&gt;", ">").replace("&amp;", "&")


def is_user_message(event: Dict[str, Any]) -> bool:
    """True for messages typed by a human (no bot, no edits, no joins)."""
    if event.get("bot_id") or event.get("subtype") in IGNORED_SUBTYPES:
        return False
    return bool(event.get("user")) and bool((event.get("text") or "").strip())


def make_message_handler(
    router: MessageRouter, facade: SlackClientFacade
) -> Callable[..., None]:
    def handle_message(event: Dict[str, Any]) -> None:
        if not is_user_message(event):
            return
        dispatch_text(
            router,
            facade,
            unescape_text(LEADING_MENTION.sub("", event["text"])),
            channel_id=event["channel"],
            user_id=event["user"],
            thread_ts=event.get("thread_ts"),
        )

    return handle_message


def make_reply_action_handler(
    router: MessageRouter, facade: SlackClientFacade
) -> Callable[..., None]:
    def handle_reply_action(ack: Ack, body: Dict[str, Any], action: Dict[str, Any]) -> None:
        ack()
        channel = body.get("channel") or {}
        channel_id = channel.get("id") or body.get("container", {}).get("channel_id")
        user_id = body.get("user", {}).get("id")
        label = action.get("value")
        if not channel_id or not user_id or not label:
            logger.warning("reply_action_incomplete", action_id=action.get("action_id"))
            return
        thread_ts = (body.get("message") or {}).get("thread_ts")
        dispatch_text(router, facade, label, channel_id, user_id, thread_ts=thread_ts)

    return handle_reply_action


def make_slash_command_handler(
    router: MessageRouter, facade: SlackClientFacade, trigger: str
) -> Callable[..., None]:
    """Listener for one slash command, dispatched as ``trigger`` (+ arguments)."""

    def handle_slash_command(ack: Ack, command: Dict[str, Any]) -> None:
        ack()
        arguments = unescape_text((command.get("text") or "").strip())
        text = f"{trigger} {arguments}" if arguments else trigger
        dispatch_text(
            router,
            facade,
            text,
            channel_id=command["channel_id"],
            user_id=command["user_id"],
        )

    return handle_slash_command


def register(
    bot: App,
    router: MessageRouter,
    registry: CommandRegistry,
    facade: Optional[SlackClientFacade] = None,
) -> None:
    """Wire the router into a Slack Bolt app.

    Args:
        bot: Slack Bolt application.
        router: Message router to dispatch to.
        registry: Registry whose literal ``/`` triggers become slash commands.
        facade: Client facade used by sessions. Defaults to one wrapping the
            app's client.
    """
    facade = facade or SlackClientFacade(client=bot.client)
    prefix = settings.conversation.COMMAND_PREFIX

    bot.event("message")(make_message_handler(router, facade))
    bot.action(SUGGESTED_REPLY_ACTION_PATTERN)(make_reply_action_handler(router, facade))

    for trigger in registry.literal_triggers(prefix):
        slash_name = f"/{settings.PREFIX}{trigger[len(prefix):]}"
        bot.command(slash_name)(make_slash_command_handler(router, facade, trigger))

    logger.info(
        "slack_handlers_registered",
        slash_commands=len(registry.literal_triggers(prefix)),
    )
