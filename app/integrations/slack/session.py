"""Session implementation for Slack conversations."""

from typing import Optional

from core.logging import get_module_logger
from infrastructure.conversations.models import SuggestedReplies
from infrastructure.operations import OperationResult
from integrations.slack.blocks import build_reply_blocks, escape_mrkdwn, validate_blocks
from integrations.slack.client import SlackClientFacade

logger = get_module_logger()


def conversation_key(channel_id: str, user_id: Optional[str]) -> str:
    """Conversation id used by the router: one conversation per user per channel."""
    return f"{channel_id}:{user_id}" if user_id else channel_id


class SlackSession:
    """Replies to one user in one Slack channel.

    Args:
        facade: Slack client facade used for delivery.
        channel_id: Channel (or DM) the conversation happens in.
        user_id: User being served.
        thread_ts: Reply in this thread when set.
    """

    def __init__(
        self,
        facade: SlackClientFacade,
        channel_id: str,
        user_id: Optional[str] = None,
        thread_ts: Optional[str] = None,
    ):
        self.facade = facade
        self.channel_id = channel_id
        self.user_id = user_id
        self.thread_ts = thread_ts
        self.conversation_id = conversation_key(channel_id, user_id)

    def send(
        self, text: str, suggested_replies: Optional[SuggestedReplies] = None
    ) -> OperationResult:
        """Post ``text`` with the suggested replies rendered as buttons."""
        escaped = escape_mrkdwn(text)
        blocks = build_reply_blocks(escaped, suggested_replies)

        if not validate_blocks(blocks):
            logger.warning(
                "reply_blocks_invalid",
                conversation_id=self.conversation_id,
                block_count=len(blocks),
            )
            blocks = None

        return self.facade.post_message(
            channel=self.channel_id,
            text=escaped,
            blocks=blocks,
            thread_ts=self.thread_ts,
        )

    def __repr__(self) -> str:
        return f"SlackSession(conversation_id={self.conversation_id!r})"
