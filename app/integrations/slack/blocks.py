"""Slack Block Kit utilities.

Replies are rendered as one or more mrkdwn section blocks followed by one
actions block per row of suggested replies. Clicking a button sends its label
back to the router as if the user had typed it.
"""

import re
from typing import Dict, List, Optional

from infrastructure.conversations.models import SuggestedReplies

SUGGESTED_REPLY_ACTION_PREFIX = "suggested_reply_"
SUGGESTED_REPLY_ACTION_PATTERN = re.compile(
    rf"^{SUGGESTED_REPLY_ACTION_PREFIX}\d+$"
)

# Block Kit limits
MAX_SECTION_TEXT = 3000
MAX_BUTTON_TEXT = 75
MAX_BLOCKS = 50


def escape_mrkdwn(text: str) -> str:
    """Escape the control characters Slack requires escaped in mrkdwn.

    Examples:
        >>> escape_mrkdwn("Food & <drinks>")
        'Food &amp; &lt;drinks&gt;'
    """
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def split_text(text: str, limit: int = MAX_SECTION_TEXT) -> List[str]:
    """Split text into chunks no longer than ``limit``, preferring line breaks."""
    if len(text) <= limit:
        return [text]

    chunks: List[str] = []
    current = ""
    for line in text.split("\n"):
        while len(line) > limit:
            if current:
                chunks.append(current)
                current = ""
            chunks.append(line[:limit])
            line = line[limit:]
        candidate = f"{current}\n{line}" if current else line
        if len(candidate) > limit:
            chunks.append(current)
            current = line
        else:
            current = candidate
    if current:
        chunks.append(current)
    return chunks


def create_section_block(text: str, text_type: str = "mrkdwn") -> Dict:
    """
    Create a section block with the given text.

    Args:
        text: The text content for the section
        text_type: The text type, either 'mrkdwn' or 'plain_text'

    Returns:
        Dict: A valid Slack section block
    """
    return {"type": "section", "text": {"type": text_type, "text": text}}


def create_reply_button(label: str, index: int) -> Dict:
    """Button whose value is the reply label."""
    return {
        "type": "button",
        "text": {
            "type": "plain_text",
            "text": label[:MAX_BUTTON_TEXT],
            "emoji": True,
        },
        "value": label,
        "action_id": f"{SUGGESTED_REPLY_ACTION_PREFIX}{index}",
    }


def build_reply_blocks(
    text: str, suggested_replies: Optional[SuggestedReplies] = None
) -> List[Dict]:
    """Build the blocks of a reply.

    Args:
        text: Already escaped mrkdwn text.
        suggested_replies: Buttons to offer, laid out one actions block per row.

    Returns:
        List of Block Kit blocks.
    """
    blocks: List[Dict] = [create_section_block(chunk) for chunk in split_text(text)]

    if suggested_replies:
        index = 0
        for row in suggested_replies.rows():
            elements = []
            for label in row:
                elements.append(create_reply_button(label, index))
                index += 1
            blocks.append({"type": "actions", "elements": elements})

    return blocks[:MAX_BLOCKS]


def validate_blocks(blocks: List[Dict]) -> bool:
    """
    Validate that the provided blocks are structurally valid.

    Covers the block types this bot sends: section, actions, divider and
    context.

    Args:
        blocks: List of Slack block dictionaries to validate

    Returns:
        bool: True if blocks are structurally valid, False otherwise
    """
    if not isinstance(blocks, list) or len(blocks) > MAX_BLOCKS:
        return False

    for block in blocks:
        if not isinstance(block, dict) or "type" not in block:
            return False

        block_type = block.get("type")

        if block_type == "section":
            text = block.get("text", {}).get("text")
            if not text or len(text) > MAX_SECTION_TEXT:
                return False

        if block_type == "divider" and len(block) > 1:
            return False

        if block_type in ["actions", "context"] and not block.get("elements"):
            return False

    return True
