"""Help and fallback text for registered commands."""

from typing import Iterable, List, Optional

from core.config import ConversationSettings, settings
from infrastructure.conversations.models import CommandDescriptor, SuggestedReplies


def format_descriptors(descriptors: Iterable[CommandDescriptor]) -> str:
    """Render descriptors as ``trigger`` lines followed by an indented description."""
    lines: List[str] = []
    for descriptor in descriptors:
        lines.append(descriptor.trigger)
        if descriptor.description:
            lines.append(f"  {descriptor.description}")
        lines.append("")
    return "\n".join(lines).rstrip("\n")


def format_help(
    descriptors: Iterable[CommandDescriptor],
    labels: Optional[ConversationSettings] = None,
) -> str:
    """Full command listing sent by the help command."""
    labels = labels or settings.conversation
    return f"{labels.HELP_HEADER}\n\n{format_descriptors(descriptors)}"


def format_main_commands(
    header: str,
    descriptors: Iterable[CommandDescriptor],
    labels: Optional[ConversationSettings] = None,
) -> str:
    """Reply for unmatched input: a header line, then the important commands.

    Args:
        header: First line, e.g. "Unknown command."
        descriptors: Important command descriptors.
        labels: Conversation settings override.

    Returns:
        The reply text.
    """
    labels = labels or settings.conversation
    listing = format_descriptors(descriptors)
    return f"{header}\n\n{labels.MAIN_COMMANDS_HEADER}\n\n{listing}"


def main_menu(
    descriptors: Iterable[CommandDescriptor],
    labels: Optional[ConversationSettings] = None,
) -> SuggestedReplies:
    """Suggested replies listing the important literal commands."""
    labels = labels or settings.conversation
    return SuggestedReplies(
        labels=[d.trigger for d in descriptors if d.important and not d.is_pattern],
        columns=labels.MENU_COLUMNS,
        one_time=False,
    )
