"""Per-conversation pending answer slots."""

import threading
from typing import Dict, Optional

from core.logging import get_module_logger
from infrastructure.conversations.models import PendingAnswer

logger = get_module_logger()


class PendingAnswerSlots:
    """Holds at most one armed PendingAnswer per conversation id.

    Thread-safe: Slack listeners run on a worker pool.

    Example:
        slots = PendingAnswerSlots()
        slots.arm("C1:U1", pending)
        pending = slots.take("C1:U1")  # slot is empty again
    """

    def __init__(self):
        self._slots: Dict[str, PendingAnswer] = {}
        self._lock = threading.Lock()

    def arm(self, conversation_id: str, pending: PendingAnswer) -> Optional[PendingAnswer]:
        """Arm the conversation's slot.

        Returns:
            The PendingAnswer that was replaced, if any.
        """
        with self._lock:
            previous = self._slots.get(conversation_id)
            self._slots[conversation_id] = pending

        logger.debug(
            "pending_answer_armed",
            conversation_id=conversation_id,
            command=pending.command,
            step_index=pending.step_index,
            step_kind=pending.step_kind.value,
        )
        return previous

    def take(self, conversation_id: str) -> Optional[PendingAnswer]:
        """Remove and return the armed PendingAnswer, if any."""
        with self._lock:
            return self._slots.pop(conversation_id, None)

    def peek(self, conversation_id: str) -> Optional[PendingAnswer]:
        with self._lock:
            return self._slots.get(conversation_id)

    def is_armed(self, conversation_id: str) -> bool:
        with self._lock:
            return conversation_id in self._slots

    def clear(self) -> None:
        with self._lock:
            self._slots.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._slots)
