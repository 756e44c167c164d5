import sys
from pathlib import Path
from typing import List, Optional, Tuple

# Ensure the application package root is on sys.path so importing application
# modules (e.g. `core.config`) works during pytest collection.
project_root = str(Path(__file__).resolve().parents[1])
if project_root not in sys.path:
    sys.path.insert(0, project_root)

import pytest  # noqa: E402

from infrastructure.conversations import (  # noqa: E402
    CommandRegistry,
    InboundMessage,
    MessageRouter,
    PendingAnswerSlots,
    SuggestedReplies,
)
from infrastructure.operations import OperationResult  # noqa: E402
from modules.expenses.store import InMemoryLedgerDirectory  # noqa: E402


class RecordingSession:
    """Session double that records every reply instead of delivering it."""

    def __init__(self, conversation_id: str = "C1:U1"):
        self.conversation_id = conversation_id
        self.sent: List[Tuple[str, Optional[SuggestedReplies]]] = []
        self.result = OperationResult.success()

    def send(self, text, suggested_replies=None):
        self.sent.append((text, suggested_replies))
        return self.result

    @property
    def texts(self) -> List[str]:
        return [text for text, _ in self.sent]

    @property
    def last_text(self) -> Optional[str]:
        return self.sent[-1][0] if self.sent else None

    @property
    def last_replies(self) -> Optional[SuggestedReplies]:
        return self.sent[-1][1] if self.sent else None

    def clear(self) -> None:
        self.sent = []


@pytest.fixture
def session():
    return RecordingSession()


@pytest.fixture
def make_session():
    """Factory for sessions bound to other conversations."""

    def _factory(conversation_id: str = "C1:U1") -> RecordingSession:
        return RecordingSession(conversation_id)

    return _factory


@pytest.fixture
def registry():
    return CommandRegistry()


@pytest.fixture
def slots():
    return PendingAnswerSlots()


@pytest.fixture
def router(registry, slots):
    return MessageRouter(registry, slots=slots, address_suffixes=["@budget_bot"])


@pytest.fixture
def say(router, session):
    """Dispatch text on the default session, returning the route taken."""

    def _say(text: str, on=None):
        target = on or session
        message = InboundMessage(
            text=text, conversation_id=target.conversation_id, user_id="U1"
        )
        return router.dispatch(message, target)

    return _say


@pytest.fixture
def ledger_directory():
    return InMemoryLedgerDirectory()
