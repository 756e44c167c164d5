"""OpenRouter chat completions client.

Reference: https://openrouter.ai/docs/api-reference/chat-completion
"""

from enum import Enum
from typing import Dict, List, Literal, Optional

import requests
from pydantic import BaseModel

from core.config import settings
from core.logging import get_module_logger

logger = get_module_logger()


class AiModel(str, Enum):
    """Models known to work for spending questions."""

    CLAUDE = "anthropic/claude-3.7-sonnet"
    GPT4O = "openai/chatgpt-4o-latest"
    GEMINI_FLASH = "google/gemini-2.0-flash-001"


class AiMessage(BaseModel):
    role: Literal["user", "assistant", "system"]
    content: str


class CompletionError(Exception):
    """Raised when the completion service fails or answers nothing."""

    pass


def _headers() -> Dict[str, str]:
    return {
        "Authorization": f"Bearer {settings.openrouter.OPENROUTER_API_KEY}",
        "Content-Type": "application/json",
    }


def ask_ai(messages: List[AiMessage], model: Optional[str] = None) -> str:
    """Send a conversation to the chat completions endpoint.

    Args:
        messages: Conversation so far, oldest first.
        model: Model identifier. Defaults to ``OPENROUTER_MODEL``.

    Returns:
        The content of the first choice.

    Raises:
        CompletionError: If the API key is missing, the request fails or the
            response holds no content.
    """
    if not settings.openrouter.OPENROUTER_API_KEY:
        raise CompletionError("OPENROUTER_API_KEY is not configured")

    payload = {
        "model": model or settings.openrouter.OPENROUTER_MODEL,
        "messages": [message.model_dump() for message in messages],
    }
    logger.info("completion_requested", model=payload["model"], messages=len(messages))

    try:
        response = requests.post(
            settings.openrouter.OPENROUTER_URL,
            json=payload,
            headers=_headers(),
            timeout=settings.openrouter.OPENROUTER_TIMEOUT,
        )
        response.raise_for_status()
        data = response.json()
    except (requests.RequestException, ValueError) as e:
        logger.error("completion_request_failed", error=str(e))
        raise CompletionError(f"Completion request failed: {e}") from e

    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        content = None

    if not content:
        logger.warning("completion_empty", model=payload["model"])
        raise CompletionError("No response from AI...")

    usage = data.get("usage") or {}
    logger.info(
        "completion_received",
        model=data.get("model", payload["model"]),
        total_tokens=usage.get("total_tokens"),
    )
    return content
