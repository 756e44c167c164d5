"""Slack client access.

SlackClientManager hands out the process-wide WebClient; SlackClientFacade
wraps it with OperationResult-based calls so that delivery failures never
raise into the conversation engine.
"""

from typing import Any, Dict, List, Optional

from slack_sdk import WebClient
from slack_sdk.errors import SlackApiError

from core.config import settings
from core.logging import get_module_logger
from infrastructure.operations import OperationResult

logger = get_module_logger()

RETRYABLE_STATUS_CODES = [429, 500, 502, 503, 504]


class SlackClientManager:
    """Manages the Slack API client. Ensures a single instance is used throughout the application."""

    _client = None

    @classmethod
    def get_client(cls) -> WebClient:
        """Returns a singleton instance of the Slack WebClient."""
        if cls._client is None:
            cls._client = WebClient(token=settings.slack.SLACK_TOKEN)
        return cls._client


def _error_code(error: str) -> str:
    return f"SLACK_{error.upper()}"


class SlackClientFacade:
    """Facade for the Slack Web API returning OperationResult.

    Args:
        client: WebClient to use. Defaults to the shared client.

    Example:
        >>> facade = SlackClientFacade()
        >>> result = facade.post_message(channel="D123", text="Hello")
        >>> if result.is_success:
        ...     print(result.data["ts"])
    """

    def __init__(self, client: Optional[WebClient] = None):
        self._client = client or SlackClientManager.get_client()
        self._log = logger.bind(component="slack_client_facade")

    @property
    def client(self) -> WebClient:
        return self._client

    def post_message(
        self,
        channel: str,
        text: Optional[str] = None,
        blocks: Optional[List[Dict[str, Any]]] = None,
        thread_ts: Optional[str] = None,
        **kwargs,
    ) -> OperationResult:
        """Post a message to a Slack channel.

        Args:
            channel: Channel ID to post to (e.g., "D1234567890")
            text: Message text; the notification fallback when blocks are given
            blocks: Block Kit blocks
            thread_ts: Optional parent message timestamp for threading
            **kwargs: Additional arguments passed to chat.postMessage

        Returns:
            OperationResult with the Slack response data (including 'ts')
        """
        log = self._log.bind(channel=channel, has_blocks=blocks is not None)

        try:
            response = self._client.chat_postMessage(
                channel=channel, text=text, blocks=blocks, thread_ts=thread_ts, **kwargs
            )
        except SlackApiError as e:
            error = e.response.get("error", "unknown_error")
            log.warning(
                "slack_api_error",
                error=error,
                status_code=e.response.status_code,
            )
            if e.response.status_code in RETRYABLE_STATUS_CODES:
                retry_after = int(e.response.headers.get("Retry-After", 60))
                return OperationResult.transient_error(
                    message=f"Slack API transient error: {error}",
                    error_code=_error_code(error),
                    retry_after=retry_after,
                )
            return OperationResult.permanent_error(
                message=f"Slack API error: {error}",
                error_code=_error_code(error),
            )
        except Exception as e:  # pylint: disable=broad-except
            log.exception("slack_client_error", error=str(e))
            return OperationResult.permanent_error(
                message=f"Unexpected error posting message: {str(e)}",
                error_code="SLACK_CLIENT_ERROR",
            )

        if not response.get("ok"):
            error = response.get("error", "unknown_error")
            log.warning("slack_message_failed", error=error)
            return OperationResult.permanent_error(
                message=f"Slack API error: {error}",
                error_code=_error_code(error),
            )

        log.debug("slack_message_posted", ts=response.get("ts"))
        return OperationResult.success(
            data=response.data, message="Message posted successfully"
        )
