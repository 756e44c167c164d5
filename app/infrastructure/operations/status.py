"""Delivery and I/O outcome status enumeration."""

from enum import Enum


class OperationStatus(Enum):
    """Status codes for operation results.

    Attributes:
        SUCCESS: Operation completed successfully
        TRANSIENT_ERROR: Retryable failure (rate limit, 5xx, network)
        PERMANENT_ERROR: Non-retryable failure (bad channel, auth, payload)
    """

    SUCCESS = "success"
    TRANSIENT_ERROR = "transient_error"
    PERMANENT_ERROR = "permanent_error"
