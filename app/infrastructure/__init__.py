"""Infrastructure modules for the Budget Bot application.

Centralized infrastructure components:
- conversations: Interaction chain engine (registry, router, chain runs)
- operations: Operation results returned by integrations
"""

# Operations
from infrastructure.operations.result import OperationResult
from infrastructure.operations.status import OperationStatus

__all__ = [
    # Operations
    "OperationResult",
    "OperationStatus",
]
