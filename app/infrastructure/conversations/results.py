"""Step outcomes.

Step callbacks may return ``None`` or ``True`` (continue), ``False`` (abort)
or a StepResult. StepResult.coerce() turns any of these into a StepResult.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class StepStatus(str, Enum):
    """What the chain does after a step callback returned.

    Attributes:
        CONTINUE: Activate the next step, or finish if this was the last one.
        ABORT: Stop the chain and render the terminal state.
        FAIL: Send the failure reason, then stop like ABORT.
    """

    CONTINUE = "continue"
    ABORT = "abort"
    FAIL = "fail"


@dataclass(frozen=True)
class StepResult:
    """Tagged outcome of a step callback."""

    status: StepStatus
    reason: Optional[str] = None

    @classmethod
    def proceed(cls) -> "StepResult":
        return cls(status=StepStatus.CONTINUE)

    @classmethod
    def abort(cls) -> "StepResult":
        return cls(status=StepStatus.ABORT)

    @classmethod
    def fail(cls, reason: str) -> "StepResult":
        """Stop the chain after telling the user ``reason``."""
        return cls(status=StepStatus.FAIL, reason=reason)

    @property
    def is_continue(self) -> bool:
        return self.status == StepStatus.CONTINUE

    @classmethod
    def coerce(cls, outcome: Any) -> "StepResult":
        """Normalize a callback return value.

        Args:
            outcome: None, a bool, or a StepResult.

        Returns:
            The equivalent StepResult.

        Raises:
            TypeError: If the callback returned anything else.
        """
        if isinstance(outcome, StepResult):
            return outcome
        if outcome is None or outcome is True:
            return cls.proceed()
        if outcome is False:
            return cls.abort()
        raise TypeError(
            f"Step callbacks must return None, a bool or a StepResult, "
            f"got {type(outcome).__name__}"
        )
