"""
StepStatus and FailureKind enums.

StepStatus is the final state of a declared step, or of a whole pipeline
run. Where the runner currently is lives in RunnerState, not here.
Each status carries a halt flag: whether downstream steps must be blocked.
"""

from enum import Enum


class StepStatus(Enum):
    """
    Step and pipeline status enum.

    Each value is a tuple of (name, halt).
    """

    # The step executed successfully and the pipeline may proceed
    SUCCEEDED = ("SUCCEEDED", False)

    # The step failed - nothing after it runs
    FAILED = ("FAILED", True)

    # The step never ran because an earlier step failed
    SKIPPED = ("SKIPPED", False)

    def __init__(self, label: str, halt: bool) -> None:
        self._label = label
        self._halt = halt

    @property
    def is_halt(self) -> bool:
        """Indicates an abnormal completion - nothing downstream should run."""
        return self._halt

    @property
    def is_successful(self) -> bool:
        return self == StepStatus.SUCCEEDED

    def __str__(self) -> str:
        return self._label

    def __repr__(self) -> str:
        return f"StepStatus.{self.name}"


class FailureKind(Enum):
    """Why a step failed."""

    # The tool ran and reported a negative result
    LOGICAL = "logical"

    # The tool could not run at all
    INFRASTRUCTURE = "infrastructure"

    @property
    def exit_code(self) -> int:
        """Process exit code the CLI uses for this kind of failure."""
        return 2 if self is FailureKind.INFRASTRUCTURE else 1

    def __str__(self) -> str:
        return self.value
