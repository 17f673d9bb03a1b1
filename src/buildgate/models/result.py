"""
StepResult and PipelineResult.

StepResult is created once a step finishes and never changes afterwards.
PipelineResult aggregates the results of every step that ran, in order,
and names the first failing step.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from buildgate.error_codes import ErrorCode
from buildgate.errors import StepError, is_infrastructure, truncate_error
from buildgate.models.status import FailureKind, StepStatus


@dataclass(frozen=True)
class StepResult:
    """
    Outcome of one step.

    Attributes:
        name: The step's name
        status: SUCCEEDED or FAILED
        output: Captured output of the tool (the runner keeps the last 100 KB)
        returncode: Process exit status, None when the tool never started
        failure_kind: LOGICAL or INFRASTRUCTURE for failed steps
        error_code: Semantic reason for failed steps
        error: Human-readable failure message
        duration: Wall-clock seconds spent on the step
    """

    name: str
    status: StepStatus
    output: str = ""
    returncode: int | None = None
    failure_kind: FailureKind | None = None
    error_code: ErrorCode | None = None
    error: str | None = None
    duration: float = 0.0

    # ========== Factory Methods ==========

    @classmethod
    def success(
        cls,
        name: str,
        output: str = "",
        returncode: int | None = 0,
        duration: float = 0.0,
    ) -> StepResult:
        """Create a successful result."""
        return cls(
            name=name,
            status=StepStatus.SUCCEEDED,
            output=output,
            returncode=returncode,
            duration=duration,
        )

    @classmethod
    def failure(cls, name: str, error: StepError, duration: float = 0.0) -> StepResult:
        """
        Create a failed result from the error an executor raised.

        The failure kind is derived from the error: anything that means the
        tool could not start is INFRASTRUCTURE, everything else LOGICAL.
        """
        kind = FailureKind.INFRASTRUCTURE if is_infrastructure(error) else FailureKind.LOGICAL
        return cls(
            name=name,
            status=StepStatus.FAILED,
            output=error.output,
            returncode=error.returncode,
            failure_kind=kind,
            error_code=error.error_code,
            error=truncate_error(error.message),
            duration=duration,
        )

    @property
    def succeeded(self) -> bool:
        return self.status.is_successful

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "status": str(self.status),
            "returncode": self.returncode,
            "failure_kind": str(self.failure_kind) if self.failure_kind else None,
            "error_code": str(self.error_code) if self.error_code else None,
            "error": self.error,
            "duration": round(self.duration, 3),
        }


@dataclass(frozen=True)
class PipelineResult:
    """
    Aggregation of all step results of one pipeline run.

    ``status`` is SUCCEEDED only if every declared step ran and succeeded.
    Otherwise it is FAILED and ``failed_step`` names the first failure;
    steps after it are listed in ``skipped`` and have no StepResult.
    """

    run_id: str
    step_results: tuple[StepResult, ...] = ()
    skipped: tuple[str, ...] = ()
    duration: float = 0.0
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def status(self) -> StepStatus:
        if any(r.status is StepStatus.FAILED for r in self.step_results):
            return StepStatus.FAILED
        return StepStatus.SUCCEEDED

    @property
    def succeeded(self) -> bool:
        return self.status is StepStatus.SUCCEEDED

    @property
    def failure(self) -> StepResult | None:
        """The first failing step's result, if any."""
        for result in self.step_results:
            if result.status is StepStatus.FAILED:
                return result
        return None

    @property
    def failed_step(self) -> str | None:
        failure = self.failure
        return failure.name if failure else None

    @property
    def executed(self) -> list[str]:
        """Names of the steps that ran, in order."""
        return [r.name for r in self.step_results]

    @property
    def exit_code(self) -> int:
        """0 on success, 1 for a logical failure, 2 for infrastructure."""
        failure = self.failure
        if failure is None:
            return 0
        assert failure.failure_kind is not None
        return failure.failure_kind.exit_code

    def get(self, name: str) -> StepResult | None:
        for result in self.step_results:
            if result.name == name:
                return result
        return None

    def status_of(self, name: str) -> StepStatus | None:
        """Final status of a declared step; SKIPPED for steps that never ran."""
        result = self.get(name)
        if result is not None:
            return result.status
        if name in self.skipped:
            return StepStatus.SKIPPED
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "status": str(self.status),
            "failed_step": self.failed_step,
            "exit_code": self.exit_code,
            "steps": [r.to_dict() for r in self.step_results],
            "skipped": list(self.skipped),
            "duration": round(self.duration, 3),
            **self.metadata,
        }
