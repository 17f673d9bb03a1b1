"""Data models for pipeline runs."""

from buildgate.models.result import PipelineResult, StepResult
from buildgate.models.status import FailureKind, StepStatus
from buildgate.models.step import Invocation, Step, validate_steps
from buildgate.models.tree import WorkingTree

__all__ = [
    "FailureKind",
    "Invocation",
    "PipelineResult",
    "Step",
    "StepResult",
    "StepStatus",
    "WorkingTree",
    "validate_steps",
]
