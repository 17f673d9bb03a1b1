"""Shared pytest fixtures for pipeline tests."""

import os
import sys
from collections.abc import Iterable
from pathlib import Path

import pytest

from buildgate.errors import LogicalStepFailure
from buildgate.models.result import StepResult
from buildgate.models.step import Step
from buildgate.models.tree import WorkingTree
from buildgate.steps.interface import ExecutionContext, StepExecutor
from buildgate.steps.registry import ExecutorRegistry

# =============================================================================
# Shared Test Executor
# =============================================================================


class RecordingExecutor(StepExecutor):
    """Records every step it executes; fails the ones it was told to."""

    def __init__(self, failing: Iterable[str] = ()) -> None:
        self.calls: list[str] = []
        self.failing = set(failing)

    def execute(self, step: Step, context: ExecutionContext) -> StepResult:
        self.calls.append(step.name)
        if step.name in self.failing:
            raise LogicalStepFailure(
                f"{step.name} failed",
                step_name=step.name,
                output=f"{step.name} output",
                returncode=1,
            )
        return StepResult.success(step.name, output=f"{step.name} ok")


def python_step(name: str, code: str, **kwargs) -> Step:
    """A command step that runs a Python snippet with the test interpreter."""
    return Step.command(name, [sys.executable, "-c", code], **kwargs)


def catalogue_names() -> list[str]:
    return ["lint", "build", "test", "format-check"]


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def tree(tmp_path: Path) -> WorkingTree:
    """An empty working tree in a temporary directory."""
    root = tmp_path / "tree"
    root.mkdir()
    return WorkingTree.from_path(root)


@pytest.fixture
def environment() -> dict[str, str]:
    """A minimal explicit environment: just enough PATH to find tools."""
    return {"PATH": os.environ.get("PATH", os.defpath)}


@pytest.fixture
def recorder() -> RecordingExecutor:
    return RecordingExecutor()


@pytest.fixture
def recording_registry(recorder: RecordingExecutor) -> ExecutorRegistry:
    """A registry whose ``command`` kind is the recorder."""
    registry = ExecutorRegistry()
    registry.register("command", recorder)
    return registry
