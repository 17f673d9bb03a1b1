"""
Step executor interface.

An executor knows how to carry out one kind of step. The runner hands it a
Step plus the ExecutionContext of the run; the executor either returns a
successful StepResult or raises a StepError subclass describing why the
step failed.
"""

from __future__ import annotations

import logging
import os
import shutil
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from buildgate.error_codes import ErrorCode
from buildgate.errors import InfrastructureFailure
from buildgate.models.result import StepResult
from buildgate.models.step import Step
from buildgate.models.tree import WorkingTree

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExecutionContext:
    """
    Everything a step may read besides its own declaration.

    Attributes:
        tree: The working tree the run operates on
        environment: The complete environment mapping for subprocesses.
            Nothing is read from the runner's own process environment.
    """

    tree: WorkingTree
    environment: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class PreparedCommand:
    """A step invocation with everything resolved against the context."""

    argv: list[str]
    cwd: Path
    env: dict[str, str]
    timeout: float | None


class StepExecutor(ABC):
    """
    Base interface for step executors.

    Example:
        class EchoExecutor(StepExecutor):
            def execute(self, step, context):
                command = self.prepare(step, context)
                return StepResult.success(step.name, output=" ".join(command.argv))
    """

    @abstractmethod
    def execute(self, step: Step, context: ExecutionContext) -> StepResult:
        """
        Execute the step.

        Args:
            step: The step to run
            context: The run's tree and environment

        Returns:
            A successful StepResult

        Raises:
            LogicalStepFailure: The tool ran and reported a negative result
            InfrastructureFailure: The tool could not run at all
        """

    def validate(self, step: Step) -> None:
        """
        Check executor-specific options before the pipeline starts.

        Raises:
            ConfigurationError: If this executor cannot run the step as declared
        """

    def prepare(self, step: Step, context: ExecutionContext) -> PreparedCommand:
        """
        Resolve a step's invocation against the run context.

        Checks required bindings first, then the working directory, then the
        executable, so the reported reason is the most fundamental one.

        Raises:
            InfrastructureFailure: If anything needed to start the tool is missing
        """
        invocation = step.invocation
        env = dict(context.environment)
        env.update(invocation.env)

        missing = [name for name in invocation.required_env if not env.get(name)]
        if missing:
            raise InfrastructureFailure(
                f"Step '{step.name}' requires unset environment binding(s): {', '.join(missing)}",
                error_code=ErrorCode.MISSING_BINDING,
                step_name=step.name,
            )

        cwd = context.tree.resolve(invocation.cwd)
        if not cwd.is_dir():
            raise InfrastructureFailure(
                f"Step '{step.name}' working directory {cwd} does not exist",
                error_code=ErrorCode.WORKDIR_INVALID,
                step_name=step.name,
            )

        executable = resolve_executable(invocation.executable, context.tree, env)
        if executable is None:
            raise InfrastructureFailure(
                f"Step '{step.name}' executable '{invocation.executable}' not found",
                error_code=ErrorCode.EXECUTABLE_NOT_FOUND,
                step_name=step.name,
            )

        return PreparedCommand(
            argv=[executable, *invocation.argv[1:]],
            cwd=cwd,
            env=env,
            timeout=invocation.timeout,
        )


def resolve_executable(name: str, tree: WorkingTree, env: Mapping[str, str]) -> str | None:
    """
    Find an executable the way a shell would, but using the run's PATH.

    Names containing a path separator are taken relative to the tree root.
    """
    if os.sep in name or (os.altsep and os.altsep in name):
        candidate = tree.resolve(name)
        if candidate.is_file() and os.access(candidate, os.X_OK):
            return str(candidate)
        return None

    found = shutil.which(name, path=env.get("PATH", ""))
    logger.debug("Resolved %s -> %s", name, found)
    return found
