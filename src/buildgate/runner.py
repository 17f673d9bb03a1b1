"""
PipelineRunner - fail-fast, strictly sequential step execution.

The runner walks a linear cursor over the step list:

    NotStarted -> Running(0) -> ... -> Running(i) -> Completed(result)

Each step runs only after its predecessor succeeded. The first failure ends
the run; every later step is reported as skipped and never executes. There
are no retries.

The runner never consults the process environment. Whatever the steps need
arrives through the explicit environment mapping, so a run is a function of
(WorkingTree, steps, environment) and of what the tools themselves do.
"""

from __future__ import annotations

import dataclasses
import logging
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import TextIO

import ulid

from buildgate.errors import StepError, truncate_output
from buildgate.models.result import PipelineResult, StepResult
from buildgate.models.step import Step, validate_steps
from buildgate.models.tree import WorkingTree
from buildgate.steps.interface import ExecutionContext, StepExecutor
from buildgate.steps.registry import ExecutorRegistry
from buildgate.tracing import mark_failed, trace_pipeline, trace_step

logger = logging.getLogger(__name__)


class RunPhase(Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMPLETED = "completed"


@dataclass(frozen=True)
class RunnerState:
    """
    Where the runner is.

    Attributes:
        phase: NOT_STARTED, RUNNING or COMPLETED
        cursor: Index of the running step (RUNNING only)
        result: The final result (COMPLETED only)
    """

    phase: RunPhase
    cursor: int | None = None
    result: PipelineResult | None = None


NOT_STARTED = RunnerState(RunPhase.NOT_STARTED)


class PipelineRunner:
    """
    Executes an ordered list of steps against one working tree.

    Example:
        runner = PipelineRunner(environment={"PATH": "/usr/bin"})
        result = runner.run(WorkingTree.from_path("."), default_steps())
        if not result.succeeded:
            print(result.failed_step)
    """

    def __init__(
        self,
        registry: ExecutorRegistry | None = None,
        environment: Mapping[str, str] | None = None,
        output_log: TextIO | None = None,
    ) -> None:
        self.registry = registry or ExecutorRegistry.default()
        self.environment: dict[str, str] = dict(environment or {})
        self.output_log = output_log
        self._state = NOT_STARTED

    @property
    def state(self) -> RunnerState:
        return self._state

    def run(
        self,
        tree: WorkingTree,
        steps: Sequence[Step],
        environment: Mapping[str, str] | None = None,
    ) -> PipelineResult:
        """
        Run every step in order, stopping at the first failure.

        Args:
            tree: The working tree to run against
            steps: Non-empty list of uniquely named steps
            environment: Overrides the runner's environment mapping for this run

        Returns:
            The PipelineResult

        Raises:
            ConfigurationError: If the step list is empty, has duplicate
                names, uses an unknown step kind or options its executor
                rejects. Nothing runs in that case.
        """
        steps = list(steps)
        validate_steps(steps)
        executors = self.registry.resolve(steps)

        context = ExecutionContext(
            tree=tree,
            environment=dict(self.environment if environment is None else environment),
        )
        run_id = str(ulid.new())
        self._state = NOT_STARTED

        logger.info("Pipeline %s starting: %d step(s) against %s", run_id, len(steps), tree)
        started = time.monotonic()
        results: list[StepResult] = []
        skipped: list[str] = []

        with trace_pipeline(run_id, str(tree), len(steps)) as span:
            for index, (step, executor) in enumerate(zip(steps, executors)):
                self._state = RunnerState(RunPhase.RUNNING, cursor=index)
                result = self._run_step(run_id, step, executor, context)
                results.append(result)

                if result.status.is_halt:
                    skipped = [s.name for s in steps[index + 1 :]]
                    mark_failed(span, f"step {step.name} failed")
                    break

        pipeline_result = PipelineResult(
            run_id=run_id,
            step_results=tuple(results),
            skipped=tuple(skipped),
            duration=time.monotonic() - started,
            metadata={"tree": str(tree)},
        )
        self._state = RunnerState(RunPhase.COMPLETED, result=pipeline_result)

        if pipeline_result.succeeded:
            logger.info("Pipeline %s succeeded in %.1fs", run_id, pipeline_result.duration)
        else:
            logger.error(
                "Pipeline %s failed at step '%s'; skipped: %s",
                run_id,
                pipeline_result.failed_step,
                ", ".join(skipped) or "none",
            )
        return pipeline_result

    def _run_step(
        self,
        run_id: str,
        step: Step,
        executor: StepExecutor,
        context: ExecutionContext,
    ) -> StepResult:
        logger.info("Step '%s' starting: %s", step.name, step.invocation.display())
        started = time.monotonic()

        with trace_step(run_id, step.name, step.kind) as span:
            try:
                result = executor.execute(step, context)
            except StepError as e:
                result = StepResult.failure(step.name, e)
                mark_failed(span, str(result.error_code))
            if result.returncode is not None:
                span.set_attribute("step.returncode", result.returncode)

        # the log gets everything, the stored result only the tail
        self._emit(step, result.output)
        result = dataclasses.replace(
            result,
            output=truncate_output(result.output),
            duration=time.monotonic() - started,
        )

        if result.succeeded:
            logger.info("Step '%s' succeeded in %.1fs", step.name, result.duration)
        else:
            logger.error(
                "Step '%s' failed (%s, %s): %s",
                step.name,
                result.failure_kind,
                result.error_code,
                result.error,
            )
        return result

    def _emit(self, step: Step, output: str) -> None:
        """Copy a step's captured output to the shared output log."""
        if self.output_log is None or not output:
            return
        self.output_log.write(f"::group::{step.name}\n")
        self.output_log.write(output if output.endswith("\n") else output + "\n")
        self.output_log.write("::endgroup::\n")
        self.output_log.flush()


def run_pipeline(
    tree: WorkingTree,
    steps: Sequence[Step],
    environment: Mapping[str, str] | None = None,
    output_log: TextIO | None = None,
) -> PipelineResult:
    """Run steps with a default-configured PipelineRunner."""
    return PipelineRunner(environment=environment, output_log=output_log).run(tree, steps)
