"""
CommandExecutor - run a step's invocation as a single subprocess.

Used for lint, build and format-check: the tool's exit status is the verdict.
"""

from __future__ import annotations

import logging
import signal
import subprocess

from buildgate.error_codes import ErrorCode, classify_error
from buildgate.errors import InfrastructureFailure, LogicalStepFailure, StepTimeoutError
from buildgate.models.result import StepResult
from buildgate.models.step import Step
from buildgate.steps.interface import ExecutionContext, PreparedCommand, StepExecutor

logger = logging.getLogger(__name__)


class CommandExecutor(StepExecutor):
    """
    Execute a command with stdout and stderr merged into one captured log.

    Outcome:
        exit 0            -> success
        exit != 0         -> LogicalStepFailure (STEP_FAILED)
        killed by signal  -> LogicalStepFailure (STEP_SIGNALED)
        timeout           -> StepTimeoutError (STEP_TIMEOUT)
        cannot start      -> InfrastructureFailure
    """

    def execute(self, step: Step, context: ExecutionContext) -> StepResult:
        command = self.prepare(step, context)
        logger.debug("CommandExecutor executing: %s (cwd=%s)", " ".join(command.argv), command.cwd)

        completed = run_process(step, command, merge_stderr=True)
        output = completed.stdout or ""

        check_returncode(step, completed.returncode, output)
        return StepResult.success(step.name, output=output, returncode=completed.returncode)


def run_process(
    step: Step,
    command: PreparedCommand,
    *,
    merge_stderr: bool,
    extra_args: list[str] | None = None,
) -> subprocess.CompletedProcess[str]:
    """
    Run a prepared command, translating launch errors and timeouts.

    Raises:
        StepTimeoutError: If the process outlives the step's timeout
        InfrastructureFailure: If the process cannot be started
    """
    argv = command.argv + (extra_args or [])
    try:
        return subprocess.run(
            argv,
            cwd=command.cwd,
            env=command.env,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT if merge_stderr else subprocess.PIPE,
            text=True,
            errors="replace",
            timeout=command.timeout,
        )
    except subprocess.TimeoutExpired as e:
        raise StepTimeoutError(
            f"Step '{step.name}' timed out after {command.timeout}s",
            timeout=command.timeout,
            step_name=step.name,
            output=_as_text(e.output),
            cause=e,
        ) from e
    except OSError as e:
        raise InfrastructureFailure(
            f"Step '{step.name}' could not start {argv[0]}: {e}",
            error_code=classify_error(e),
            step_name=step.name,
            cause=e,
        ) from e


def check_returncode(step: Step, returncode: int, output: str) -> None:
    """Raise a LogicalStepFailure unless returncode is 0."""
    if returncode == 0:
        return

    if returncode < 0:
        try:
            signame = signal.Signals(-returncode).name
        except ValueError:
            signame = f"signal {-returncode}"
        raise LogicalStepFailure(
            f"Step '{step.name}' was killed by {signame}",
            error_code=ErrorCode.STEP_SIGNALED,
            step_name=step.name,
            output=output,
            returncode=returncode,
        )

    raise LogicalStepFailure(
        f"Step '{step.name}' failed with exit code {returncode}",
        error_code=ErrorCode.STEP_FAILED,
        step_name=step.name,
        output=output,
        returncode=returncode,
    )


def _as_text(data: str | bytes | None) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data
