"""Step-level errors.

Executors raise these; the runner turns them into failed StepResults.
"""

from __future__ import annotations

from buildgate.error_codes import ErrorCode
from buildgate.errors.base import BuildgateError


class StepError(BuildgateError):
    """A step did not succeed.

    Carries the step name, whatever output was captured before the failure,
    and the process return code when the tool actually ran.
    """

    code: int = 200
    default_error_code = ErrorCode.STEP_FAILED

    def __init__(
        self,
        message: str,
        *,
        code: int | None = None,
        cause: BaseException | None = None,
        error_code: ErrorCode | None = None,
        step_name: str | None = None,
        output: str = "",
        returncode: int | None = None,
    ) -> None:
        super().__init__(message, code=code, cause=cause, error_code=error_code)
        self.step_name = step_name
        self.output = output
        self.returncode = returncode


class LogicalStepFailure(StepError):
    """The tool ran and reported a negative result.

    Lint diagnostics, compile errors, test failures, formatting drift.
    """

    code: int = 201


class StepTimeoutError(LogicalStepFailure):
    """The tool ran past its timeout and was killed."""

    code: int = 202
    default_error_code = ErrorCode.STEP_TIMEOUT

    def __init__(
        self,
        message: str,
        *,
        timeout: float | None = None,
        cause: BaseException | None = None,
        step_name: str | None = None,
        output: str = "",
    ) -> None:
        super().__init__(message, cause=cause, step_name=step_name, output=output)
        self.timeout = timeout


class InfrastructureFailure(StepError):
    """The tool could not run at all.

    Missing executable, unresolved environment binding, missing toolchain
    package, unusable working directory. Higher severity than a logical
    failure.
    """

    code: int = 300
    default_error_code = ErrorCode.SYSTEM_ERROR
