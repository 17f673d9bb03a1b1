"""
Structured error codes for buildgate.

Every step failure carries an ErrorCode so callers (status checks, log
scrapers, the CLI exit code) can tell a lint diagnostic from a missing
compiler without parsing messages.

Usage:
    from buildgate.error_codes import ErrorCode, classify_error

    try:
        executor.execute(step, context)
    except Exception as e:
        if classify_error(e).is_infrastructure:
            ...
"""

from __future__ import annotations

from enum import Enum


class ErrorCode(Enum):
    """Semantic error codes for categorizing step and pipeline failures.

    Each value is a tuple of (name, infrastructure). Infrastructure codes mean
    the tool never got to run; the rest mean it ran and said no.
    """

    # General errors
    UNKNOWN = ("UNKNOWN", False)
    SYSTEM_ERROR = ("SYSTEM_ERROR", True)

    # The tool ran and reported a negative result
    STEP_FAILED = ("STEP_FAILED", False)
    STEP_SIGNALED = ("STEP_SIGNALED", False)
    STEP_TIMEOUT = ("STEP_TIMEOUT", False)
    GOLDEN_MISMATCH = ("GOLDEN_MISMATCH", False)

    # The tool could not run at all
    EXECUTABLE_NOT_FOUND = ("EXECUTABLE_NOT_FOUND", True)
    MISSING_BINDING = ("MISSING_BINDING", True)
    TOOLCHAIN_MISSING = ("TOOLCHAIN_MISSING", True)
    WORKDIR_INVALID = ("WORKDIR_INVALID", True)

    # Configuration errors
    CONFIGURATION_INVALID = ("CONFIGURATION_INVALID", True)

    def __init__(self, label: str, infrastructure: bool) -> None:
        self._label = label
        self._infrastructure = infrastructure

    @property
    def is_infrastructure(self) -> bool:
        """True when the failure means the tool could not be started."""
        return self._infrastructure

    def __str__(self) -> str:
        return self._label


def error_chain(error: BaseException) -> list[BaseException]:
    """Traverse __cause__ chain, return list from root to leaf.

    Args:
        error: The exception to traverse

    Returns:
        List of exceptions from root cause to the provided exception.
    """
    chain: list[BaseException] = []
    current: BaseException | None = error

    while current is not None:
        chain.append(current)
        cause = current.__cause__
        if cause is current or cause in chain:
            break
        current = cause

    chain.reverse()
    return chain


def find_in_chain(error: BaseException, error_type: type) -> BaseException | None:
    """Find first error of given type in cause chain, root first."""
    for exc in error_chain(error):
        if isinstance(exc, error_type):
            return exc
    return None


def classify_error(error: BaseException) -> ErrorCode:
    """Map any exception to an ErrorCode.

    Uses the explicit ``error_code`` of buildgate exceptions anywhere in the
    cause chain first, then falls back to the stdlib exception types that
    subprocess launching is known to raise.
    """
    if hasattr(error, "error_code"):
        return error.error_code  # type: ignore[no-any-return]

    for exc in reversed(error_chain(error)):
        if hasattr(exc, "error_code"):
            return exc.error_code  # type: ignore[no-any-return]

    if isinstance(error, NotADirectoryError):
        return ErrorCode.WORKDIR_INVALID
    if isinstance(error, (FileNotFoundError, PermissionError)):
        return ErrorCode.EXECUTABLE_NOT_FOUND
    if isinstance(error, TimeoutError):
        return ErrorCode.STEP_TIMEOUT
    if isinstance(error, OSError):
        return ErrorCode.SYSTEM_ERROR

    return ErrorCode.UNKNOWN
