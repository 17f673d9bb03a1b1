"""Base exception hierarchy for buildgate.

Two-tier exception hierarchy:

1. BuildgateBaseException - Base for all errors
2. BuildgateError - Standard errors that the runner and CLI handle
"""

from __future__ import annotations

from buildgate.error_codes import ErrorCode


class BuildgateBaseException(Exception):  # noqa: N818 - intentional base exception name
    """Base exception for all buildgate errors.

    Attributes:
        code: Numeric error code, also used to order severities
        error_code: Semantic ErrorCode for categorization
        cause: Optional original exception that caused this error
    """

    code: int = 0
    default_error_code: ErrorCode = ErrorCode.UNKNOWN

    def __init__(
        self,
        message: str,
        *,
        code: int | None = None,
        cause: BaseException | None = None,
        error_code: ErrorCode | None = None,
    ) -> None:
        super().__init__(message)
        if code is not None:
            self.code = code
        self.cause = cause
        self._error_code = error_code

    @property
    def message(self) -> str:
        return super().__str__()

    @property
    def error_code(self) -> ErrorCode:
        """Get the semantic error code for this exception."""
        if self._error_code is not None:
            return self._error_code
        return self.default_error_code

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.cause:
            parts.append(f"caused by: {self.cause}")
        return " ".join(parts)


class BuildgateError(BuildgateBaseException):
    """Standard buildgate error. All normal errors inherit from this."""

    code: int = 100
    default_error_code = ErrorCode.SYSTEM_ERROR
