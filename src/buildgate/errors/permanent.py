"""Configuration errors."""

from __future__ import annotations

from buildgate.error_codes import ErrorCode
from buildgate.errors.base import BuildgateError


class ConfigurationError(BuildgateError):
    """Invalid configuration.

    Raised before any step runs: malformed pipeline file, empty or
    duplicated step list, bad working tree, unknown trigger.
    """

    code: int = 104
    default_error_code = ErrorCode.CONFIGURATION_INVALID

    def __init__(
        self,
        message: str,
        *,
        errors: list[str] | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, cause=cause)
        self.errors = errors or []
