"""buildgate error hierarchy.

Import from ``buildgate.errors``.
"""

from buildgate.errors.base import BuildgateBaseException, BuildgateError
from buildgate.errors.permanent import ConfigurationError
from buildgate.errors.step import (
    InfrastructureFailure,
    LogicalStepFailure,
    StepError,
    StepTimeoutError,
)
from buildgate.errors.utils import is_infrastructure, truncate_error, truncate_output

__all__ = [
    "BuildgateBaseException",
    "BuildgateError",
    "ConfigurationError",
    "InfrastructureFailure",
    "LogicalStepFailure",
    "StepError",
    "StepTimeoutError",
    "is_infrastructure",
    "truncate_error",
    "truncate_output",
]
