"""Step executors."""

from buildgate.steps.command import CommandExecutor
from buildgate.steps.golden import GoldenExecutor
from buildgate.steps.interface import ExecutionContext, PreparedCommand, StepExecutor
from buildgate.steps.registry import ExecutorRegistry

__all__ = [
    "CommandExecutor",
    "ExecutionContext",
    "ExecutorRegistry",
    "GoldenExecutor",
    "PreparedCommand",
    "StepExecutor",
]
