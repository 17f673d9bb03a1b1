"""
buildgate - fail-fast build verification pipeline.

Runs an ordered list of verification steps (lint, build, test,
format-check) against a checked-out working tree:
- Strictly sequential, first failure halts everything after it
- Logical failures kept apart from infrastructure failures
- Explicit environment bindings instead of ambient globals
- Golden-file snapshot testing for compiler-style tools
- YAML pipeline files with schema validation
"""

__version__ = "0.1.0"

from buildgate.catalogue import default_steps, select_steps
from buildgate.config import PipelineConfig, load_config
from buildgate.error_codes import ErrorCode, classify_error
from buildgate.errors import (
    BuildgateError,
    ConfigurationError,
    InfrastructureFailure,
    LogicalStepFailure,
    StepError,
    StepTimeoutError,
)
from buildgate.models import (
    FailureKind,
    Invocation,
    PipelineResult,
    Step,
    StepResult,
    StepStatus,
    WorkingTree,
)
from buildgate.provisioning import Binding, Package, ProvisioningDescriptor, default_descriptor
from buildgate.runner import PipelineRunner, RunnerState, RunPhase, run_pipeline
from buildgate.steps import (
    CommandExecutor,
    ExecutionContext,
    ExecutorRegistry,
    GoldenExecutor,
    StepExecutor,
)
from buildgate.triggers import Trigger, should_run

__all__ = [
    # Core models
    "FailureKind",
    "Invocation",
    "PipelineResult",
    "Step",
    "StepResult",
    "StepStatus",
    "WorkingTree",
    # Runner
    "PipelineRunner",
    "RunPhase",
    "RunnerState",
    "run_pipeline",
    # Executors
    "CommandExecutor",
    "ExecutionContext",
    "ExecutorRegistry",
    "GoldenExecutor",
    "StepExecutor",
    # Configuration
    "Binding",
    "Package",
    "PipelineConfig",
    "ProvisioningDescriptor",
    "Trigger",
    "default_descriptor",
    "default_steps",
    "load_config",
    "select_steps",
    "should_run",
    # Errors
    "BuildgateError",
    "ConfigurationError",
    "ErrorCode",
    "InfrastructureFailure",
    "LogicalStepFailure",
    "StepError",
    "StepTimeoutError",
    "classify_error",
]
