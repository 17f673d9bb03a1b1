"""
Default step catalogue.

The fixed-order verification steps for a native-toolchain project that
links against LLVM 14: lint, build, test, format-check. Used whenever the
pipeline file declares no steps of its own.
"""

from __future__ import annotations

from buildgate.errors import ConfigurationError
from buildgate.models.step import Step

LLVM_PREFIX_BINDING = "LLVM_SYS_140_PREFIX"

# Names in execution order
STEP_ORDER = ("lint", "build", "test", "format-check")


def default_steps() -> list[Step]:
    """
    The catalogue, in execution order.

    1. lint - static analysis over the whole tree with all features enabled;
       any error-severity diagnostic makes clippy exit non-zero
    2. build - optimized build with all features enabled
    3. test - the project's own test harness
    4. format-check - verify formatting without rewriting files
    """
    return [
        Step.command(
            "lint",
            ["cargo", "clippy", "--release", "--all-features"],
            required_env=[LLVM_PREFIX_BINDING],
        ),
        Step.command(
            "build",
            ["cargo", "build", "--release", "--all-features"],
            required_env=[LLVM_PREFIX_BINDING],
        ),
        Step.command(
            "test",
            ["cargo", "xtask", "test"],
            required_env=[LLVM_PREFIX_BINDING],
        ),
        Step.command("format-check", ["cargo", "fmt", "--check"]),
    ]


def select_steps(steps: list[Step], names: list[str] | None) -> list[Step]:
    """
    Keep only the named steps, preserving declaration order.

    Raises:
        ConfigurationError: If a name does not match any step
    """
    if not names:
        return list(steps)

    known = {step.name for step in steps}
    unknown = [name for name in names if name not in known]
    if unknown:
        raise ConfigurationError(f"Unknown step(s): {', '.join(unknown)}")

    wanted = set(names)
    return [step for step in steps if step.name in wanted]
