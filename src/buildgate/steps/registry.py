"""
Executor registry for resolving step kinds to executors.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from buildgate.errors import ConfigurationError
from buildgate.models.step import Step
from buildgate.steps.command import CommandExecutor
from buildgate.steps.golden import GoldenExecutor
from buildgate.steps.interface import StepExecutor

logger = logging.getLogger(__name__)

# An executor may be registered as a class (instantiated on registration)
# or as a ready instance.
ExecutorImplementation = type[StepExecutor] | StepExecutor


class ExecutorRegistry:
    """
    Registry of step executors keyed by step kind.

    Example:
        registry = ExecutorRegistry.default()
        registry.register("docker", DockerExecutor)
        executor = registry.get(step.kind)
    """

    def __init__(self) -> None:
        self._executors: dict[str, StepExecutor] = {}

    @classmethod
    def default(cls) -> ExecutorRegistry:
        """A registry with the built-in ``command`` and ``golden`` kinds."""
        registry = cls()
        registry.register("command", CommandExecutor)
        registry.register("golden", GoldenExecutor)
        return registry

    def register(self, kind: str, executor: ExecutorImplementation) -> None:
        if kind in self._executors:
            logger.warning("Overwriting existing executor registration: %s", kind)
        self._executors[kind] = executor() if isinstance(executor, type) else executor
        logger.debug("Registered executor: %s", kind)

    def get(self, kind: str) -> StepExecutor:
        """
        Resolve an executor.

        Raises:
            ConfigurationError: If no executor is registered for the kind
        """
        try:
            return self._executors[kind]
        except KeyError:
            raise ConfigurationError(
                f"No executor for step kind '{kind}'. Known kinds: {', '.join(self.kinds())}"
            ) from None

    def has(self, kind: str) -> bool:
        return kind in self._executors

    def kinds(self) -> list[str]:
        return sorted(self._executors)

    def resolve(self, steps: Iterable[Step]) -> list[StepExecutor]:
        """
        Executors for every step, in order, with each step's options checked.

        Raises:
            ConfigurationError: On an unknown kind or options the executor rejects
        """
        executors: list[StepExecutor] = []
        for step in steps:
            executor = self.get(step.kind)
            executor.validate(step)
            executors.append(executor)
        return executors
