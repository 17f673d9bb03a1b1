"""
Step and Invocation models.

A Step is one named, ordered verification action (lint, build, test,
format-check). Its Invocation says what to run and which environment
bindings must be present for it to run at all.
"""

from __future__ import annotations

import shlex
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from buildgate.errors import ConfigurationError


@dataclass(frozen=True)
class Invocation:
    """
    A command plus arguments plus required environment bindings.

    Attributes:
        argv: Executable followed by its arguments
        required_env: Names of bindings that must be present in the run's
            environment mapping before the step may start
        env: Literal extra bindings layered over the run's environment
        cwd: Working directory relative to the tree root
        timeout: Seconds before the process is killed (None = no limit)
    """

    argv: tuple[str, ...]
    required_env: tuple[str, ...] = ()
    env: Mapping[str, str] = field(default_factory=dict)
    cwd: str | None = None
    timeout: float | None = None

    def __post_init__(self) -> None:
        if not self.argv:
            raise ConfigurationError("Invocation argv must not be empty")
        if self.timeout is not None and self.timeout <= 0:
            raise ConfigurationError(f"Invocation timeout must be positive, got {self.timeout}")

    @property
    def executable(self) -> str:
        return self.argv[0]

    def display(self) -> str:
        """Command line as a human-readable string."""
        return shlex.join(self.argv)


@dataclass(frozen=True)
class Step:
    """
    One named, ordered unit of verification work.

    Attributes:
        name: Unique name within the pipeline ("lint", "build", ...)
        invocation: What to run
        kind: Executor type ("command" or "golden")
        options: Executor-specific settings (golden: root, extension)
    """

    name: str
    invocation: Invocation
    kind: str = "command"
    options: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def command(
        cls,
        name: str,
        argv: Sequence[str],
        *,
        required_env: Sequence[str] = (),
        env: Mapping[str, str] | None = None,
        cwd: str | None = None,
        timeout: float | None = None,
    ) -> Step:
        """Shorthand for a plain command step."""
        return cls(
            name=name,
            invocation=Invocation(
                argv=tuple(argv),
                required_env=tuple(required_env),
                env=dict(env or {}),
                cwd=cwd,
                timeout=timeout,
            ),
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Step:
        """
        Build a Step from one entry of the pipeline file's ``steps`` list.

        ``command`` may be a list of arguments or a single string, which is
        split with shell quoting rules.
        """
        command = data["command"]
        argv = shlex.split(command) if isinstance(command, str) else [str(a) for a in command]
        options = {
            key: value
            for key, value in data.items()
            if key not in ("name", "command", "kind", "requires", "env", "cwd", "timeout")
        }
        return cls(
            name=str(data["name"]),
            kind=str(data.get("kind", "command")),
            invocation=Invocation(
                argv=tuple(argv),
                required_env=tuple(data.get("requires", ())),
                env={str(k): str(v) for k, v in (data.get("env") or {}).items()},
                cwd=data.get("cwd"),
                timeout=data.get("timeout"),
            ),
            options=options,
        )

    def to_dict(self) -> dict[str, Any]:
        """Inverse of from_dict, used by ``buildgate steps``."""
        data: dict[str, Any] = {
            "name": self.name,
            "kind": self.kind,
            "command": list(self.invocation.argv),
        }
        if self.invocation.required_env:
            data["requires"] = list(self.invocation.required_env)
        if self.invocation.env:
            data["env"] = dict(self.invocation.env)
        if self.invocation.cwd:
            data["cwd"] = self.invocation.cwd
        if self.invocation.timeout is not None:
            data["timeout"] = self.invocation.timeout
        data.update(self.options)
        return data

    def with_timeout(self, timeout: float | None) -> Step:
        """Copy of this step with a default timeout applied if it has none."""
        if timeout is None or self.invocation.timeout is not None:
            return self
        inv = self.invocation
        return Step(
            name=self.name,
            kind=self.kind,
            options=self.options,
            invocation=Invocation(
                argv=inv.argv,
                required_env=inv.required_env,
                env=inv.env,
                cwd=inv.cwd,
                timeout=timeout,
            ),
        )


def validate_steps(steps: Sequence[Step]) -> None:
    """
    Check the invariants of a step list before anything runs.

    Raises:
        ConfigurationError: If the list is empty or names repeat
    """
    if not steps:
        raise ConfigurationError("Pipeline must declare at least one step")

    seen: set[str] = set()
    duplicates: list[str] = []
    for step in steps:
        if step.name in seen:
            duplicates.append(step.name)
        seen.add(step.name)
    if duplicates:
        raise ConfigurationError(f"Duplicate step names: {', '.join(sorted(set(duplicates)))}")
