"""Events that start a pipeline run."""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum

from buildgate.errors import ConfigurationError


class Trigger(Enum):
    """Both triggers run the full step list once."""

    PUSH = "push"
    PULL_REQUEST = "pull_request"

    @classmethod
    def parse(cls, value: str) -> Trigger:
        normalized = value.strip().lower().replace("-", "_")
        try:
            return cls(normalized)
        except ValueError:
            known = ", ".join(t.value for t in cls)
            raise ConfigurationError(f"Unknown trigger '{value}'. Known triggers: {known}") from None


DEFAULT_TRIGGERS: frozenset[Trigger] = frozenset(Trigger)


def parse_triggers(values: Iterable[str] | None) -> frozenset[Trigger]:
    if values is None:
        return DEFAULT_TRIGGERS
    return frozenset(Trigger.parse(v) for v in values)


def should_run(event: Trigger | str | None, configured: frozenset[Trigger]) -> bool:
    """A manual run (no event) always runs."""
    if event is None:
        return True
    if isinstance(event, str):
        event = Trigger.parse(event)
    return event in configured
