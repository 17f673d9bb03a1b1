"""
Pipeline configuration loading.

The pipeline file is looked up in this order:

1. an explicit path (``--config``)
2. the ``BUILDGATE_CONFIG`` environment variable
3. ``buildgate.yaml`` at the root of the working tree

When none exists the built-in step catalogue and provisioning descriptor
are used. Example file:

    on: [push, pull_request]
    timeout: 1800
    provisioning:
      packages:
        - pkg-config
        - {name: openssl, pkg_config: openssl}
      env:
        LLVM_SYS_140_PREFIX: {from_command: llvm-config --prefix}
    steps:
      - name: lint
        command: cargo clippy --release --all-features
        requires: [LLVM_SYS_140_PREFIX]
      - name: test
        kind: golden
        command: [target/release/terryc]
        root: uitests
        extension: terry
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from buildgate.catalogue import default_steps
from buildgate.config_validation import validate_pipeline
from buildgate.errors import ConfigurationError
from buildgate.models.step import Step, validate_steps
from buildgate.provisioning import ProvisioningDescriptor, default_descriptor
from buildgate.triggers import DEFAULT_TRIGGERS, Trigger, parse_triggers

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "BUILDGATE_CONFIG"
DEFAULT_CONFIG_NAME = "buildgate.yaml"


@dataclass(frozen=True)
class PipelineConfig:
    """Resolved pipeline configuration."""

    steps: tuple[Step, ...]
    provisioning: ProvisioningDescriptor
    triggers: frozenset[Trigger] = DEFAULT_TRIGGERS
    timeout: float | None = None
    source: Path | None = None
    raw: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def default(cls) -> PipelineConfig:
        return cls(steps=tuple(default_steps()), provisioning=default_descriptor())

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], source: Path | None = None) -> PipelineConfig:
        """
        Build a config from parsed YAML.

        Raises:
            ConfigurationError: If the data does not match the pipeline schema
        """
        data = _normalize(data)
        errors = validate_pipeline(data)
        if errors:
            where = f" in {source}" if source else ""
            raise ConfigurationError(
                f"Invalid pipeline configuration{where}: {errors[0]}",
                errors=[str(e) for e in errors],
            )

        if "steps" in data:
            steps = tuple(Step.from_dict(s) for s in data["steps"])
        else:
            steps = tuple(default_steps())
        validate_steps(steps)

        if "provisioning" in data:
            provisioning = ProvisioningDescriptor.from_config(data["provisioning"])
        else:
            provisioning = default_descriptor()

        return cls(
            steps=steps,
            provisioning=provisioning,
            triggers=parse_triggers(data.get("on")),
            timeout=data.get("timeout"),
            source=source,
            raw=dict(data),
        )


def find_config(
    explicit: str | Path | None,
    tree_root: Path | None,
    environ: Mapping[str, str] | None = None,
) -> Path | None:
    """Locate the pipeline file, or None when the defaults apply."""
    environ = os.environ if environ is None else environ

    if explicit:
        path = Path(explicit)
        if not path.is_file():
            raise ConfigurationError(f"Config file {path} does not exist")
        return path

    from_env = environ.get(CONFIG_ENV_VAR)
    if from_env:
        path = Path(from_env)
        if not path.is_file():
            raise ConfigurationError(f"Config file {path} (from {CONFIG_ENV_VAR}) does not exist")
        return path

    if tree_root is not None:
        candidate = tree_root / DEFAULT_CONFIG_NAME
        if candidate.is_file():
            return candidate

    return None


def load_config(
    explicit: str | Path | None = None,
    tree_root: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> PipelineConfig:
    """Find and parse the pipeline file, falling back to the defaults."""
    path = find_config(explicit, tree_root, environ)
    if path is None:
        logger.info("No pipeline file found, using the default step catalogue")
        return PipelineConfig.default()

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Could not parse {path}: {e}", cause=e) from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} must contain a mapping at the top level")

    logger.debug("Loaded pipeline configuration from %s", path)
    return PipelineConfig.from_dict(data, source=path)


def _normalize(data: Mapping[str, Any]) -> dict[str, Any]:
    # YAML 1.1 reads a bare `on:` key as boolean True
    normalized = dict(data)
    if True in normalized and "on" not in normalized:
        normalized["on"] = normalized.pop(True)
    return normalized
