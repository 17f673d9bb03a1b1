"""CLI command implementations for buildgate.

Each command returns the process exit code:

    0   success (or run skipped because the event is not configured)
    1   a step failed logically (lint, build, test or format said no)
    2   infrastructure failure (a tool or the toolchain is missing)
    64  configuration error
"""

from __future__ import annotations

import json
import os
import sys
from collections.abc import Mapping
from pathlib import Path
from typing import TextIO

from buildgate.catalogue import select_steps
from buildgate.config import PipelineConfig, load_config
from buildgate.errors import ConfigurationError, InfrastructureFailure
from buildgate.models.result import PipelineResult
from buildgate.models.tree import WorkingTree
from buildgate.runner import PipelineRunner
from buildgate.steps.registry import ExecutorRegistry
from buildgate.triggers import should_run

EXIT_OK = 0
EXIT_INFRASTRUCTURE = 2
EXIT_CONFIG = 64

EVENT_ENV_VAR = "GITHUB_EVENT_NAME"


def run(
    config_path: str | None,
    tree_path: str,
    event: str | None = None,
    step_names: list[str] | None = None,
    timeout: float | None = None,
    log_file: str | None = None,
    provision_check: bool = True,
    as_json: bool = False,
    environ: Mapping[str, str] | None = None,
    out: TextIO | None = None,
) -> int:
    """Run the pipeline and report the outcome."""
    environ = dict(os.environ if environ is None else environ)
    out = out or sys.stdout

    try:
        tree = WorkingTree.from_path(tree_path, revision=environ.get("GITHUB_SHA"))
        config = load_config(config_path, tree.root, environ)
        event = event or environ.get(EVENT_ENV_VAR) or None
        if not should_run(event, config.triggers):
            print(f"Event '{event}' is not configured for this pipeline, nothing to do", file=out)
            return EXIT_OK
        steps = [step.with_timeout(timeout or config.timeout) for step in config.steps]
        steps = select_steps(steps, step_names)
        registry = ExecutorRegistry.default()
        registry.resolve(steps)
    except ConfigurationError as e:
        print(f"Configuration error: {e.message}", file=sys.stderr)
        for detail in e.errors[1:]:
            print(f"  {detail}", file=sys.stderr)
        return EXIT_CONFIG

    environment = config.provisioning.environment(environ)
    if provision_check:
        try:
            config.provisioning.verify(environment)
        except InfrastructureFailure as e:
            print(f"FAILED provision [{e.error_code}]: {e.message}", file=out)
            return EXIT_INFRASTRUCTURE

    # step output goes to the log file, or next to the summary unless that is JSON
    log_stream = open(log_file, "a", encoding="utf-8") if log_file else None
    output_log = log_stream or (sys.stderr if as_json else out)
    try:
        result = PipelineRunner(registry=registry, environment=environment, output_log=output_log).run(tree, steps)
    finally:
        if log_stream is not None:
            log_stream.close()

    report(result, out, as_json=as_json, include_output=output_log is not out)
    return result.exit_code


def report(
    result: PipelineResult,
    out: TextIO,
    as_json: bool = False,
    include_output: bool = True,
) -> None:
    """Print the per-step summary, and the failing step's output on failure."""
    if as_json:
        json.dump(result.to_dict(), out, indent=2)
        out.write("\n")
        return

    print("", file=out)
    for step_result in result.step_results:
        print(f"{str(step_result.status):<10} {step_result.name} ({step_result.duration:.1f}s)", file=out)
    for name in result.skipped:
        print(f"{str(result.status_of(name)):<10} {name}", file=out)

    failure = result.failure
    if failure is None:
        print(f"\nPipeline {result.run_id} succeeded", file=out)
        return

    print(
        f"\nPipeline {result.run_id} failed at step '{failure.name}' "
        f"[{failure.failure_kind}: {failure.error_code}]",
        file=out,
    )
    print(failure.error, file=out)
    if include_output and failure.output:
        print(f"\n--- output of {failure.name} ---", file=out)
        print(failure.output.rstrip("\n"), file=out)


def list_steps(config_path: str | None, tree_path: str, out: TextIO | None = None) -> int:
    """Print the resolved steps in execution order."""
    out = out or sys.stdout
    try:
        config = load_config(config_path, Path(tree_path).resolve())
        ExecutorRegistry.default().resolve(config.steps)
    except ConfigurationError as e:
        print(f"Configuration error: {e.message}", file=sys.stderr)
        return EXIT_CONFIG

    _print_source(config, out)
    for index, step in enumerate(config.steps, start=1):
        line = f"{index}. {step.name:<14} [{step.kind}] {step.invocation.display()}"
        if step.invocation.required_env:
            line += f"  (requires {', '.join(step.invocation.required_env)})"
        print(line, file=out)
    return EXIT_OK


def check_env(
    config_path: str | None,
    tree_path: str,
    environ: Mapping[str, str] | None = None,
    out: TextIO | None = None,
) -> int:
    """Verify provisioning and every step's required bindings without running anything."""
    environ = dict(os.environ if environ is None else environ)
    out = out or sys.stdout
    try:
        config = load_config(config_path, Path(tree_path).resolve(), environ)
        ExecutorRegistry.default().resolve(config.steps)
    except ConfigurationError as e:
        print(f"Configuration error: {e.message}", file=sys.stderr)
        return EXIT_CONFIG

    environment = config.provisioning.environment(environ)
    ok = True

    missing_packages = config.provisioning.missing_packages(environment)
    for package in config.provisioning.packages:
        status = "missing" if package.name in missing_packages else "ok"
        print(f"package {package.name:<16} {status}", file=out)
    ok = ok and not missing_packages

    for step in config.steps:
        for name in step.invocation.required_env:
            present = bool(environment.get(name) or step.invocation.env.get(name))
            print(f"binding {name:<16} {'ok' if present else 'missing'} (step {step.name})", file=out)
            ok = ok and present

    return EXIT_OK if ok else EXIT_INFRASTRUCTURE


def _print_source(config: PipelineConfig, out: TextIO) -> None:
    if config.source:
        print(f"# from {config.source}", file=out)
    else:
        print("# built-in catalogue", file=out)
