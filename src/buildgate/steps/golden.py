"""
GoldenExecutor - snapshot test harness.

Runs the step's tool once per source file under a directory and compares
what it prints with expectation files stored next to the source:

    uitests/hello.terry           source
    uitests/hello.terry.stdout    expected stdout
    uitests/hello.terry.stderr    expected stderr

Options:
    root: Directory to scan, relative to the tree (default: uitests)
    extension: File extension to pick up, without the dot (required)
"""

from __future__ import annotations

import difflib
import logging
from dataclasses import dataclass
from pathlib import Path

from buildgate.error_codes import ErrorCode
from buildgate.errors import ConfigurationError, InfrastructureFailure, LogicalStepFailure, StepTimeoutError
from buildgate.models.result import StepResult
from buildgate.models.step import Step
from buildgate.steps.command import run_process
from buildgate.steps.interface import ExecutionContext, StepExecutor

logger = logging.getLogger(__name__)

STREAMS = ("stdout", "stderr")


@dataclass(frozen=True)
class Mismatch:
    """One stream of one source file that did not match its expectation."""

    source: Path
    stream: str
    detail: str

    def render(self, root: Path) -> str:
        return f"{self.source.relative_to(root)} ({self.stream}): {self.detail}"


class GoldenExecutor(StepExecutor):
    """Compare tool output for every source file against its golden files."""

    def validate(self, step: Step) -> None:
        if not str(step.options.get("extension") or "").lstrip("."):
            raise ConfigurationError(f"Golden step '{step.name}' needs an 'extension' option")

    def execute(self, step: Step, context: ExecutionContext) -> StepResult:
        self.validate(step)
        extension = str(step.options["extension"]).lstrip(".")

        command = self.prepare(step, context)
        root = context.tree.resolve(step.options.get("root", "uitests"))
        if not root.is_dir():
            raise InfrastructureFailure(
                f"Step '{step.name}' golden directory {root} does not exist",
                error_code=ErrorCode.WORKDIR_INVALID,
                step_name=step.name,
            )

        sources = collect_sources(root, extension)
        mismatches: list[Mismatch] = []
        log: list[str] = []

        for source in sources:
            try:
                completed = run_process(step, command, merge_stderr=False, extra_args=[str(source)])
            except StepTimeoutError as e:
                log.append(f"TIMEOUT {source.relative_to(root)}")
                raise StepTimeoutError(
                    f"Step '{step.name}' timed out on {source.relative_to(root)}",
                    timeout=e.timeout,
                    step_name=step.name,
                    output="\n".join(log),
                    cause=e,
                ) from e

            found = [m for m in (check_stream(source, s, getattr(completed, s) or "") for s in STREAMS) if m]
            mismatches.extend(found)
            log.append(f"{'FAIL' if found else 'ok'}   {source.relative_to(root)}")

        logger.debug("GoldenExecutor checked %d file(s), %d mismatch(es)", len(sources), len(mismatches))

        if mismatches:
            log.append("")
            log.extend(m.render(root) for m in mismatches)
        log.append(f"{len(sources)} file(s) checked, {len(mismatches)} mismatch(es)")
        output = "\n".join(log)

        if mismatches:
            raise LogicalStepFailure(
                f"Step '{step.name}': {len(mismatches)} golden output mismatch(es)",
                error_code=ErrorCode.GOLDEN_MISMATCH,
                step_name=step.name,
                output=output,
                returncode=1,
            )
        return StepResult.success(step.name, output=output, returncode=0)


def collect_sources(root: Path, extension: str) -> list[Path]:
    """All regular files under root with the given extension, sorted."""
    return sorted(p for p in root.rglob(f"*.{extension}") if p.is_file())


def expectation_path(source: Path, stream: str) -> Path:
    return source.with_name(f"{source.name}.{stream}")


def check_stream(source: Path, stream: str, actual: str) -> Mismatch | None:
    """
    Compare one captured stream with its expectation file.

    Non-empty output without an expectation file is a mismatch. An existing
    expectation must equal the output after trimming surrounding whitespace.
    """
    expected_path = expectation_path(source, stream)
    if not expected_path.exists():
        if actual.strip():
            return Mismatch(
                source,
                stream,
                f"had {stream} when its {stream} file does not exist:\n{actual.strip()}",
            )
        return None

    expected = expected_path.read_text(encoding="utf-8").strip()
    if expected == actual.strip():
        return None

    diff = difflib.unified_diff(
        expected.splitlines(),
        actual.strip().splitlines(),
        fromfile=str(expected_path.name),
        tofile=f"actual {stream}",
        lineterm="",
    )
    return Mismatch(source, stream, "expected output differs:\n" + "\n".join(diff))
