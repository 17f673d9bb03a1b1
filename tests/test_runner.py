"""Tests for PipelineRunner: ordering, fail-fast and failure classification."""

import io
import sys

import pytest
from conftest import RecordingExecutor, catalogue_names, python_step

from buildgate import (
    ConfigurationError,
    ErrorCode,
    ExecutorRegistry,
    FailureKind,
    PipelineRunner,
    RunPhase,
    Step,
    StepStatus,
    WorkingTree,
    run_pipeline,
)
from buildgate.catalogue import LLVM_PREFIX_BINDING


def catalogue_steps() -> list[Step]:
    return [Step.command(name, ["true"]) for name in catalogue_names()]


class TestFailFast:
    """Ordering and short-circuit behavior, using a recording executor."""

    def test_all_steps_succeed(self, tree, recorder, recording_registry) -> None:
        """Scenario A: every step runs once and the pipeline succeeds."""
        result = PipelineRunner(registry=recording_registry).run(tree, catalogue_steps())

        assert result.status == StepStatus.SUCCEEDED
        assert result.succeeded
        assert recorder.calls == catalogue_names()
        assert result.executed == catalogue_names()
        assert result.skipped == ()
        assert result.failed_step is None
        assert result.exit_code == 0

    def test_build_failure_stops_pipeline(self, tree) -> None:
        """Scenario B: build fails, test and format-check never run."""
        recorder = RecordingExecutor(failing={"build"})
        registry = ExecutorRegistry()
        registry.register("command", recorder)

        result = PipelineRunner(registry=registry).run(tree, catalogue_steps())

        assert result.status == StepStatus.FAILED
        assert result.failed_step == "build"
        assert recorder.calls == ["lint", "build"]
        assert result.skipped == ("test", "format-check")
        assert result.get("test") is None
        assert result.exit_code == 1

    @pytest.mark.parametrize("index", range(4))
    def test_exactly_steps_up_to_failure_execute(self, tree, index: int) -> None:
        names = catalogue_names()
        recorder = RecordingExecutor(failing={names[index]})
        registry = ExecutorRegistry()
        registry.register("command", recorder)

        result = PipelineRunner(registry=registry).run(tree, catalogue_steps())

        assert recorder.calls == names[: index + 1]
        assert result.failed_step == names[index]
        assert list(result.skipped) == names[index + 1 :]

    def test_failure_carries_captured_output(self, tree) -> None:
        recorder = RecordingExecutor(failing={"lint"})
        registry = ExecutorRegistry()
        registry.register("command", recorder)

        result = PipelineRunner(registry=registry).run(tree, catalogue_steps())

        failure = result.failure
        assert failure is not None
        assert failure.output == "lint output"
        assert failure.failure_kind == FailureKind.LOGICAL
        assert failure.error_code == ErrorCode.STEP_FAILED
        assert failure.returncode == 1

    def test_single_step_pipeline(self, tree, recorder, recording_registry) -> None:
        result = PipelineRunner(registry=recording_registry).run(tree, [Step.command("lint", ["true"])])

        assert result.succeeded
        assert recorder.calls == ["lint"]


class TestInputValidation:
    """Invalid step lists are rejected before anything runs."""

    def test_empty_step_list(self, tree, recorder, recording_registry) -> None:
        with pytest.raises(ConfigurationError, match="at least one step"):
            PipelineRunner(registry=recording_registry).run(tree, [])
        assert recorder.calls == []

    def test_duplicate_step_names(self, tree, recorder, recording_registry) -> None:
        steps = [Step.command("lint", ["true"]), Step.command("lint", ["true"])]
        with pytest.raises(ConfigurationError, match="Duplicate"):
            PipelineRunner(registry=recording_registry).run(tree, steps)
        assert recorder.calls == []

    def test_unknown_kind_rejected_before_first_step(self, tree, recorder, recording_registry) -> None:
        steps = [
            Step.command("lint", ["true"]),
            Step(name="deploy", invocation=Step.command("x", ["true"]).invocation, kind="deploy"),
        ]
        with pytest.raises(ConfigurationError, match="deploy"):
            PipelineRunner(registry=recording_registry).run(tree, steps)
        assert recorder.calls == []

    def test_golden_step_without_extension_rejected_before_first_step(self, tree, environment) -> None:
        marker = tree.root / "lint-ran"
        steps = [
            python_step("lint", f"open({str(marker)!r}, 'w')"),
            Step(
                name="test",
                kind="golden",
                invocation=Step.command("test", ["terryc"]).invocation,
                options={"root": "uitests"},
            ),
        ]

        with pytest.raises(ConfigurationError, match="extension"):
            PipelineRunner(environment=environment).run(tree, steps)
        assert not marker.exists()


class TestRunnerState:
    def test_not_started_before_run(self) -> None:
        assert PipelineRunner().state.phase == RunPhase.NOT_STARTED

    def test_cursor_advances_then_completes(self, tree) -> None:
        runner_holder: list[PipelineRunner] = []
        cursors: list[int | None] = []

        class CursorExecutor(RecordingExecutor):
            def execute(self, step, context):
                cursors.append(runner_holder[0].state.cursor)
                assert runner_holder[0].state.phase == RunPhase.RUNNING
                return super().execute(step, context)

        registry = ExecutorRegistry()
        registry.register("command", CursorExecutor())
        runner = PipelineRunner(registry=registry)
        runner_holder.append(runner)

        result = runner.run(tree, catalogue_steps())

        assert cursors == [0, 1, 2, 3]
        assert runner.state.phase == RunPhase.COMPLETED
        assert runner.state.result is result

    def test_runner_can_run_again(self, tree, recorder, recording_registry) -> None:
        runner = PipelineRunner(registry=recording_registry)
        first = runner.run(tree, catalogue_steps())
        second = runner.run(tree, catalogue_steps())

        assert first.run_id != second.run_id
        assert recorder.calls == catalogue_names() * 2


class TestSubprocessSteps:
    """Real subprocesses through the default registry."""

    def test_successful_commands(self, tree, environment) -> None:
        steps = [
            python_step("lint", "print('lint clean')"),
            python_step("build", "print('built')"),
        ]
        result = PipelineRunner(environment=environment).run(tree, steps)

        assert result.succeeded
        assert result.get("lint").output.strip() == "lint clean"
        assert result.get("build").returncode == 0

    def test_nonzero_exit_is_logical_failure(self, tree, environment) -> None:
        steps = [
            python_step("lint", "pass"),
            python_step("build", "import sys; print('error[E0308]: mismatched types'); sys.exit(101)"),
            python_step("test", "pass"),
        ]
        result = PipelineRunner(environment=environment).run(tree, steps)

        failure = result.failure
        assert result.failed_step == "build"
        assert failure.failure_kind == FailureKind.LOGICAL
        assert failure.returncode == 101
        assert "mismatched types" in failure.output
        assert result.skipped == ("test",)

    def test_long_failing_output_keeps_its_verdict(self, tree, environment) -> None:
        code = (
            "import sys\n"
            "for i in range(20000):\n"
            "    print(f'warning: unused variable `x{i}`')\n"
            "print('error: could not compile terryc')\n"
            "sys.exit(101)\n"
        )
        log = io.StringIO()

        result = PipelineRunner(environment=environment, output_log=log).run(tree, [python_step("build", code)])

        output = result.failure.output
        assert output.startswith("[TRUNCATED] ")
        assert output.rstrip().endswith("error: could not compile terryc")
        assert len(output.encode()) <= 102_400
        # the shared log is not truncated
        assert log.getvalue().count("warning: unused variable") == 20000
        assert "error: could not compile terryc" in log.getvalue()

    def test_missing_executable_is_infrastructure_failure(self, tree, environment) -> None:
        """Scenario C: the only step's tool is absent."""
        steps = [Step.command("lint", ["buildgate-no-such-linter"])]
        result = PipelineRunner(environment=environment).run(tree, steps)

        failure = result.failure
        assert result.failed_step == "lint"
        assert failure.failure_kind == FailureKind.INFRASTRUCTURE
        assert failure.error_code == ErrorCode.EXECUTABLE_NOT_FOUND
        assert failure.returncode is None
        assert result.exit_code == 2

    def test_absent_later_tool_is_irrelevant_when_not_declared(self, tree, environment) -> None:
        """Scenario C: lint alone succeeds even though no build tool exists."""
        result = PipelineRunner(environment=environment).run(tree, [python_step("lint", "pass")])

        assert result.succeeded
        assert result.executed == ["lint"]

    def test_missing_binding_is_infrastructure_failure(self, tree, environment) -> None:
        steps = [python_step("lint", "pass", required_env=[LLVM_PREFIX_BINDING])]
        result = PipelineRunner(environment=environment).run(tree, steps)

        failure = result.failure
        assert failure.status == StepStatus.FAILED
        assert failure.failure_kind == FailureKind.INFRASTRUCTURE
        assert failure.error_code == ErrorCode.MISSING_BINDING
        assert LLVM_PREFIX_BINDING in failure.error

    def test_binding_reaches_the_step(self, tree, environment) -> None:
        environment[LLVM_PREFIX_BINDING] = "/opt/llvm-14"
        steps = [
            python_step(
                "lint",
                f"import os; print(os.environ['{LLVM_PREFIX_BINDING}'])",
                required_env=[LLVM_PREFIX_BINDING],
            )
        ]
        result = PipelineRunner(environment=environment).run(tree, steps)

        assert result.succeeded
        assert result.get("lint").output.strip() == "/opt/llvm-14"

    def test_process_environment_is_not_inherited(self, tree, environment, monkeypatch) -> None:
        monkeypatch.setenv("BUILDGATE_AMBIENT", "leaked")
        steps = [python_step("lint", "import os; print(os.environ.get('BUILDGATE_AMBIENT', 'absent'))")]
        result = PipelineRunner(environment=environment).run(tree, steps)

        assert result.get("lint").output.strip() == "absent"

    def test_timeout_is_distinct_failure(self, tree, environment) -> None:
        steps = [
            python_step("test", "import time; time.sleep(30)", timeout=0.5),
            python_step("format-check", "pass"),
        ]
        result = PipelineRunner(environment=environment).run(tree, steps)

        failure = result.failure
        assert failure.name == "test"
        assert failure.failure_kind == FailureKind.LOGICAL
        assert failure.error_code == ErrorCode.STEP_TIMEOUT
        assert result.skipped == ("format-check",)

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals")
    def test_killed_by_signal(self, tree, environment) -> None:
        steps = [python_step("test", "import os, signal; os.kill(os.getpid(), signal.SIGKILL)")]
        result = PipelineRunner(environment=environment).run(tree, steps)

        failure = result.failure
        assert failure.error_code == ErrorCode.STEP_SIGNALED
        assert failure.returncode == -9
        assert "SIGKILL" in failure.error

    def test_step_runs_in_tree_root(self, tree, environment) -> None:
        steps = [python_step("lint", "import os; print(os.getcwd())")]
        result = PipelineRunner(environment=environment).run(tree, steps)

        assert result.get("lint").output.strip() == str(tree.root)

    def test_output_log_receives_every_step(self, tree, environment) -> None:
        log = io.StringIO()
        steps = [
            python_step("lint", "print('from lint')"),
            python_step("build", "import sys; print('from build'); sys.exit(1)"),
        ]
        PipelineRunner(environment=environment, output_log=log).run(tree, steps)

        text = log.getvalue()
        assert "from lint" in text
        assert "from build" in text
        assert text.count("from build") == 1

    def test_identical_trees_give_identical_statuses(self, tmp_path, environment) -> None:
        code = "import pathlib, sys; sys.exit(0 if pathlib.Path('ok.txt').exists() else 1)"
        statuses = []
        for name in ("a", "b"):
            root = tmp_path / name
            root.mkdir()
            (root / "ok.txt").write_text("x")
            tree = WorkingTree.from_path(root)
            steps = [python_step("lint", code), python_step("build", "import sys; sys.exit(3)")]
            result = PipelineRunner(environment=environment).run(tree, steps)
            statuses.append((result.status, result.failed_step, [r.status for r in result.step_results]))

        assert statuses[0] == statuses[1]

    def test_run_pipeline_groups_output_per_step(self, tree, environment) -> None:
        log = io.StringIO()
        steps = [python_step("lint", "print('clean')"), python_step("build", "print('built')")]

        result = run_pipeline(tree, steps, environment=environment, output_log=log)

        assert result.succeeded
        assert log.getvalue() == "::group::lint\nclean\n::endgroup::\n::group::build\nbuilt\n::endgroup::\n"
