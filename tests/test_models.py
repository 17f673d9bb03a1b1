"""Tests for statuses, steps, results, working trees and triggers."""

import pytest

from buildgate import (
    ConfigurationError,
    ErrorCode,
    FailureKind,
    InfrastructureFailure,
    Invocation,
    LogicalStepFailure,
    PipelineResult,
    Step,
    StepResult,
    StepStatus,
    Trigger,
    WorkingTree,
    default_steps,
    select_steps,
    should_run,
)
from buildgate.catalogue import LLVM_PREFIX_BINDING, STEP_ORDER
from buildgate.triggers import parse_triggers


class TestStepStatus:
    def test_failed_halts(self) -> None:
        assert StepStatus.FAILED.is_halt

    def test_succeeded_and_skipped_do_not_halt(self) -> None:
        assert not StepStatus.SUCCEEDED.is_halt
        assert not StepStatus.SKIPPED.is_halt

    def test_only_success_is_successful(self) -> None:
        assert StepStatus.SUCCEEDED.is_successful
        assert not StepStatus.SKIPPED.is_successful

    def test_str(self) -> None:
        assert str(StepStatus.SUCCEEDED) == "SUCCEEDED"

    def test_failure_kind_exit_codes(self) -> None:
        assert FailureKind.LOGICAL.exit_code == 1
        assert FailureKind.INFRASTRUCTURE.exit_code == 2


class TestStep:
    def test_empty_argv_rejected(self) -> None:
        with pytest.raises(ConfigurationError):
            Invocation(argv=())

    def test_non_positive_timeout_rejected(self) -> None:
        with pytest.raises(ConfigurationError):
            Invocation(argv=("make",), timeout=0)

    def test_round_trip_through_dict(self) -> None:
        step = Step.from_dict(
            {
                "name": "test",
                "kind": "golden",
                "command": ["target/release/terryc"],
                "requires": [LLVM_PREFIX_BINDING],
                "root": "uitests",
                "extension": "terry",
            }
        )

        assert Step.from_dict(step.to_dict()) == step

    def test_string_command_keeps_quoted_arguments(self) -> None:
        step = Step.from_dict({"name": "test", "command": 'cargo test -- --skip "slow suite"'})

        assert step.invocation.argv == ("cargo", "test", "--", "--skip", "slow suite")
        assert step.invocation.display() == "cargo test -- --skip 'slow suite'"

    def test_with_timeout_only_fills_missing(self) -> None:
        bare = Step.command("build", ["make"])
        fixed = Step.command("lint", ["make", "lint"], timeout=10)

        assert bare.with_timeout(60).invocation.timeout == 60
        assert fixed.with_timeout(60).invocation.timeout == 10
        assert bare.with_timeout(None) is bare


class TestCatalogue:
    def test_fixed_order(self) -> None:
        assert tuple(s.name for s in default_steps()) == STEP_ORDER

    def test_all_features_enabled(self) -> None:
        steps = {s.name: s for s in default_steps()}
        assert "--all-features" in steps["lint"].invocation.argv
        assert "--release" in steps["build"].invocation.argv
        assert steps["format-check"].invocation.argv[-1] == "--check"

    def test_native_steps_require_llvm_prefix(self) -> None:
        steps = {s.name: s for s in default_steps()}
        for name in ("lint", "build", "test"):
            assert LLVM_PREFIX_BINDING in steps[name].invocation.required_env
        assert steps["format-check"].invocation.required_env == ()

    def test_select_keeps_declaration_order(self) -> None:
        selected = select_steps(default_steps(), ["format-check", "lint"])
        assert [s.name for s in selected] == ["lint", "format-check"]

    def test_select_unknown_step(self) -> None:
        with pytest.raises(ConfigurationError, match="deploy"):
            select_steps(default_steps(), ["deploy"])


class TestResults:
    def test_failure_from_infrastructure_error(self) -> None:
        error = InfrastructureFailure("no cargo", error_code=ErrorCode.EXECUTABLE_NOT_FOUND)

        result = StepResult.failure("lint", error)

        assert result.status == StepStatus.FAILED
        assert result.failure_kind == FailureKind.INFRASTRUCTURE
        assert result.error == "no cargo"
        assert result.returncode is None

    def test_exit_code_follows_first_failure(self) -> None:
        result = PipelineResult(
            run_id="r",
            step_results=(
                StepResult.success("lint"),
                StepResult.failure("build", LogicalStepFailure("boom", returncode=1)),
            ),
            skipped=("test",),
        )

        assert result.exit_code == 1
        assert result.failed_step == "build"
        assert result.to_dict()["skipped"] == ["test"]
        assert result.status_of("lint") == StepStatus.SUCCEEDED
        assert result.status_of("build") == StepStatus.FAILED
        assert result.status_of("test") == StepStatus.SKIPPED
        assert result.status_of("deploy") is None

    def test_empty_successful_result(self) -> None:
        result = PipelineResult(run_id="r", step_results=(StepResult.success("lint"),))
        assert result.exit_code == 0
        assert result.to_dict()["status"] == "SUCCEEDED"


class TestWorkingTree:
    def test_from_path_resolves(self, tmp_path) -> None:
        tree = WorkingTree.from_path(tmp_path, revision="abc123")
        assert tree.root == tmp_path.resolve()
        assert str(tree).endswith("@abc123")

    def test_missing_directory(self, tmp_path) -> None:
        with pytest.raises(ConfigurationError):
            WorkingTree.from_path(tmp_path / "absent")

    def test_immutable(self, tmp_path) -> None:
        tree = WorkingTree.from_path(tmp_path)
        with pytest.raises(AttributeError):
            tree.root = tmp_path / "other"  # type: ignore[misc]


class TestTriggers:
    def test_both_events_run_by_default(self) -> None:
        configured = parse_triggers(None)
        assert should_run("push", configured)
        assert should_run("pull_request", configured)

    def test_event_not_configured(self) -> None:
        assert not should_run(Trigger.PULL_REQUEST, frozenset({Trigger.PUSH}))

    def test_manual_run_always_runs(self) -> None:
        assert should_run(None, frozenset())

    def test_dash_spelling(self) -> None:
        assert Trigger.parse("pull-request") == Trigger.PULL_REQUEST

    def test_unknown_event(self) -> None:
        with pytest.raises(ConfigurationError, match="schedule"):
            Trigger.parse("schedule")
