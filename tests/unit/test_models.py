"""Unit tests for result models and exceptions"""

from datetime import timedelta

from delta_deploy.api.exceptions import (
    AuthError,
    DestructiveDeployError,
    PackageGenerationError,
    ValidationError,
)
from delta_deploy.constants import AttemptOutcome, OperationKind, PipelineState, Stage
from delta_deploy.models import DeployAttempt, PipelineResult


def test_pipeline_result_exit_codes():
    assert PipelineResult(state=PipelineState.DONE).exit_code == 0
    assert PipelineResult(state=PipelineState.FAILED).exit_code == 1
    assert PipelineResult(state=PipelineState.DEPLOYED).exit_code == 1


def test_terminal_states():
    assert PipelineState.DONE.is_terminal
    assert PipelineState.FAILED.is_terminal
    assert not PipelineState.DESTRUCTIVE_DEPLOYED.is_terminal


def test_pipeline_result_summary():
    result = PipelineResult(
        state=PipelineState.FAILED,
        failed_stage=Stage.VALIDATE_DEPLOY,
        error=ValidationError("validate_deploy failed after 2 attempts"),
        attempts=[
            DeployAttempt(OperationKind.AUTHENTICATE, 1, AttemptOutcome.SUCCESS),
            DeployAttempt(OperationKind.VALIDATE_DEPLOY, 1, AttemptOutcome.FAILURE, reason="bad"),
            DeployAttempt(OperationKind.VALIDATE_DEPLOY, 2, AttemptOutcome.FAILURE, reason="bad"),
        ],
    )
    result.complete()
    result.end_time = result.start_time + timedelta(seconds=3)

    data = result.to_dict()

    assert data["state"] == "FAILED"
    assert data["failed_stage"] == "validate_deploy"
    assert data["error"] == "validate_deploy failed after 2 attempts"
    assert data["attempts"][1] == {
        "operation": "validate_deploy", "attempt": 1, "outcome": "failure", "reason": "bad",
    }
    assert data["duration"] == 3
    assert len(result.attempts_for(OperationKind.VALIDATE_DEPLOY)) == 2


def test_error_codes():
    assert AuthError("x").error_code == "DD004"
    assert ValidationError("x").error_code == "DD005"
    assert DestructiveDeployError("x").error_code == "DD007"
    assert PackageGenerationError(PackageGenerationError.NO_CHANGES).error_code == "DD003"


def test_package_generation_error_with_other_reason():
    error = PackageGenerationError("copy failed")

    assert not error.is_noop
    assert str(error) == "copy failed"
