"""Unit tests for DeploymentOrchestrator"""

from pathlib import Path

import pytest

from delta_deploy.api.exceptions import (
    AuthError,
    CommitError,
    ConfigError,
    DeployError,
    DestructiveDeployError,
    PackageGenerationError,
    StateTransitionError,
    ValidationError,
)
from delta_deploy.constants import OperationKind, PipelineState, Stage
from delta_deploy.core import ConfigResolver, ManifestBuilder
from delta_deploy.models import RevisionPair
from delta_deploy.services import DeploymentOrchestrator

CLASS_SOURCE = "public with sharing class AccountService {}\n"
TEST_SOURCE = "@isTest\nprivate class AccountServiceSpec {}\n"
META_SOURCE = "<ApexClass><apiVersion>58.0</apiVersion></ApexClass>\n"
DELETED = "force-app/main/default/classes/Legacy.cls"


@pytest.fixture
def workspace_dir(tmp_path):
    return tmp_path / "ws"


@pytest.fixture
def make_orchestrator(repo, make_resolver, sleep, workspace_dir):
    def _make(git, runner, dry_run=False, resolver=None, **settings):
        return DeploymentOrchestrator(
            revisions=RevisionPair("HEAD~1", "HEAD"),
            resolver=resolver or make_resolver(**settings),
            dry_run=dry_run,
            repo_root=repo,
            git=git,
            runner=runner,
            sleep=sleep,
            workspace_dir=workspace_dir,
            handle_signals=False,
        )

    return _make


@pytest.fixture
def changes(add_source):
    """Changed paths: a class with its metadata, a test class and a deletion"""
    add_source("classes/AccountService.cls-meta.xml", META_SOURCE)
    return [
        add_source("classes/AccountService.cls", CLASS_SOURCE),
        add_source("classes/AccountServiceSpec.cls", TEST_SOURCE),
        DELETED,
    ]


def snapshot(root: Path):
    return {
        p.relative_to(root).as_posix(): p.read_text(encoding="utf-8")
        for p in root.rglob("*") if p.is_file()
    }


def assert_released(orchestrator, workspace_dir):
    assert orchestrator.workspace.release_count == 1
    assert list(workspace_dir.iterdir()) == []


def test_no_changes_is_a_successful_noop(make_orchestrator, fake_git, fake_runner, workspace_dir):
    runner = fake_runner()
    orchestrator = make_orchestrator(fake_git([]), runner)

    result = orchestrator.run()

    assert result.state == PipelineState.DONE
    assert result.exit_code == 0
    assert result.noop_reason == PackageGenerationError.NO_CHANGES
    assert runner.calls == []
    assert orchestrator.state_history == [
        PipelineState.INIT, PipelineState.CONFIGURED,
        PipelineState.COMMITS_VALIDATED, PipelineState.DONE,
    ]
    assert_released(orchestrator, workspace_dir)


def test_only_deletions_is_a_successful_noop(make_orchestrator, fake_git, fake_runner):
    runner = fake_runner()

    result = make_orchestrator(fake_git([DELETED]), runner).run()

    assert result.success
    assert result.noop_reason == PackageGenerationError.NO_DEPLOYABLE_METADATA
    assert runner.calls == []


def test_full_deployment(make_orchestrator, fake_git, fake_runner, changes, workspace_dir, sleep):
    runner = fake_runner()
    orchestrator = make_orchestrator(fake_git(changes), runner)

    result = orchestrator.run()

    assert result.state == PipelineState.DONE
    assert orchestrator.state_history == [
        PipelineState.INIT,
        PipelineState.CONFIGURED,
        PipelineState.COMMITS_VALIDATED,
        PipelineState.AUTHENTICATED,
        PipelineState.PACKAGE_GENERATED,
        PipelineState.DEPLOY_VALIDATED,
        PipelineState.DEPLOYED,
        PipelineState.DESTRUCTIVE_DEPLOYED,
        PipelineState.DONE,
    ]
    assert [runner.operation_of(c) for c in runner.calls] == [
        "auth", "validate", "deploy", "destructive", "logout",
    ]
    assert [t.unit_name for t in result.test_units] == ["AccountServiceSpec"]
    deploy = runner.calls_for("deploy")[0]
    assert deploy[-4:] == ["--testlevel", "RunSpecifiedTests", "--runtests", "AccountServiceSpec"]
    assert result.package_manifest.to_dict() == {"classes": ["AccountService", "AccountServiceSpec"]}
    assert result.destructive_manifest.to_dict() == {"classes": ["Legacy"]}
    assert sleep.delays == []
    assert_released(orchestrator, workspace_dir)


def test_workspace_contents(make_orchestrator, fake_git, fake_runner, changes):
    runner = fake_runner()
    captured = {}

    def capturing(command, **kwargs):
        operation = runner.operation_of(command)
        if operation in ("validate", "destructive"):
            manifest = Path(command[command.index("--manifest") + 1])
            captured[operation] = snapshot(manifest.parent)
            captured["test_classes"] = orchestrator.workspace.test_classes_file.read_text()
        return runner(command, **kwargs)

    orchestrator = make_orchestrator(fake_git(changes), capturing)
    orchestrator.run()

    package = captured["validate"]
    assert set(package) == {
        "package.xml",
        "force-app/main/default/classes/AccountService.cls",
        "force-app/main/default/classes/AccountService.cls-meta.xml",
        "force-app/main/default/classes/AccountServiceSpec.cls",
    }
    assert package["force-app/main/default/classes/AccountService.cls"] == CLASS_SOURCE
    assert "<members>AccountService</members>" in package["package.xml"]
    assert captured["test_classes"] == "AccountServiceSpec\n"

    destructive = captured["destructive"]
    assert set(destructive) == {"package.xml", "destructiveChanges.xml"}
    assert "<members>Legacy</members>" in destructive["destructiveChanges.xml"]
    assert "<types>" not in destructive["package.xml"]


def test_destructive_members_share_one_group(make_orchestrator, fake_git, fake_runner, add_source):
    present = add_source("classes/Keeper.cls", CLASS_SOURCE)
    deleted = [
        "force-app/main/default/classes/OldA.cls",
        "force-app/main/default/classes/OldA.cls-meta.xml",
        "force-app/main/default/classes/OldB.cls",
        "force-app/main/default/pages/OldPage.page",
    ]

    result = make_orchestrator(fake_git([present] + deleted), fake_runner()).run()

    assert result.destructive_manifest.to_dict() == {
        "classes": ["OldA", "OldB"],
        "pages": ["OldPage"],
    }
    assert result.destructive_manifest.to_xml().count("<name>classes</name>") == 1


def test_no_destructive_changes(make_orchestrator, fake_git, fake_runner, add_source):
    runner = fake_runner()
    orchestrator = make_orchestrator(fake_git([add_source("classes/Only.cls")]), runner)

    result = orchestrator.run()

    assert result.success
    assert PipelineState.DESTRUCTIVE_DEPLOYED not in orchestrator.state_history
    assert runner.calls_for("destructive") == []
    deploy = runner.calls_for("deploy")[0]
    assert deploy[-2:] == ["--testlevel", "RunLocalTests"]


def test_dry_run_validates_but_skips_deployments(make_orchestrator, fake_git, fake_runner, changes):
    runner = fake_runner()
    orchestrator = make_orchestrator(fake_git(changes), runner, dry_run=True)

    result = orchestrator.run()

    assert result.success
    assert result.dry_run
    assert [runner.operation_of(c) for c in runner.calls] == ["auth", "validate", "logout"]
    assert len(result.skipped_commands) == 2
    assert "--checkonly" not in result.skipped_commands[0]
    assert "--postdestructivechanges" in result.skipped_commands[1]
    assert PipelineState.DESTRUCTIVE_DEPLOYED in orchestrator.state_history


def test_validation_retries_then_succeeds(make_orchestrator, fake_git, fake_runner, changes, sleep):
    runner = fake_runner({"validate": [1, 1, 0]})

    result = make_orchestrator(
        fake_git(changes), runner, max_retries=3, retry_delay=5
    ).run()

    assert result.success
    assert len(runner.calls_for("validate")) == 3
    assert sleep.delays == [5, 5]
    attempts = result.attempts_for(OperationKind.VALIDATE_DEPLOY)
    assert [a.succeeded for a in attempts] == [False, False, True]
    assert attempts[0].reason == "validate rejected"


def test_authentication_exhaustion(make_orchestrator, fake_git, fake_runner, changes, sleep, workspace_dir):
    runner = fake_runner({"auth": [1]})
    orchestrator = make_orchestrator(fake_git(changes), runner, max_retries=3, retry_delay=2)

    result = orchestrator.run()

    assert result.state == PipelineState.FAILED
    assert result.failed_stage == Stage.AUTHENTICATE
    assert result.exit_code == 1
    assert isinstance(result.error, AuthError)
    assert result.error.attempts == 3
    assert len(runner.calls_for("auth")) == 3
    assert sleep.delays == [2, 2]
    assert runner.calls_for("validate") == []
    assert len(runner.calls_for("logout")) == 1
    assert_released(orchestrator, workspace_dir)


def test_deploy_failure_stops_pipeline(make_orchestrator, fake_git, fake_runner, changes):
    runner = fake_runner({"deploy": [1]})

    result = make_orchestrator(fake_git(changes), runner, max_retries=2).run()

    assert result.failed_stage == Stage.DEPLOY
    assert isinstance(result.error, DeployError)
    assert result.error.error_code == "DD006"
    assert runner.calls_for("destructive") == []


def test_invalid_commit(make_orchestrator, fake_git, fake_runner, workspace_dir):
    runner = fake_runner()
    orchestrator = make_orchestrator(fake_git(unresolvable=["HEAD~1"]), runner)

    result = orchestrator.run()

    assert result.state == PipelineState.FAILED
    assert result.failed_stage == Stage.VALIDATE_COMMITS
    assert isinstance(result.error, CommitError)
    assert runner.calls == []
    assert_released(orchestrator, workspace_dir)


def test_configuration_error(make_orchestrator, fake_git, fake_runner, workspace_dir, env):
    environ = {k: v for k, v in env.items() if k != "SF_USERNAME"}
    resolver = ConfigResolver(None, environ=environ)
    orchestrator = make_orchestrator(fake_git(), fake_runner(), resolver=resolver)

    result = orchestrator.run()

    assert result.failed_stage == Stage.CONFIGURE
    assert isinstance(result.error, ConfigError)
    assert orchestrator.state_history == [PipelineState.INIT, PipelineState.FAILED]
    assert_released(orchestrator, workspace_dir)


def test_interruption_releases_and_reraises(make_orchestrator, fake_git, fake_runner, changes, workspace_dir):
    runner = fake_runner()

    def interrupting(command, **kwargs):
        if runner.operation_of(command) == "validate":
            raise KeyboardInterrupt
        return runner(command, **kwargs)

    orchestrator = make_orchestrator(fake_git(changes), interrupting)

    with pytest.raises(KeyboardInterrupt):
        orchestrator.run()

    assert orchestrator.result.state == PipelineState.FAILED
    assert orchestrator.result.failed_stage == Stage.VALIDATE_DEPLOY
    assert len(runner.calls_for("logout")) == 1
    assert_released(orchestrator, workspace_dir)


def test_state_never_moves_backwards(make_orchestrator, fake_git, fake_runner):
    orchestrator = make_orchestrator(fake_git(), fake_runner())
    orchestrator._advance(PipelineState.AUTHENTICATED)

    with pytest.raises(StateTransitionError):
        orchestrator._advance(PipelineState.CONFIGURED)


def test_terminal_state_is_final(make_orchestrator, fake_git, fake_runner):
    orchestrator = make_orchestrator(fake_git([]), fake_runner())
    orchestrator.run()

    with pytest.raises(StateTransitionError):
        orchestrator._advance(PipelineState.FAILED)


def test_validation_exhaustion(make_orchestrator, fake_git, fake_runner, changes, sleep, workspace_dir):
    runner = fake_runner({"validate": [1]})
    orchestrator = make_orchestrator(fake_git(changes), runner, max_retries=3, retry_delay=4)

    result = orchestrator.run()

    assert result.state == PipelineState.FAILED
    assert result.failed_stage == Stage.VALIDATE_DEPLOY
    assert isinstance(result.error, ValidationError)
    assert result.error.error_code == "DD005"
    assert len(runner.calls_for("validate")) == 3
    assert sleep.delays == [4, 4]
    assert runner.calls_for("deploy") == []
    assert runner.calls_for("destructive") == []
    assert PipelineState.DEPLOY_VALIDATED not in orchestrator.state_history
    assert_released(orchestrator, workspace_dir)


def test_destructive_deploy_exhaustion(make_orchestrator, fake_git, fake_runner, changes, workspace_dir):
    runner = fake_runner({"destructive": [1]})
    orchestrator = make_orchestrator(fake_git(changes), runner, max_retries=2)

    result = orchestrator.run()

    assert result.state == PipelineState.FAILED
    assert result.failed_stage == Stage.DESTRUCTIVE_DEPLOY
    assert isinstance(result.error, DestructiveDeployError)
    assert result.error.error_code == "DD007"
    assert len(runner.calls_for("deploy")) == 1
    assert len(runner.calls_for("destructive")) == 2
    assert orchestrator.state_history[-2:] == [PipelineState.DEPLOYED, PipelineState.FAILED]
    assert len(runner.calls_for("logout")) == 1
    assert_released(orchestrator, workspace_dir)


def test_dry_run_logs_would_have_run(make_orchestrator, fake_git, fake_runner, changes, caplog):
    orchestrator = make_orchestrator(fake_git(changes), fake_runner(), dry_run=True)

    with caplog.at_level("INFO", logger="delta_deploy"):
        result = orchestrator.run()

    messages = [r.getMessage() for r in caplog.records]
    would_have_run = [m for m in messages if m.startswith("Would have run: ")]
    assert would_have_run == [f"Would have run: {c}" for c in result.skipped_commands]
    assert would_have_run[0].startswith("Would have run: sfdx force:source:deploy")
    assert "Dry-run mode: Skipping actual deployment" in messages
    assert "Dry-run mode: Skipping actual destructive deployment" in messages


def test_package_generation_failure_is_not_a_noop(make_orchestrator, fake_git, fake_runner, changes,
                                                  monkeypatch, workspace_dir):
    def broken(self):
        raise PackageGenerationError("cannot read source tree")

    monkeypatch.setattr(ManifestBuilder, "ensure_deployable", broken)
    runner = fake_runner()
    orchestrator = make_orchestrator(fake_git(changes), runner)

    result = orchestrator.run()

    assert result.state == PipelineState.FAILED
    assert result.exit_code == 1
    assert result.failed_stage == Stage.GENERATE_PACKAGE
    assert result.noop_reason is None
    assert runner.calls == []
    assert_released(orchestrator, workspace_dir)
