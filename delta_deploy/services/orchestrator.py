"""Delta deployment pipeline"""

import logging
import subprocess
import time
from pathlib import Path
from typing import Callable, List, Optional

from ..api.exceptions import (
    AuthError,
    DeltaDeployError,
    DeployError,
    DestructiveDeployError,
    PackageGenerationError,
    StateTransitionError,
    ValidationError,
)
from ..constants import (
    DEFAULT_LOG_LEVEL,
    DESTRUCTIVE_MANIFEST_FILE,
    META_FILE_SUFFIX,
    PACKAGE_MANIFEST_FILE,
    OperationKind,
    PipelineState,
    Stage,
)
from ..core.commit_diff import CommitDiffEngine
from ..core.config_resolver import ConfigResolver
from ..core.manifest_builder import ManifestBuilder
from ..core.retry import RetryableExecutor
from ..core.test_classifier import TestUnitClassifier
from ..core.workspace import Workspace
from ..models.changes import ChangedFile, RevisionPair
from ..models.config import Configuration
from ..models.result import PipelineResult
from ..utils.file_utils import copy_preserving_path
from .sfdx_client import SfdxClient

logger = logging.getLogger(__name__)


class DeploymentOrchestrator:
    """Sequence the stages of one delta deployment run

    States only move forward. Every run ends in DONE or FAILED and the
    workspace is released exactly once on the way out.

    The diff is computed before authenticating so that a run with nothing
    to deploy never contacts the platform. The package itself is written
    to the workspace after authentication.
    """

    def __init__(self,
                 revisions: RevisionPair,
                 resolver: ConfigResolver,
                 dry_run: bool = False,
                 log_level: str = DEFAULT_LOG_LEVEL,
                 repo_root: Optional[Path] = None,
                 git=None,
                 runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
                 sleep: Callable[[float], None] = time.sleep,
                 workspace_dir: Optional[Path] = None,
                 handle_signals: bool = True):
        """Initialize orchestrator

        Args:
            revisions: Start and end revision
            resolver: Resolver producing the run configuration
            dry_run: Skip deploy and destructive deploy remote calls
            log_level: info or debug
            repo_root: Repository working copy (current directory by default)
            git: Version-control collaborator (utils.git_utils by default)
            runner: Process runner for the platform CLI
            sleep: Wait function used between retries
            workspace_dir: Parent directory of the temporary workspace
            handle_signals: Install SIGINT/SIGTERM handlers while running
        """
        self.revisions = revisions
        self.resolver = resolver
        self.dry_run = dry_run
        self.log_level = log_level
        self.repo_root = Path(repo_root) if repo_root else Path.cwd()
        self.git = git
        self.runner = runner
        self.sleep = sleep
        self.workspace = Workspace(workspace_dir, handle_signals=handle_signals)

        self.result = PipelineResult(dry_run=dry_run)
        self.state_history: List[PipelineState] = [PipelineState.INIT]
        self.config: Optional[Configuration] = None
        self.client: Optional[SfdxClient] = None
        self.builder: Optional[ManifestBuilder] = None
        self._stage = Stage.CONFIGURE
        self._changed_files: List[ChangedFile] = []

    @property
    def state(self) -> PipelineState:
        return self.result.state

    def run(self) -> PipelineResult:
        """Run the pipeline

        Returns:
            Final result; its exit_code is 0 for DONE and 1 for FAILED

        Raises:
            KeyboardInterrupt: Re-raised after cleanup when interrupted
        """
        logger.info("Starting Salesforce deployment...")
        try:
            with self.workspace:
                try:
                    self._execute()
                except DeltaDeployError as e:
                    self._fail(e)
                except KeyboardInterrupt as e:
                    self._fail(e)
                    raise
                except Exception as e:
                    logger.exception(f"Unexpected error during {self._stage.value}")
                    self._fail(e)
        except KeyboardInterrupt as e:
            self._fail(e)
            raise
        except OSError as e:
            logger.error(f"Cannot prepare workspace: {e}")
            self._fail(e)
        finally:
            self.result.complete()
        return self.result

    # Stages

    def _execute(self) -> None:
        self._stage = Stage.CONFIGURE
        self.config = self.resolver.resolve(dry_run=self.dry_run, log_level=self.log_level)
        self._advance(PipelineState.CONFIGURED)
        if self.config.dry_run:
            logger.info("Dry-run mode enabled: deployments will be logged, not executed")

        diff_engine = CommitDiffEngine(self.repo_root, self.config.source_root, git=self.git)

        self._stage = Stage.VALIDATE_COMMITS
        diff_engine.validate(self.revisions)
        self._advance(PipelineState.COMMITS_VALIDATED)

        self._stage = Stage.GENERATE_PACKAGE
        try:
            self._plan_package(diff_engine)
        except PackageGenerationError as e:
            if not e.is_noop:
                raise
            self._finish_noop(e)
            return

        executor = RetryableExecutor(
            max_attempts=self.config.max_retries,
            delay=self.config.retry_delay,
            sleep=self.sleep,
            attempt_log=self.result.attempts,
        )
        self.client = SfdxClient(self.config, runner=self.runner)

        self._stage = Stage.AUTHENTICATE
        logger.info("Authenticating to Salesforce using JWT...")
        self.workspace.register_release(self.client.logout)
        executor.run(OperationKind.AUTHENTICATE, self.client.authenticate, AuthError)
        logger.info("Authentication successful")
        self._advance(PipelineState.AUTHENTICATED)

        self._stage = Stage.GENERATE_PACKAGE
        self._write_package()
        self._advance(PipelineState.PACKAGE_GENERATED)

        package_dir = self.workspace.package_dir
        test_units = [record.unit_name for record in self.result.test_units]

        self._stage = Stage.VALIDATE_DEPLOY
        logger.info("Validating deployment...")
        executor.run(
            OperationKind.VALIDATE_DEPLOY,
            lambda: self.client.validate_deploy(package_dir, test_units),
            ValidationError,
        )
        logger.info("Validation successful")
        self._advance(PipelineState.DEPLOY_VALIDATED)

        self._stage = Stage.DEPLOY
        logger.info(f"Deploying package to org: {self.client.alias}...")
        if test_units:
            logger.info(
                f"Running specific test classes in {self.config.parallel_test_batches} batches: "
                f"{','.join(test_units)}"
            )
        else:
            logger.info("No specific test classes found. Running local tests...")

        if self.config.dry_run:
            self._skip("deployment", self.client.deploy_command(package_dir, test_units))
        else:
            executor.run(
                OperationKind.DEPLOY,
                lambda: self.client.deploy(package_dir, test_units),
                DeployError,
            )
            logger.info("Deployment successful")
        self._advance(PipelineState.DEPLOYED)

        self._stage = Stage.DESTRUCTIVE_DEPLOY
        if self.builder.destructive.is_empty:
            logger.info("No destructive changes to deploy")
        else:
            destructive_dir = self.workspace.destructive_dir
            logger.info("Deploying destructive changes...")
            if self.config.dry_run:
                self._skip(
                    "destructive deployment",
                    self.client.destructive_command(destructive_dir),
                )
                logger.info("Destructive changes content:")
                logger.info(self.builder.destructive.to_xml().rstrip())
            else:
                executor.run(
                    OperationKind.DESTRUCTIVE_DEPLOY,
                    lambda: self.client.deploy_destructive(destructive_dir),
                    DestructiveDeployError,
                )
                logger.info("Destructive changes deployed successfully")
            self._advance(PipelineState.DESTRUCTIVE_DEPLOYED)

        self._advance(PipelineState.DONE)
        logger.info("Deployment completed successfully!")

    def _plan_package(self, diff_engine: CommitDiffEngine) -> None:
        """Compute changed files, test units and manifests in memory

        Raises:
            PackageGenerationError: If there are no changes or nothing to deploy
        """
        self._changed_files = diff_engine.changed_files(self.revisions)

        logger.info("Processing changed files and checking for test classes...")
        self.builder = ManifestBuilder(self.config.source_root, self.config.api_version)
        self.builder.process(self._changed_files)
        self.result.package_manifest = self.builder.package
        self.result.destructive_manifest = self.builder.destructive

        classifier = TestUnitClassifier(self.config.test_class_patterns)
        present = [Path(f.path) for f in self._changed_files if not f.is_deleted]
        self.result.test_units = classifier.collect(present, repo_root=self.repo_root)

        self.builder.ensure_deployable()
        logger.info(
            f"Package: {self.builder.package.member_count} member(s), "
            f"destructive: {self.builder.destructive.member_count} member(s), "
            f"test classes: {len(self.result.test_units)}"
        )

    def _write_package(self) -> None:
        """Copy changed sources and write manifests into the workspace"""
        package_dir = self.workspace.package_dir
        destructive_dir = self.workspace.destructive_dir
        changed_paths = {f.path for f in self._changed_files}

        for changed in self._changed_files:
            if changed.is_deleted:
                continue
            logger.debug(f"Copying {changed.path} to package directory")
            copy_preserving_path(self.repo_root, changed.path, package_dir)

            companion = changed.path + META_FILE_SUFFIX
            if (not changed.path.endswith(META_FILE_SUFFIX)
                    and companion not in changed_paths
                    and (self.repo_root / companion).is_file()):
                logger.debug(f"Copying {companion} to package directory")
                copy_preserving_path(self.repo_root, companion, package_dir)

        logger.info("Generating package.xml...")
        package_xml = self.builder.package.write(package_dir / PACKAGE_MANIFEST_FILE)
        logger.debug("Package.xml content:")
        logger.debug(package_xml.read_text(encoding="utf-8").rstrip())

        self.builder.destructive.write(destructive_dir / DESTRUCTIVE_MANIFEST_FILE)
        self.builder.empty_package().write(destructive_dir / PACKAGE_MANIFEST_FILE)

        names = [record.unit_name for record in self.result.test_units]
        self.workspace.test_classes_file.write_text(
            "".join(f"{name}\n" for name in names), encoding="utf-8"
        )

    # State handling

    def _advance(self, new_state: PipelineState) -> None:
        current = self.result.state
        if current.is_terminal:
            raise StateTransitionError(f"Cannot leave terminal state {current.name}")
        if new_state != PipelineState.FAILED and new_state.value <= current.value:
            raise StateTransitionError(f"Cannot move from {current.name} to {new_state.name}")
        logger.debug(f"State {current.name} -> {new_state.name}")
        self.result.state = new_state
        self.state_history.append(new_state)

    def _skip(self, what: str, command: List[str]) -> None:
        rendered = SfdxClient.render(command)
        logger.info(f"Dry-run mode: Skipping actual {what}")
        logger.info(f"Would have run: {rendered}")
        self.result.skipped_commands.append(rendered)

    def _finish_noop(self, error: PackageGenerationError) -> None:
        logger.info(str(error))
        self.result.noop_reason = error.reason
        self._advance(PipelineState.DONE)

    def _fail(self, error: BaseException) -> None:
        if self.result.state.is_terminal:
            return
        code = getattr(error, "error_code", None)
        prefix = f"[{code}] " if code else ""
        logger.error(f"{prefix}{self._stage.value} failed: {error}")
        self.result.error = error
        self.result.failed_stage = self._stage
        self._advance(PipelineState.FAILED)
