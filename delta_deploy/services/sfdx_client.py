"""Salesforce CLI wrapper for authentication and source deployment"""

import json
import logging
import shlex
import subprocess
import time
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from ..constants import (
    DESTRUCTIVE_MANIFEST_FILE,
    ORG_ALIAS_PREFIX,
    PACKAGE_MANIFEST_FILE,
    PACKAGE_SOURCE_DIR,
    TEST_LEVEL_LOCAL,
    TEST_LEVEL_SPECIFIED,
)
from ..models.config import Configuration
from ..models.result import CommandResult

logger = logging.getLogger(__name__)


class SfdxClient:
    """Build and run ``sfdx`` commands against a temporary org alias

    Every command is run with ``--json``; the parsed output becomes the
    result payload.
    """

    def __init__(self,
                 config: Configuration,
                 alias: Optional[str] = None,
                 runner: Callable[..., subprocess.CompletedProcess] = subprocess.run):
        """Initialize client

        Args:
            config: Run configuration
            alias: Org alias to authenticate under
            runner: Process runner with the signature of subprocess.run
        """
        self.config = config
        self.alias = alias or f"{ORG_ALIAS_PREFIX}{int(time.time())}"
        self.runner = runner

    @property
    def executable(self) -> str:
        return self.config.cli_executable

    # Command builders

    def auth_command(self) -> List[str]:
        return [
            self.executable, "force:auth:jwt:grant",
            "--clientid", self.config.client_id,
            "--jwtkeyfile", str(self.config.jwt_key_file),
            "--username", self.config.username,
            "--instanceurl", self.config.instance_url,
            "--setalias", self.alias,
            "--json",
        ]

    def deploy_command(self,
                       package_dir: Path,
                       test_units: Sequence[str] = (),
                       check_only: bool = False) -> List[str]:
        """Build a source deploy command

        Args:
            package_dir: Directory holding force-app/ and package.xml
            test_units: Test classes to run; RunLocalTests when empty
            check_only: Validate without saving

        Returns:
            Command argv
        """
        command = [
            self.executable, "force:source:deploy",
            "--sourcepath", str(package_dir / PACKAGE_SOURCE_DIR),
            "--manifest", str(package_dir / PACKAGE_MANIFEST_FILE),
            "--targetusername", self.alias,
        ]
        if check_only:
            command.append("--checkonly")
        command.append("--json")
        command.extend(self.test_options(test_units))
        return command

    def destructive_command(self, destructive_dir: Path) -> List[str]:
        return [
            self.executable, "force:source:deploy",
            "--manifest", str(destructive_dir / PACKAGE_MANIFEST_FILE),
            "--postdestructivechanges", str(destructive_dir / DESTRUCTIVE_MANIFEST_FILE),
            "--targetusername", self.alias,
            "--json",
        ]

    def logout_command(self) -> List[str]:
        return [
            self.executable, "force:auth:logout",
            "--targetusername", self.alias,
            "--noprompt",
        ]

    @staticmethod
    def test_options(test_units: Sequence[str]) -> List[str]:
        if test_units:
            return ["--testlevel", TEST_LEVEL_SPECIFIED, "--runtests", ",".join(test_units)]
        return ["--testlevel", TEST_LEVEL_LOCAL]

    @staticmethod
    def render(command: Sequence[str]) -> str:
        """Render a command as a shell-quoted string"""
        return shlex.join(command)

    # Operations

    def run(self, command: List[str]) -> CommandResult:
        """Run a command and parse its JSON output

        Raises:
            OSError: If the executable cannot be started
        """
        logger.debug(f"Running: {self.render(command)}")
        completed = self.runner(command, capture_output=True, text=True)
        stdout = completed.stdout or ""
        stderr = completed.stderr or ""
        if stderr.strip():
            logger.debug(stderr.strip())

        try:
            payload = json.loads(stdout) if stdout.strip() else {}
        except json.JSONDecodeError:
            payload = {"raw": stdout}
        if not isinstance(payload, dict):
            payload = {"result": payload}

        return CommandResult(
            command=list(command),
            returncode=completed.returncode,
            payload=payload,
            stderr=stderr,
        )

    def authenticate(self) -> CommandResult:
        return self.run(self.auth_command())

    def validate_deploy(self, package_dir: Path, test_units: Sequence[str] = ()) -> CommandResult:
        return self.run(self.deploy_command(package_dir, test_units, check_only=True))

    def deploy(self, package_dir: Path, test_units: Sequence[str] = ()) -> CommandResult:
        return self.run(self.deploy_command(package_dir, test_units))

    def deploy_destructive(self, destructive_dir: Path) -> CommandResult:
        return self.run(self.destructive_command(destructive_dir))

    def logout(self) -> None:
        """Log the temporary alias out, ignoring failures"""
        try:
            result = self.run(self.logout_command())
        except OSError as e:
            logger.debug(f"Logout of {self.alias} skipped: {e}")
            return
        if not result.success:
            logger.debug(f"Logout of {self.alias} failed: {result.reason}")
