# delta_deploy/cli/main.py
"""Main CLI entry point for delta-deploy"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler

from ..__version__ import __version__
from ..constants import (
    APP_NAME,
    DEFAULT_CONFIG_FILE,
    DEFAULT_LOG_LEVEL,
    LOG_DATE_FORMAT,
    LOG_FILE_PATTERN,
    LOG_FILE_TIMESTAMP_FORMAT,
    LOG_FORMAT,
    LOG_LEVELS,
)
from ..core import ConfigResolver
from ..models import RevisionPair
from ..services import DeploymentOrchestrator
from .utils.output import format_pipeline_result

console = Console()


def default_log_file() -> Path:
    """Get a timestamped log file name in the current directory"""
    timestamp = datetime.now().strftime(LOG_FILE_TIMESTAMP_FORMAT)
    return Path(LOG_FILE_PATTERN.format(timestamp=timestamp))


def setup_logging(level: str = DEFAULT_LOG_LEVEL, log_file: Optional[Path] = None) -> None:
    """Setup logging configuration

    Args:
        level: info or debug
        log_file: File receiving the timestamped, level-tagged log stream
    """
    debug = level == "debug"
    handlers = [
        RichHandler(
            console=console,
            show_time=True,
            show_path=debug,
            markup=False,
            log_time_format=f"[{LOG_DATE_FORMAT}]",
            rich_tracebacks=True,
            tracebacks_suppress=[click]
        )
    ]

    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
        handlers.append(file_handler)

    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(message)s",
        handlers=handlers,
        force=True
    )


class DeployCommand(click.Command):
    """Command reporting usage errors with exit status 1"""

    def parse_args(self, ctx, args):
        try:
            return super().parse_args(ctx, args)
        except click.UsageError as e:
            e.exit_code = 1
            raise


@click.command(name=APP_NAME, cls=DeployCommand)
@click.argument('start_revision')
@click.argument('end_revision')
@click.option('--config', 'config_path', type=click.Path(dir_okay=False, path_type=Path),
              help=f'Configuration file (default: ./{DEFAULT_CONFIG_FILE} when present)')
@click.option('--dry-run', is_flag=True, help='Log deploy commands instead of running them')
@click.option('--log-level', type=click.Choice(LOG_LEVELS), default=DEFAULT_LOG_LEVEL,
              show_default=True, help='Log verbosity')
@click.option('--log-file', type=click.Path(dir_okay=False, path_type=Path),
              help='Log file (default: deploy_<timestamp>.log)')
@click.option('--repo-root', type=click.Path(file_okay=False, exists=True, path_type=Path),
              default='.', show_default=True, help='Repository checked out at the end revision')
@click.version_option(__version__, prog_name=APP_NAME)
def cli(start_revision, end_revision, config_path, dry_run, log_level, log_file, repo_root):
    """Deploy the changes between two commits to a Salesforce org

    Builds a delta package from the files under force-app/main/default
    that differ between START_REVISION and END_REVISION, detects the test
    classes among them, then validates and deploys the package and any
    destructive changes through the sfdx CLI.

    Examples:

        # Deploy the last commit
        delta-deploy HEAD~1 HEAD

        # Show what would be deployed
        delta-deploy --dry-run --log-level debug v1.4.0 v1.5.0
    """
    setup_logging(log_level, log_file or default_log_file())

    if config_path is None:
        default_config = Path(DEFAULT_CONFIG_FILE)
        config_path = default_config if default_config.is_file() else None

    orchestrator = DeploymentOrchestrator(
        revisions=RevisionPair(start_revision, end_revision),
        resolver=ConfigResolver(config_path),
        dry_run=dry_run,
        log_level=log_level,
        repo_root=repo_root,
    )

    try:
        result = orchestrator.run()
    except KeyboardInterrupt:
        console.print("\n[yellow]Deployment cancelled[/yellow]")
        sys.exit(130)

    format_pipeline_result(result)
    sys.exit(result.exit_code)


def main():
    """Main entry point for the CLI application"""
    try:
        cli(prog_name=APP_NAME)

    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        sys.exit(130)


if __name__ == "__main__":
    main()
