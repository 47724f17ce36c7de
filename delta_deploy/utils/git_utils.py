"""Git operation utilities"""

import logging
import subprocess
from pathlib import Path
from typing import List, Optional

from ..api.exceptions import CommitError

logger = logging.getLogger(__name__)


def is_git_repository(path: Path) -> bool:
    """
    Check if directory is a Git repository

    Args:
        path: Directory path

    Returns:
        True if it's a Git repository
    """
    try:
        result = subprocess.run(
            ['git', 'rev-parse', '--is-inside-work-tree'],
            cwd=path,
            capture_output=True,
            text=True
        )
        return result.returncode == 0
    except (subprocess.CalledProcessError, FileNotFoundError):
        return False


def resolve_revision(path: Path, revision: str) -> Optional[str]:
    """
    Resolve a revision to its commit hash

    Args:
        path: Repository path
        revision: Commit id, branch, tag or any other revision expression

    Returns:
        Full commit hash or None if the revision does not resolve
    """
    if not revision or revision.startswith('-'):
        return None

    try:
        result = subprocess.run(
            ['git', 'rev-parse', '--verify', '--quiet', f'{revision}^{{commit}}'],
            cwd=path,
            capture_output=True,
            text=True
        )
    except FileNotFoundError:
        return None

    if result.returncode != 0:
        return None
    return result.stdout.strip() or None


def diff_changed_paths(path: Path, start: str, end: str, scope: str) -> List[str]:
    """
    List paths that differ between two revisions

    Args:
        path: Repository path
        start: Start revision
        end: End revision
        scope: Path the diff is restricted to

    Returns:
        Repository-relative paths, in git output order

    Raises:
        CommitError: If git cannot produce the diff
    """
    try:
        result = subprocess.run(
            ['git', 'diff', '--name-only', '-z', start, end, '--', scope],
            cwd=path,
            capture_output=True,
            text=True,
            encoding='utf-8',
            check=True
        )
    except subprocess.CalledProcessError as e:
        raise CommitError(
            f"git diff failed between {start} and {end}: {e.stderr.strip()}"
        ) from e
    except FileNotFoundError as e:
        raise CommitError("git executable not found") from e

    # -z keeps unusual and non-ASCII paths unquoted
    return [p for p in result.stdout.split('\0') if p]
