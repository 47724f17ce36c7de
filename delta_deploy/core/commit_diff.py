"""Commit validation and changed-file discovery"""

import logging
from pathlib import Path
from typing import List

from ..api.exceptions import CommitError, PackageGenerationError
from ..constants import DEFAULT_SOURCE_ROOT, FilePresence
from ..models.changes import ChangedFile, RevisionPair
from ..utils import git_utils

logger = logging.getLogger(__name__)


class CommitDiffEngine:
    """Resolve a revision pair and list the files it changes

    The version-control collaborator needs ``is_git_repository``,
    ``resolve_revision`` and ``diff_changed_paths`` with the signatures of
    the functions in ``utils.git_utils``, which is the default.
    """

    def __init__(self,
                 repo_root: Path,
                 source_root: str = DEFAULT_SOURCE_ROOT,
                 git=None):
        self.repo_root = Path(repo_root)
        self.source_root = source_root.strip("/")
        self.git = git or git_utils

    def validate(self, revisions: RevisionPair) -> None:
        """Check that both revisions resolve

        Raises:
            CommitError: If the repository root is not a git working copy
                or either revision is unresolvable
        """
        logger.info("Validating commit IDs...")
        if not self.git.is_git_repository(self.repo_root):
            raise CommitError(f"Not a git repository: {self.repo_root}")
        for revision in (revisions.start, revisions.end):
            commit = self.git.resolve_revision(self.repo_root, revision)
            if not commit:
                raise CommitError(f"Invalid commit ID: {revision}", revision=revision)
            logger.debug(f"Resolved {revision} to {commit}")

    def changed_files(self, revisions: RevisionPair) -> List[ChangedFile]:
        """List files under the source root changed between the revisions

        Presence is decided by the working copy, which is expected to be
        checked out at the end revision.

        Returns:
            Changed files in diff order, without duplicates

        Raises:
            PackageGenerationError: If nothing changed (NO_CHANGES)
        """
        logger.info(
            f"Generating list of changed files between {revisions.start} and {revisions.end}..."
        )
        paths = self.git.diff_changed_paths(
            self.repo_root, revisions.start, revisions.end, self.source_root
        )

        changed = []
        seen = set()
        for path in paths:
            path = path.strip().replace("\\", "/")
            if not path or path in seen:
                continue
            seen.add(path)
            presence = self.presence_of(path)
            logger.debug(f"{path}: {presence.value}")
            changed.append(ChangedFile(path=path, presence=presence))

        if not changed:
            raise PackageGenerationError(PackageGenerationError.NO_CHANGES)

        logger.info(f"Found {len(changed)} changed file(s)")
        return changed

    def presence_of(self, path: str) -> FilePresence:
        if (self.repo_root / path).is_file():
            return FilePresence.PRESENT
        return FilePresence.DELETED
