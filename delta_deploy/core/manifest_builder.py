"""Incremental package and destructive-changes manifest construction"""

import logging
from pathlib import PurePosixPath
from typing import Iterable, Optional, Tuple

from ..api.exceptions import PackageGenerationError
from ..constants import DEFAULT_API_VERSION, DEFAULT_SOURCE_ROOT
from ..models.changes import ChangedFile
from ..models.manifest import Manifest

logger = logging.getLogger(__name__)


class ManifestBuilder:
    """Accumulate package and destructive members as changes are processed

    Both manifests live in memory and are serialized once, so several
    changes of the same metadata type always end up in one group.
    """

    def __init__(self,
                 source_root: str = DEFAULT_SOURCE_ROOT,
                 api_version: str = DEFAULT_API_VERSION):
        self.source_root = source_root.strip("/")
        self.package = Manifest(api_version=api_version)
        self.destructive = Manifest(api_version=api_version)

    def derive(self, path: str) -> Optional[Tuple[str, str]]:
        """Derive metadata type and member name from a path

        The type is the directory right below the source root and the
        member is the file name up to its first dot.

        Args:
            path: Repository-relative path

        Returns:
            (metadata_type, member) or None for paths without a type
        """
        parts = PurePosixPath(path.replace("\\", "/")).parts
        root_parts = PurePosixPath(self.source_root).parts
        if tuple(parts[:len(root_parts)]) != root_parts:
            return None

        rest = parts[len(root_parts):]
        if len(rest) < 2:
            return None

        metadata_type = rest[0]
        member = rest[-1].split(".")[0]
        if not metadata_type or not member:
            return None
        return metadata_type, member

    def add_present(self, path: str) -> bool:
        """Add a modified or added file to the package manifest

        Returns:
            True if the manifest changed
        """
        derived = self.derive(path)
        if derived is None:
            logger.debug(f"Ignoring {path}: no metadata type")
            return False
        metadata_type, member = derived
        added = self.package.add(metadata_type, member)
        if added:
            logger.debug(f"Adding {member} to package ({metadata_type})")
        return added

    def add_deleted(self, path: str) -> bool:
        """Add a deleted file to the destructive manifest

        Returns:
            True if the manifest changed
        """
        derived = self.derive(path)
        if derived is None:
            logger.debug(f"Ignoring deleted {path}: no metadata type")
            return False
        metadata_type, member = derived
        added = self.destructive.add(metadata_type, member)
        if added:
            logger.info(f"Adding {member} to destructive changes ({metadata_type})")
        return added

    def add(self, changed_file: ChangedFile) -> bool:
        if changed_file.is_deleted:
            return self.add_deleted(changed_file.path)
        return self.add_present(changed_file.path)

    def process(self, changed_files: Iterable[ChangedFile]) -> "ManifestBuilder":
        """Route every changed file into its manifest"""
        for changed_file in changed_files:
            self.add(changed_file)
        return self

    def ensure_deployable(self) -> None:
        """Check that there is something to deploy

        Raises:
            PackageGenerationError: If the package manifest is empty
        """
        if self.package.is_empty:
            raise PackageGenerationError(PackageGenerationError.NO_DEPLOYABLE_METADATA)

    def empty_package(self) -> Manifest:
        """Get an empty manifest to pair with destructive changes"""
        return Manifest(api_version=self.package.api_version)
