"""Utility functions for delta-deploy"""

from .file_utils import (
    safe_remove,
    ensure_parent_dir,
    copy_preserving_path,
    is_empty_file,
)

from .git_utils import (
    is_git_repository,
    resolve_revision,
    diff_changed_paths,
)

__all__ = [
    # File utilities
    "safe_remove",
    "ensure_parent_dir",
    "copy_preserving_path",
    "is_empty_file",

    # Git utilities
    "is_git_repository",
    "resolve_revision",
    "diff_changed_paths",
]
