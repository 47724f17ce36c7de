# delta_deploy/utils/file_utils.py
"""File operation utilities"""

import logging
import shutil
from pathlib import Path

logger = logging.getLogger(__name__)


def safe_remove(path: Path) -> bool:
    """
    Safely remove file or directory

    Args:
        path: Path to remove

    Returns:
        True if the path is gone afterwards
    """
    try:
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        elif path.exists() or path.is_symlink():
            path.unlink()
        return True
    except OSError as e:
        logger.warning(f"Could not remove {path}: {e}")
        return False


def ensure_parent_dir(file_path: Path) -> Path:
    """
    Ensure parent directory exists

    Args:
        file_path: File path

    Returns:
        Parent directory path
    """
    parent = file_path.parent
    parent.mkdir(parents=True, exist_ok=True)
    return parent


def copy_preserving_path(source_root: Path, relative_path: str, destination_root: Path) -> Path:
    """
    Copy a file into another tree at the same relative location

    Args:
        source_root: Root the relative path is resolved against
        relative_path: Forward-slash path relative to source_root
        destination_root: Root of the destination tree

    Returns:
        Destination file path
    """
    src = source_root / relative_path
    dst = destination_root / relative_path
    ensure_parent_dir(dst)
    shutil.copy2(src, dst)
    return dst


def is_empty_file(file_path: Path) -> bool:
    """
    Check if a file is missing, unreadable or has no content

    Args:
        file_path: Path to file

    Returns:
        True if there is nothing to read
    """
    try:
        return file_path.stat().st_size == 0
    except OSError:
        return True
