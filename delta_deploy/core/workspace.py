"""Scoped temporary workspace with guaranteed release"""

import logging
import os
import signal
import sys
import tempfile
import threading
from pathlib import Path
from typing import Callable, Dict, List, Optional

from ..api.exceptions import WorkspaceInterrupted
from ..constants import (
    DESTRUCTIVE_DIR_PREFIX,
    PACKAGE_DIR_PREFIX,
    TEST_CLASSES_FILE_PREFIX,
)
from ..utils.file_utils import safe_remove

logger = logging.getLogger(__name__)


class Workspace:
    """Temporary directories and files for one run

    Use as a context manager. Leaving the block releases the workspace,
    whether the block returned, raised, or was interrupted by SIGINT or
    SIGTERM. Release runs at most once.
    """

    def __init__(self, base_dir: Optional[Path] = None, handle_signals: bool = True):
        """Initialize workspace

        Args:
            base_dir: Directory the temporary paths are created in
                (system temp directory by default)
            handle_signals: Convert SIGINT/SIGTERM into WorkspaceInterrupted
        """
        self.base_dir = Path(base_dir) if base_dir else None
        self.handle_signals = handle_signals
        self.package_dir: Optional[Path] = None
        self.destructive_dir: Optional[Path] = None
        self.test_classes_file: Optional[Path] = None
        self.release_count = 0
        self._release_actions: List[Callable[[], None]] = []
        self._original_handlers: Dict[int, object] = {}
        self._acquired = False
        self._released = False

    @property
    def paths(self) -> List[Path]:
        return [p for p in (self.package_dir, self.destructive_dir, self.test_classes_file) if p]

    @property
    def released(self) -> bool:
        return self._released

    def acquire(self) -> "Workspace":
        """Create the temporary paths and install signal handlers"""
        if self._acquired:
            return self
        self._acquired = True

        base = str(self.base_dir) if self.base_dir else None
        if self.base_dir:
            self.base_dir.mkdir(parents=True, exist_ok=True)

        try:
            self.package_dir = Path(tempfile.mkdtemp(prefix=PACKAGE_DIR_PREFIX, dir=base))
            self.destructive_dir = Path(tempfile.mkdtemp(prefix=DESTRUCTIVE_DIR_PREFIX, dir=base))
            fd, test_classes = tempfile.mkstemp(
                prefix=TEST_CLASSES_FILE_PREFIX, suffix=".txt", dir=base
            )
            os.close(fd)
            self.test_classes_file = Path(test_classes)
        except OSError:
            # __exit__ does not run when __enter__ raises
            for path in self.paths:
                safe_remove(path)
            self._released = True
            raise

        logger.debug(f"Initializing directories: {self.package_dir}, {self.destructive_dir}")

        if self.handle_signals:
            self._install_signal_handlers()
        return self

    def register_release(self, action: Callable[[], None]) -> None:
        """Add an action to run when the workspace is released

        Actions run in reverse registration order, before the temporary
        paths are removed.
        """
        self._release_actions.append(action)

    def release(self) -> bool:
        """Run release actions and remove temporary paths

        Returns:
            False if the workspace was already released
        """
        if self._released:
            return False
        self._released = True
        self.release_count += 1

        # A second interrupt must not cut cleanup short
        self._ignore_signals()
        logger.info("Cleaning up temporary files and org alias...")
        try:
            while self._release_actions:
                action = self._release_actions.pop()
                try:
                    action()
                except Exception as e:
                    logger.warning(f"Release action failed: {e}")
        finally:
            try:
                for path in self.paths:
                    safe_remove(path)
            finally:
                self._restore_signal_handlers()
        return True

    def __enter__(self) -> "Workspace":
        return self.acquire()

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()

    def _install_signal_handlers(self) -> None:
        if threading.current_thread() is not threading.main_thread():
            return

        signals = [signal.SIGINT]
        if sys.platform != "win32":
            signals.append(signal.SIGTERM)

        for signum in signals:
            self._original_handlers[signum] = signal.signal(signum, self._handle_signal)

    def _ignore_signals(self) -> None:
        for signum in self._original_handlers:
            signal.signal(signum, signal.SIG_IGN)

    def _restore_signal_handlers(self) -> None:
        for signum, handler in self._original_handlers.items():
            signal.signal(signum, handler)
        self._original_handlers.clear()

    def _handle_signal(self, signum, frame):
        logger.warning(f"Received signal {signum}, aborting run")
        raise WorkspaceInterrupted(signum)
