"""Configuration data models"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Tuple

from ..constants import (
    DEFAULT_API_VERSION,
    DEFAULT_CLI_EXECUTABLE,
    DEFAULT_LOG_LEVEL,
    DEFAULT_PARALLEL_TEST_BATCHES,
    DEFAULT_RETRY_COUNT,
    DEFAULT_RETRY_DELAY,
    DEFAULT_SOURCE_ROOT,
    DEFAULT_TEST_CLASS_PATTERNS,
)


@dataclass(frozen=True)
class Configuration:
    """Resolved run configuration

    Built once by ConfigResolver and passed explicitly to every component
    that needs it.
    """

    username: str
    client_id: str
    jwt_key_file: Path
    instance_url: str
    test_class_patterns: Tuple[str, ...] = DEFAULT_TEST_CLASS_PATTERNS
    max_retries: int = DEFAULT_RETRY_COUNT
    retry_delay: float = DEFAULT_RETRY_DELAY
    parallel_test_batches: int = DEFAULT_PARALLEL_TEST_BATCHES
    dry_run: bool = False
    log_level: str = DEFAULT_LOG_LEVEL
    source_root: str = DEFAULT_SOURCE_ROOT
    api_version: str = DEFAULT_API_VERSION
    cli_executable: str = DEFAULT_CLI_EXECUTABLE

    def masked(self) -> Dict[str, Any]:
        """Get a summary that is safe to log"""
        return {
            "username": self.username,
            "client_id": _mask(self.client_id),
            "jwt_key_file": str(self.jwt_key_file),
            "instance_url": self.instance_url,
            "test_class_patterns": list(self.test_class_patterns),
            "max_retries": self.max_retries,
            "retry_delay": self.retry_delay,
            "parallel_test_batches": self.parallel_test_batches,
            "dry_run": self.dry_run,
            "log_level": self.log_level,
            "source_root": self.source_root,
            "api_version": self.api_version,
        }


def _mask(value: str, visible: int = 4) -> str:
    if len(value) <= visible:
        return "*" * len(value)
    return "*" * (len(value) - visible) + value[-visible:]
