"""Configuration resolution from file and environment"""

import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml

from ..api.exceptions import ConfigError
from ..constants import (
    DEFAULT_API_VERSION,
    DEFAULT_CLI_EXECUTABLE,
    DEFAULT_LOG_LEVEL,
    DEFAULT_PARALLEL_TEST_BATCHES,
    DEFAULT_RETRY_COUNT,
    DEFAULT_RETRY_DELAY,
    DEFAULT_SOURCE_ROOT,
    DEFAULT_TEST_CLASS_PATTERNS,
    ENV_CLIENT_ID,
    ENV_INSTANCE_URL,
    ENV_JWT_KEY_FILE,
    ENV_USERNAME,
    LOG_LEVELS,
)
from ..models.config import Configuration

logger = logging.getLogger(__name__)

# Logical setting -> (file key, environment variable, description)
CREDENTIAL_SETTINGS = (
    ("username", ENV_USERNAME, "Username"),
    ("client_id", ENV_CLIENT_ID, "Client ID"),
    ("jwt_key_file", ENV_JWT_KEY_FILE, "JWT key file"),
    ("instance_url", ENV_INSTANCE_URL, "Instance URL"),
)


class ConfigResolver:
    """Merge file-based and environment-based settings

    File values are defaults; non-empty environment values of the same
    setting override them.
    """

    def __init__(self,
                 config_path: Optional[Path] = None,
                 environ: Optional[Mapping[str, str]] = None):
        """Initialize resolver

        Args:
            config_path: Optional YAML or JSON configuration file
            environ: Environment mapping (defaults to os.environ)
        """
        self.config_path = Path(config_path) if config_path else None
        self.environ = os.environ if environ is None else environ

    def load_file(self) -> Dict[str, Any]:
        """Load the configuration file

        Returns:
            Parsed settings, empty when no file was given

        Raises:
            ConfigError: If the file is missing or malformed
        """
        if self.config_path is None:
            return {}

        if not self.config_path.is_file():
            raise ConfigError(f"Configuration file not found: {self.config_path}")

        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Cannot read configuration file {self.config_path}: {e}") from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(f"Configuration file {self.config_path} must contain a mapping")
        return data

    def resolve(self, dry_run: bool = False, log_level: str = DEFAULT_LOG_LEVEL) -> Configuration:
        """Resolve and validate the run configuration

        Args:
            dry_run: Suppress side-effecting remote calls
            log_level: info or debug

        Returns:
            Immutable configuration

        Raises:
            ConfigError: If a required setting is missing or invalid
        """
        source = str(self.config_path) if self.config_path else "environment"
        logger.info(f"Loading configuration from {source}...")
        data = self.load_file()

        credentials = {}
        for key, env_name, description in CREDENTIAL_SETTINGS:
            value = self.environ.get(env_name) or _as_text(data.get(key))
            if not value:
                raise ConfigError(f"{description} not provided in config or {env_name}")
            credentials[key] = value

        key_file = Path(credentials["jwt_key_file"]).expanduser()
        if not key_file.is_file():
            raise ConfigError(f"JWT key file not found at {key_file}")

        patterns = self._resolve_patterns(data.get("test_class_patterns"))

        if log_level not in LOG_LEVELS:
            raise ConfigError(f"Invalid log level: {log_level} (expected one of {', '.join(LOG_LEVELS)})")

        config = Configuration(
            username=credentials["username"],
            client_id=credentials["client_id"],
            jwt_key_file=key_file,
            instance_url=credentials["instance_url"],
            test_class_patterns=patterns,
            max_retries=_positive_int(data, "max_retries", DEFAULT_RETRY_COUNT),
            retry_delay=_non_negative_number(data, "retry_delay", DEFAULT_RETRY_DELAY),
            parallel_test_batches=_positive_int(
                data, "parallel_test_batches", DEFAULT_PARALLEL_TEST_BATCHES
            ),
            dry_run=dry_run,
            log_level=log_level,
            source_root=_as_text(data.get("source_root")).strip("/") or DEFAULT_SOURCE_ROOT,
            api_version=_as_text(data.get("api_version")) or DEFAULT_API_VERSION,
            cli_executable=_as_text(data.get("cli_executable")) or DEFAULT_CLI_EXECUTABLE,
        )
        logger.debug(f"Resolved configuration: {config.masked()}")
        return config

    def _resolve_patterns(self, raw: Any) -> Tuple[str, ...]:
        if raw is None or raw == []:
            return DEFAULT_TEST_CLASS_PATTERNS

        if isinstance(raw, str) or not isinstance(raw, (list, tuple)):
            raise ConfigError("test_class_patterns must be a list of regular expressions")

        patterns = []
        for pattern in raw:
            pattern = _as_text(pattern)
            if not pattern:
                continue
            try:
                re.compile(pattern)
            except re.error as e:
                raise ConfigError(f"Invalid test class pattern '{pattern}': {e}") from e
            patterns.append(pattern)

        if not patterns:
            return DEFAULT_TEST_CLASS_PATTERNS

        logger.info(f"Loaded custom test class patterns: {' '.join(patterns)}")
        return tuple(patterns)


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _positive_int(data: Dict[str, Any], key: str, default: int) -> int:
    value = data.get(key, default)
    if isinstance(value, bool):
        raise ConfigError(f"{key} must be a positive integer")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{key} must be a positive integer, got {value!r}")
    if number < 1:
        raise ConfigError(f"{key} must be a positive integer, got {value!r}")
    return number


def _non_negative_number(data: Dict[str, Any], key: str, default: float) -> float:
    value = data.get(key, default)
    if isinstance(value, bool):
        raise ConfigError(f"{key} must be a non-negative number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{key} must be a non-negative number, got {value!r}")
    if number < 0:
        raise ConfigError(f"{key} must be a non-negative number, got {value!r}")
    return number
