"""Core functionality for delta-deploy"""

from .config_resolver import ConfigResolver
from .commit_diff import CommitDiffEngine
from .test_classifier import TestUnitClassifier
from .manifest_builder import ManifestBuilder
from .retry import RetryableExecutor
from .workspace import Workspace

__all__ = [
    "ConfigResolver",
    "CommitDiffEngine",
    "TestUnitClassifier",
    "ManifestBuilder",
    "RetryableExecutor",
    "Workspace",
]
