"""Data models for delta-deploy"""

from .config import Configuration
from .changes import RevisionPair, ChangedFile, TestUnitRecord
from .manifest import Manifest, ManifestEntry
from .result import CommandResult, DeployAttempt, ExecutionReport, PipelineResult

__all__ = [
    # Config models
    "Configuration",

    # Change models
    "RevisionPair",
    "ChangedFile",
    "TestUnitRecord",

    # Manifest models
    "Manifest",
    "ManifestEntry",

    # Result models
    "CommandResult",
    "DeployAttempt",
    "ExecutionReport",
    "PipelineResult",
]
