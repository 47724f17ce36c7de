"""Delta Deploy - incremental Salesforce deployments between two commits.

Diffs two git revisions, builds package and destructive-change manifests,
detects the affected test classes, and validates and deploys the result
through the sfdx CLI with bounded retries and a dry-run mode.
"""

from .__version__ import __version__, __version_info__, __license__

# Core components
from .core import (
    ConfigResolver,
    CommitDiffEngine,
    TestUnitClassifier,
    ManifestBuilder,
    RetryableExecutor,
    Workspace,
)
from .services import SfdxClient, DeploymentOrchestrator

# Data models
from .models import (
    Configuration,
    RevisionPair,
    ChangedFile,
    TestUnitRecord,
    Manifest,
    ManifestEntry,
    CommandResult,
    DeployAttempt,
    ExecutionReport,
    PipelineResult,
)
from .constants import PipelineState, Stage, OperationKind

# Exceptions
from .api.exceptions import (
    DeltaDeployError,
    ConfigError,
    CommitError,
    PackageGenerationError,
    RemoteOperationError,
    AuthError,
    ValidationError,
    DeployError,
    DestructiveDeployError,
    StateTransitionError,
    WorkspaceInterrupted,
)

__all__ = [
    # Version information
    "__version__",
    "__version_info__",
    "__license__",

    # Core components
    "ConfigResolver",
    "CommitDiffEngine",
    "TestUnitClassifier",
    "ManifestBuilder",
    "RetryableExecutor",
    "Workspace",
    "SfdxClient",
    "DeploymentOrchestrator",

    # Data models
    "Configuration",
    "RevisionPair",
    "ChangedFile",
    "TestUnitRecord",
    "Manifest",
    "ManifestEntry",
    "CommandResult",
    "DeployAttempt",
    "ExecutionReport",
    "PipelineResult",
    "PipelineState",
    "Stage",
    "OperationKind",

    # Exceptions
    "DeltaDeployError",
    "ConfigError",
    "CommitError",
    "PackageGenerationError",
    "RemoteOperationError",
    "AuthError",
    "ValidationError",
    "DeployError",
    "DestructiveDeployError",
    "StateTransitionError",
    "WorkspaceInterrupted",
]
