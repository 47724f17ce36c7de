"""API layer for delta-deploy"""

from .exceptions import (
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
