"""Exception definitions for delta-deploy"""

from ..constants import ErrorCode


class DeltaDeployError(Exception):
    """Base exception for delta-deploy"""

    def __init__(self, message: str, error_code: str = None):
        super().__init__(message)
        self.error_code = error_code


class ConfigError(DeltaDeployError):
    """Missing or invalid configuration setting"""

    def __init__(self, message: str):
        super().__init__(message, ErrorCode.CONFIG_ERROR)


class CommitError(DeltaDeployError):
    """Revision cannot be resolved or diffed"""

    def __init__(self, message: str, revision: str = None):
        super().__init__(message, ErrorCode.COMMIT_ERROR)
        self.revision = revision


class PackageGenerationError(DeltaDeployError):
    """Package could not be generated

    Both reasons end the run successfully without contacting the platform
    further. Callers tell them apart through ``reason``.
    """

    NO_CHANGES = "no changes"
    NO_DEPLOYABLE_METADATA = "no deployable metadata"

    def __init__(self, reason: str, message: str = None):
        if message is None:
            if reason == self.NO_CHANGES:
                message = "No changes detected between commits"
            elif reason == self.NO_DEPLOYABLE_METADATA:
                message = "No metadata to deploy"
            else:
                message = reason
        super().__init__(message, ErrorCode.PACKAGE_GENERATION_ERROR)
        self.reason = reason

    @property
    def is_noop(self) -> bool:
        """Check if the run should end successfully"""
        return self.reason in (self.NO_CHANGES, self.NO_DEPLOYABLE_METADATA)


class RemoteOperationError(DeltaDeployError):
    """Remote operation failed after exhausting its attempts"""

    default_code = None

    def __init__(self, message: str, operation: str = None,
                 attempts: int = 0, last_result=None):
        super().__init__(message, self.default_code)
        self.operation = operation
        self.attempts = attempts
        self.last_result = last_result


class AuthError(RemoteOperationError):
    """Authentication against the platform failed"""
    default_code = ErrorCode.AUTH_FAILED


class ValidationError(RemoteOperationError):
    """Check-only deployment failed"""
    default_code = ErrorCode.VALIDATION_FAILED


class DeployError(RemoteOperationError):
    """Deployment failed"""
    default_code = ErrorCode.DEPLOY_FAILED


class DestructiveDeployError(RemoteOperationError):
    """Destructive changes deployment failed"""
    default_code = ErrorCode.DESTRUCTIVE_DEPLOY_FAILED


class StateTransitionError(DeltaDeployError):
    """Pipeline state moved backwards or out of a terminal state"""

    def __init__(self, message: str):
        super().__init__(message, ErrorCode.INVALID_STATE_TRANSITION)


class WorkspaceInterrupted(KeyboardInterrupt):
    """Process received an interruption signal while a workspace was held"""

    def __init__(self, signum: int):
        super().__init__(f"Interrupted by signal {signum}")
        self.signum = signum
        self.error_code = ErrorCode.INTERRUPTED
