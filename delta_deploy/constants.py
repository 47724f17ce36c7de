"""Global constants for delta-deploy"""

from enum import Enum

APP_NAME = "delta-deploy"

# Configuration
DEFAULT_CONFIG_FILE = "deploy_config.json"
DEFAULT_LOG_LEVEL = "info"
LOG_LEVELS = ("info", "debug")
DEFAULT_RETRY_COUNT = 3
DEFAULT_RETRY_DELAY = 30  # seconds
DEFAULT_PARALLEL_TEST_BATCHES = 10

# Default test class patterns, evaluated in order against the file name
DEFAULT_TEST_CLASS_PATTERNS = (
    r"Test\.cls$",
    r"_Test\.cls$",
    r"^Test_.*\.cls$",
)

# Source tree
DEFAULT_SOURCE_ROOT = "force-app/main/default"
PACKAGE_SOURCE_DIR = "force-app"
CLASS_FILE_EXTENSION = ".cls"
META_FILE_SUFFIX = "-meta.xml"
TEST_ANNOTATION = "@isTest"

# Platform CLI
DEFAULT_CLI_EXECUTABLE = "sfdx"
ORG_ALIAS_PREFIX = "temp_deploy_org_"
TEST_LEVEL_SPECIFIED = "RunSpecifiedTests"
TEST_LEVEL_LOCAL = "RunLocalTests"

# Manifests
DEFAULT_API_VERSION = "58.0"
MANIFEST_NAMESPACE = "http://soap.sforce.com/2006/04/metadata"
PACKAGE_MANIFEST_FILE = "package.xml"
DESTRUCTIVE_MANIFEST_FILE = "destructiveChanges.xml"

# Workspace naming
PACKAGE_DIR_PREFIX = "delta_package_"
DESTRUCTIVE_DIR_PREFIX = "destructive_changes_"
TEST_CLASSES_FILE_PREFIX = "test_classes_"

# Logging
LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_PATTERN = "deploy_{timestamp}.log"
LOG_FILE_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"

# Environment variables
ENV_USERNAME = "SF_USERNAME"
ENV_CLIENT_ID = "SF_CLIENT_ID"
ENV_JWT_KEY_FILE = "SF_JWT_KEY_FILE"
ENV_INSTANCE_URL = "SF_INSTANCE_URL"


class FilePresence(Enum):
    """Presence of a changed file in the end revision"""
    PRESENT = "present"
    DELETED = "deleted"


class DetectionReason(Enum):
    """Why a source file was recognized as a test unit"""
    ANNOTATION = "annotation"
    PATTERN = "pattern"


class OperationKind(Enum):
    """Remote operations run through the retry executor"""
    AUTHENTICATE = "authenticate"
    VALIDATE_DEPLOY = "validate_deploy"
    DEPLOY = "deploy"
    DESTRUCTIVE_DEPLOY = "destructive_deploy"


class AttemptOutcome(Enum):
    """Outcome of a single attempt"""
    SUCCESS = "success"
    FAILURE = "failure"


class Stage(Enum):
    """Pipeline stages, used to tag FAILED(stage)"""
    CONFIGURE = "configure"
    VALIDATE_COMMITS = "validate_commits"
    AUTHENTICATE = "authenticate"
    GENERATE_PACKAGE = "generate_package"
    VALIDATE_DEPLOY = "validate_deploy"
    DEPLOY = "deploy"
    DESTRUCTIVE_DEPLOY = "destructive_deploy"


class PipelineState(Enum):
    """Pipeline states, in forward order"""
    INIT = 0
    CONFIGURED = 1
    COMMITS_VALIDATED = 2
    AUTHENTICATED = 3
    PACKAGE_GENERATED = 4
    DEPLOY_VALIDATED = 5
    DEPLOYED = 6
    DESTRUCTIVE_DEPLOYED = 7
    DONE = 8
    FAILED = 9

    @property
    def is_terminal(self) -> bool:
        return self in (PipelineState.DONE, PipelineState.FAILED)


# Error codes
class ErrorCode:
    CONFIG_ERROR = "DD001"
    COMMIT_ERROR = "DD002"
    PACKAGE_GENERATION_ERROR = "DD003"
    AUTH_FAILED = "DD004"
    VALIDATION_FAILED = "DD005"
    DEPLOY_FAILED = "DD006"
    DESTRUCTIVE_DEPLOY_FAILED = "DD007"
    INVALID_STATE_TRANSITION = "DD008"
    INTERRUPTED = "DD009"
