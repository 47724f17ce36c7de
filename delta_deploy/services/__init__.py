"""Business logic services for delta-deploy"""

from .sfdx_client import SfdxClient
from .orchestrator import DeploymentOrchestrator

__all__ = [
    "SfdxClient",
    "DeploymentOrchestrator",
]
