"""Silverpeak Orchestrator REST API client package."""

from importlib.metadata import PackageNotFoundError, version

from silverpeak_orchestrator.client import OrchestratorClient
from silverpeak_orchestrator.errors import (
    ApplicationGroupNotFoundError,
    MissingCredentialsError,
    OrchestratorAPIError,
    OrchestratorConnectionError,
    OrchestratorError,
    OrchestratorRequestError,
    OrchestratorVersionError,
)

__all__ = [
    "ApplicationGroupNotFoundError",
    "MissingCredentialsError",
    "OrchestratorAPIError",
    "OrchestratorClient",
    "OrchestratorConnectionError",
    "OrchestratorError",
    "OrchestratorRequestError",
    "OrchestratorVersionError",
    "__version__",
]

try:
    __version__ = version("silverpeak-orchestrator")
except PackageNotFoundError:
    __version__ = "0.1.0"
