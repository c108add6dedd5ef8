"""Client construction from resolved connection parameters."""

from silverpeak_orchestrator.client import OrchestratorClient
from silverpeak_orchestrator.connection import ConnectionParams


def create_client(connection: ConnectionParams) -> OrchestratorClient:
    """Create a configured Orchestrator client."""

    return OrchestratorClient(
        connection.server,
        user=connection.user,
        password=connection.password,
        api_key=connection.api_key,
        timeout=connection.timeout,
        verify_ssl=connection.verify_ssl,
    )
