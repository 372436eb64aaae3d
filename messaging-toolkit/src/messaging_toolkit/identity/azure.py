"""
Azure Communication Services identity backend.

Wraps the async 'CommunicationIdentityClient'. A client is opened per call
from the connection string so the service holds no long-lived connections
between requests.
"""

from azure.communication.identity import CommunicationTokenScope, CommunicationUserIdentifier
from azure.communication.identity.aio import CommunicationIdentityClient
from azure.core.exceptions import AzureError
from loguru import logger

from messaging_toolkit.errors import IdentityServiceError
from messaging_toolkit.identity.base import AccessToken, IdentityService


class AzureIdentityService(IdentityService):
    def __init__(self, connection_string: str) -> None:
        if not connection_string:
            raise ValueError("An Azure Communication Services connection string is required")
        self.connection_string = connection_string

    def _client(self) -> CommunicationIdentityClient:
        return CommunicationIdentityClient.from_connection_string(self.connection_string)

    async def create_identity(self) -> str:
        try:
            async with self._client() as client:
                identifier = await client.create_user()
        except AzureError as exc:
            logger.error(f"Identity creation failed: {exc}")
            raise IdentityServiceError("Failed to create transport identity") from exc
        return identifier.properties["id"]

    async def get_token(self, identity: str, scopes: list[str]) -> AccessToken:
        token_scopes = [CommunicationTokenScope(scope) for scope in scopes]
        try:
            async with self._client() as client:
                access = await client.get_token(CommunicationUserIdentifier(identity), scopes=token_scopes)
        except AzureError as exc:
            logger.error(f"Token issuance failed for {identity}: {exc}")
            raise IdentityServiceError("Failed to issue access token") from exc
        return AccessToken(token=access.token, expires_on=access.expires_on)
