"""
Identity service abstraction.

The transport keeps its own notion of users, decoupled from local user ids.
An 'IdentityService' mints those transport identities and issues short-lived,
scope-limited access tokens for them. Implementations must raise
'IdentityServiceError' for any failure of the underlying service.

Concrete implementations: 'AzureIdentityService'.
"""

from abc import ABC, abstractmethod
from datetime import datetime

from pydantic import BaseModel

CHAT_SCOPE = "chat"


class AccessToken(BaseModel):
    token: str
    expires_on: datetime | None = None


class IdentityService(ABC):
    @abstractmethod
    async def create_identity(self) -> str:
        """Mint a new transport identity and return its raw id."""
        pass

    @abstractmethod
    async def get_token(self, identity: str, scopes: list[str]) -> AccessToken:
        pass
