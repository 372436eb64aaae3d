"""
Identity and credential issuer.

'IdentityIssuer' sits between the user directory and the external identity
service. It lazily attaches a transport identity to a user the first time one
is needed and mints chat-scoped tokens on demand.

Minting is single-flight per user id: concurrent first-time callers queue on a
per-user lock, and whoever enters second re-reads the directory and reuses the
identity the first caller stored. Without this, both callers would mint and
only the last write would survive, leaking the other identity.
"""

from loguru import logger

from messaging_toolkit.conversation_database.data_models.user import User, UserDatabase
from messaging_toolkit.errors import IdentityServiceError
from messaging_toolkit.identity.base import CHAT_SCOPE, IdentityService
from messaging_toolkit.utils.locks import KeyedLock
from messaging_toolkit.utils.time import get_current_datetime


class IdentityIssuer:
    def __init__(self, user_db: UserDatabase, identity_service: IdentityService) -> None:
        self.user_db = user_db
        self.identity_service = identity_service
        self._minting = KeyedLock()

    async def ensure_identity(self, user: User) -> User:
        if user.transport_identity:
            return user

        async with self._minting.hold(user.id):
            stored = await self.user_db.get_user_by_id(user.id)
            if stored is not None and stored.transport_identity:
                return stored

            identity = await self.identity_service.create_identity()
            base = stored or user
            updated = base.model_copy(update={"transport_identity": identity, "last_seen_at": get_current_datetime()})
            logger.info(f"Minted transport identity for user {user.id!r}")
            return await self.user_db.save_user(updated)

    async def issue_token(self, user: User) -> str:
        target = await self.ensure_identity(user)
        if not target.transport_identity:
            raise IdentityServiceError(f"User {user.id} has no transport identity")
        access = await self.identity_service.get_token(target.transport_identity, [CHAT_SCOPE])
        await self.user_db.save_user(target.model_copy(update={"last_seen_at": get_current_datetime()}))
        return access.token
