"""
Known users of the deployment.

The directory is seeded with a fixed set of humans and the single assistant,
"Coach MESH". Transport identities minted ahead of time by
'mesh_dm.scripts.mint_identities' are merged in from a JSON map so users keep
the same transport identity across restarts and environments; users without
one get an identity lazily on first use.
"""

import json
from pathlib import Path

from loguru import logger

from messaging_toolkit.conversation_database.data_models.user import PresenceStatus, User, UserRole

HUMAN_USERS: list[dict[str, str]] = [
    {
        "id": "fredrick",
        "display_name": "Fredrick Maina",
        "accent_color": "#38BDF8",
        "presence": PresenceStatus.ONLINE,
        "external_id": "254743039297",
    },
    {
        "id": "assumpta",
        "display_name": "Assumpta Wanyama",
        "accent_color": "#34D399",
        "presence": PresenceStatus.ONLINE,
        "external_id": "254736815546",
    },
    {
        "id": "rohi",
        "display_name": "Rohi Ogula",
        "accent_color": "#F472B6",
        "presence": PresenceStatus.AWAY,
        "external_id": "254799031228",
    },
    {
        "id": "guest",
        "display_name": "Guest",
        "accent_color": "#A5B4FC",
        "presence": PresenceStatus.OFFLINE,
    },
]

ASSISTANT_USER: dict[str, str] = {
    "id": "coach-mesh",
    "display_name": "Coach MESH",
    "accent_color": "#E879F9",
    "presence": PresenceStatus.ONLINE,
}


def load_minted_identities(path: Path) -> dict[str, str]:
    if not path.exists():
        logger.info(f"No minted identity file at {path}; identities will be minted on demand")
        return {}
    minted = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(minted, dict):
        raise ValueError(f"{path} must contain a JSON object of user id -> transport identity")
    return {str(user_id): str(identity) for user_id, identity in minted.items() if identity}


def build_seed_users(minted: dict[str, str] | None = None) -> list[User]:
    minted = minted or {}
    users = [User(role=UserRole.HUMAN, transport_identity=minted.get(entry["id"]), **entry) for entry in HUMAN_USERS]
    users.append(User(role=UserRole.ASSISTANT, transport_identity=minted.get(ASSISTANT_USER["id"]), **ASSISTANT_USER))

    assistants = [user for user in users if user.role == UserRole.ASSISTANT]
    if len(assistants) != 1:
        raise ValueError(f"Exactly one assistant user is required, found {len(assistants)}")
    return users
