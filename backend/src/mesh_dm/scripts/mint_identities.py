"""
Mint transport identities for the seed users.

Users that already have an identity in the output file keep it; every other
seed user gets a freshly minted one. The result is written as a sorted JSON
object so it can be committed and keep transport ids stable across
environments:

    MESH_ACS_CONNECTION_STRING=... python -m mesh_dm.scripts.mint_identities
"""

import asyncio
import json
import sys

from loguru import logger

from messaging_toolkit.identity.azure import AzureIdentityService
from messaging_toolkit.identity.base import IdentityService

from mesh_dm.logging_utils import setup_logging
from mesh_dm.seed import build_seed_users, load_minted_identities
from mesh_dm.settings import get_settings


async def mint_identities(identity_service: IdentityService, existing: dict[str, str]) -> dict[str, str]:
    minted: dict[str, str] = {}
    for user in build_seed_users(existing):
        if user.transport_identity:
            minted[user.id] = user.transport_identity
            logger.info(f"Skipping {user.display_name} ({user.id}); already using {user.transport_identity}")
            continue
        minted[user.id] = await identity_service.create_identity()
        logger.info(f"Minted {user.display_name} ({user.id}) -> {minted[user.id]}")
    return dict(sorted(minted.items()))


def main() -> int:
    settings = get_settings()
    setup_logging(settings.log_level)
    if not settings.acs_connection_string:
        logger.error("MESH_ACS_CONNECTION_STRING is not configured")
        return 1

    output = settings.minted_identities_path
    minted = asyncio.run(
        mint_identities(AzureIdentityService(settings.acs_connection_string), load_minted_identities(output))
    )
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(json.dumps(minted, indent=2) + "\n", encoding="utf-8")
    logger.info(f"Saved {len(minted)} identities to {output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
