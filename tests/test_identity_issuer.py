import asyncio

import pytest
from conftest import LONG_AGO

from messaging_toolkit.errors import IdentityServiceError
from messaging_toolkit.identity.base import CHAT_SCOPE


@pytest.mark.asyncio
async def test_identity_is_minted_once_and_stored(issuer, user_db, identity_service):
    fredrick = await user_db.get_user_by_id("fredrick")

    updated = await issuer.ensure_identity(fredrick)
    again = await issuer.ensure_identity(updated)

    assert updated.transport_identity == identity_service.created[0]
    assert again.transport_identity == updated.transport_identity
    assert len(identity_service.created) == 1
    assert (await user_db.get_user_by_id("fredrick")).transport_identity == updated.transport_identity


@pytest.mark.asyncio
async def test_stale_copy_reuses_stored_identity(issuer, user_db, identity_service):
    stale = await user_db.get_user_by_id("assumpta")
    await issuer.ensure_identity(stale)

    # the caller still holds the record it read before minting
    result = await issuer.ensure_identity(stale)

    assert len(identity_service.created) == 1
    assert result.transport_identity == identity_service.created[0]


@pytest.mark.asyncio
async def test_concurrent_first_use_mints_once(issuer, user_db, identity_service):
    rohi = await user_db.get_user_by_id("rohi")

    results = await asyncio.gather(*(issuer.ensure_identity(rohi) for _ in range(5)))

    assert len(identity_service.created) == 1
    assert {user.transport_identity for user in results} == {identity_service.created[0]}


@pytest.mark.asyncio
async def test_existing_identity_is_never_replaced(issuer, user_db, identity_service):
    guest = await user_db.get_user_by_id("guest")
    await user_db.save_user(guest.model_copy(update={"transport_identity": "8:acs:preminted"}))

    token = await issuer.issue_token(await user_db.get_user_by_id("guest"))

    assert identity_service.created == []
    assert token.startswith("token-for-8:acs:preminted")


@pytest.mark.asyncio
async def test_issue_token_uses_chat_scope_and_touches_last_seen(issuer, user_db, identity_service):
    fredrick = await user_db.get_user_by_id("fredrick")
    assert fredrick.last_seen_at == LONG_AGO

    token = await issuer.issue_token(fredrick)

    stored = await user_db.get_user_by_id("fredrick")
    assert token
    assert identity_service.token_requests == [(stored.transport_identity, [CHAT_SCOPE])]
    assert stored.last_seen_at > LONG_AGO


@pytest.mark.asyncio
async def test_token_failure_propagates(issuer, user_db, identity_service):
    identity_service.fail_tokens = True

    with pytest.raises(IdentityServiceError):
        await issuer.issue_token(await user_db.get_user_by_id("fredrick"))
