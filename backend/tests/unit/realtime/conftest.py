"""Fixtures for the realtime gateway tests."""

from __future__ import annotations

from datetime import timedelta

import pytest
from juniorhub.realtime import ChannelGateway
from juniorhub.services import TokenService
from juniorhub.services._shared.ports import (
    InMemoryDenylistStore,
    InMemoryRefreshTokenStore,
)
from juniorhub.services.tokens.dto import TokenConfig


@pytest.fixture()
def gateway(stub_token_service) -> ChannelGateway:
    return ChannelGateway(stub_token_service.verify_access)


@pytest.fixture()
def token_for(stub_token_service):
    """Access token for ``account_id`` accepted by the ``gateway`` fixture."""

    def _make(account_id: int, role: str = "junior") -> str:
        return stub_token_service.issue(account_id, role).access_token

    return _make


@pytest.fixture()
def expired_token(stub_token_service):
    """Access token issued with a lifetime already in the past."""
    issuer = TokenService(
        token_provider=stub_token_service.tokens,
        refresh_store=InMemoryRefreshTokenStore(),
        denylist_store=InMemoryDenylistStore(),
        token_cfg=TokenConfig(access_expires=timedelta(seconds=-10)),
    )
    return issuer.issue(99, "junior").access_token


@pytest.fixture()
def admitted(gateway, token_for):
    """Open and admit a connection for ``account_id``."""

    async def _open(account_id: int):
        conn = gateway.open()
        await gateway.authenticate(conn, token_for(account_id))
        return conn

    return _open
