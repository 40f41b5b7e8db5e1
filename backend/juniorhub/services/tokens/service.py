"""
TokenService
============

Session token lifecycle: issue, verify, rotate, revoke.

Every token pair belongs to a *family*. Rotating a refresh token consumes
it and issues the next pair in the same family. Presenting a refresh token
that was already consumed (or was never known) is treated as theft: the
whole family is revoked, which also kills its outstanding access tokens
through the family denylist.
"""

from __future__ import annotations

import logging
from typing import Any

from juniorhub.services._shared.base import BaseService, ServiceContext
from juniorhub.services._shared.errors import (
    InvalidCredentialError,
    InvalidRoleError,
    ReuseDetectedError,
    TokenExpiredError,
)
from juniorhub.services._shared.policies.roles import SESSION_ROLES
from juniorhub.services._shared.ports.denylist_store import FamilyDenylistStore
from juniorhub.services._shared.ports.refresh_token_store import (
    RefreshTokenStore,
    RotationResult,
)
from juniorhub.services._shared.ports.token_provider import (
    ExpiredTokenError,
    InvalidTokenError,
    TokenProvider,
)
from juniorhub.services.tokens.dto import AccessClaims, TokenConfig, TokenPairOut

log = logging.getLogger(__name__)

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"
FAMILY_CLAIM = "fam"
ROLE_CLAIM = "role"


class TokenService(BaseService):
    """
    Issues and validates JWT pairs.

    :param token_provider: Adapter signing/decoding JWTs.
    :param refresh_store: Refresh-token records with atomic rotation.
    :param denylist_store: Revoked families, consulted on every verify.
    :param token_cfg: Token lifetimes.
    """

    def __init__(
        self,
        *,
        token_provider: TokenProvider,
        refresh_store: RefreshTokenStore,
        denylist_store: FamilyDenylistStore,
        token_cfg: TokenConfig | None = None,
        ctx: ServiceContext | None = None,
    ) -> None:
        super().__init__(ctx=ctx)
        self.tokens = token_provider
        self.refresh_store = refresh_store
        self.denylist = denylist_store
        self.cfg = token_cfg or TokenConfig()

    # ------------------------------------------------------------------ #
    # Issue
    # ------------------------------------------------------------------ #

    def issue(self, account_id: int, role: str) -> TokenPairOut:
        """
        Start a new token family for ``account_id``.

        :raises InvalidRoleError: When ``role`` cannot hold a session
            (``unassigned`` or unknown).
        """
        if role not in SESSION_ROLES:
            raise InvalidRoleError(role)

        family_id = self.refresh_store.new_family_id()
        rt_jti = self.refresh_store.new_jti()
        now = self.now_utc()
        # Server state first: a refresh JWT must never exist without its record.
        with self.storage_guard("issue"):
            self.refresh_store.register(
                jti=rt_jti,
                account_id=str(account_id),
                family_id=family_id,
                issued_at=now,
                expires_at=now + self.cfg.refresh_expires,
            )
        log.info(
            "tokens.issued",
            extra={"account_id": account_id, "family_id": family_id},
        )
        return self._sign_pair(account_id, role, family_id, rt_jti, fresh=True)

    # ------------------------------------------------------------------ #
    # Verify
    # ------------------------------------------------------------------ #

    def verify_access(self, access_token: str) -> AccessClaims:
        """
        Validate an access token.

        Expired, malformed, wrongly-typed and revoked tokens all fail with
        the same :class:`InvalidCredentialError`.

        :raises InvalidCredentialError: On any verification failure.
        :raises StorageUnavailableError: When the denylist cannot be read.
        """
        try:
            claims = self.tokens.decode(access_token)
        except InvalidTokenError:
            raise InvalidCredentialError("Invalid token") from None

        if claims.get("type") != ACCESS_TOKEN_TYPE:
            raise InvalidCredentialError("Invalid token")

        role = claims.get(ROLE_CLAIM)
        family_id = claims.get(FAMILY_CLAIM)
        account_id = self._coerce_account_id(claims.get("sub"))
        if role not in SESSION_ROLES or not family_id:
            raise InvalidCredentialError("Invalid token")

        with self.storage_guard("verify_access"):
            revoked = self.denylist.is_revoked(str(family_id))
        if revoked:
            raise InvalidCredentialError("Invalid token")

        return AccessClaims(account_id=account_id, role=str(role), family_id=str(family_id))

    # ------------------------------------------------------------------ #
    # Rotate
    # ------------------------------------------------------------------ #

    def rotate(self, refresh_token: str) -> TokenPairOut:
        """
        Consume ``refresh_token`` and issue the next pair of its family.

        The role in the new access token is re-read from the account.

        :raises TokenExpiredError: When the refresh token is past its lifetime.
        :raises ReuseDetectedError: When the token is unknown, already used,
            or its family is revoked. The family is revoked before raising.
        :raises InvalidCredentialError: For malformed or wrongly-typed tokens,
            or when the account can no longer hold a session.
        """
        try:
            claims = self.tokens.decode(refresh_token)
        except ExpiredTokenError:
            raise TokenExpiredError("Refresh token has expired") from None
        except InvalidTokenError:
            raise InvalidCredentialError("Invalid token") from None

        if claims.get("type") != REFRESH_TOKEN_TYPE or not claims.get(FAMILY_CLAIM):
            raise InvalidCredentialError("Invalid token")

        old_jti = str(claims.get("jti"))
        family_id = str(claims[FAMILY_CLAIM])
        account_id = self._coerce_account_id(claims.get("sub"))

        with self.storage_guard("rotate.denylist"):
            family_revoked = self.denylist.is_revoked(family_id)
        if family_revoked:
            log.warning(
                "tokens.revoked_family_refresh",
                extra={"account_id": account_id, "family_id": family_id},
            )
            raise ReuseDetectedError()

        new_jti = self.refresh_store.new_jti()
        now = self.now_utc()
        with self.storage_guard("rotate"):
            result = self.refresh_store.rotate(
                old_jti=old_jti,
                new_jti=new_jti,
                now=now,
                new_expires_at=now + self.cfg.refresh_expires,
            )

        if result == RotationResult.EXPIRED:
            raise TokenExpiredError("Refresh token has expired")

        if result != RotationResult.OK:
            self._revoke_family(family_id)
            log.warning(
                "tokens.reuse_detected result=%s",
                result.name,
                extra={"account_id": account_id, "family_id": family_id},
            )
            raise ReuseDetectedError()

        with self.storage_guard("rotate.load_account"), self.ro_uow() as uow:
            account = uow.accounts.get(account_id)
            role = account.role if account is not None else None

        if role not in SESSION_ROLES:
            self._revoke_family(family_id)
            raise InvalidCredentialError("Invalid token")

        return self._sign_pair(account_id, str(role), family_id, new_jti, fresh=False)

    # ------------------------------------------------------------------ #
    # Revoke
    # ------------------------------------------------------------------ #

    def revoke(self, refresh_token: str) -> bool:
        """
        Consume ``refresh_token`` without issuing a replacement (logout).

        Expired tokens are accepted so a client can always sign out.

        :returns: ``True`` when a live token was consumed; ``False`` when it
            had already been used or revoked.
        :raises InvalidCredentialError: For malformed or wrongly-typed tokens.
        """
        try:
            claims = self.tokens.decode(refresh_token, allow_expired=True)
        except InvalidTokenError:
            raise InvalidCredentialError("Invalid token") from None
        if claims.get("type") != REFRESH_TOKEN_TYPE:
            raise InvalidCredentialError("Invalid token")

        with self.storage_guard("revoke"):
            consumed = self.refresh_store.consume(str(claims.get("jti")))
        log.info(
            "tokens.revoked consumed=%s",
            consumed,
            extra={"family_id": claims.get(FAMILY_CLAIM)},
        )
        return consumed

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _sign_pair(
        self, account_id: int, role: str, family_id: str, rt_jti: str, *, fresh: bool
    ) -> TokenPairOut:
        access_claims: dict[str, Any] = {ROLE_CLAIM: role, FAMILY_CLAIM: family_id}
        access = self.tokens.create_access_token(
            identity=str(account_id),
            additional_claims=access_claims,
            expires_delta=self.cfg.access_expires,
            fresh=fresh,
        )
        refresh = self.tokens.create_refresh_token(
            identity=str(account_id),
            additional_claims={FAMILY_CLAIM: family_id},
            expires_delta=self.cfg.refresh_expires,
            jti=rt_jti,
        )
        return TokenPairOut(
            access_token=access,
            refresh_token=refresh,
            expires_in=int(self.cfg.access_expires.total_seconds()),
        )

    def _revoke_family(self, family_id: str) -> None:
        now = self.now_utc()
        with self.storage_guard("revoke_family"):
            # Covers any refresh token the family could still hold
            self.refresh_store.revoke_family(family_id, expires_at=now + self.cfg.refresh_expires)
            # Outstanding access tokens of the family die with it
            self.denylist.revoke_family(family_id, expires_at=now + self.cfg.access_expires)

    @staticmethod
    def _coerce_account_id(subject: Any) -> int:
        if isinstance(subject, int):
            return subject
        if isinstance(subject, str) and subject.isdigit():
            return int(subject)
        raise InvalidCredentialError("Invalid token")
