"""Pending-registration tickets backed by an :class:`EphemeralStore`."""

from __future__ import annotations

import secrets
from datetime import UTC, datetime, timedelta

from juniorhub.services._shared.dto import PendingTicket
from juniorhub.services._shared.ports.ephemeral_store import EphemeralStore

KEY_PREFIX = "ticket:"
DEFAULT_TTL = timedelta(minutes=15)


class TicketBook:
    """
    Issues, reads and consumes :class:`PendingTicket` objects.

    A ticket can be consumed once; after its TTL it simply disappears.
    """

    def __init__(self, store: EphemeralStore, *, ttl: timedelta = DEFAULT_TTL) -> None:
        self.store = store
        self.ttl = ttl

    def issue(
        self,
        *,
        email: str,
        name: str,
        provider: str | None = None,
        subject: str | None = None,
        avatar_url: str | None = None,
        account_id: int | None = None,
    ) -> PendingTicket:
        ticket = PendingTicket(
            ticket_id=secrets.token_urlsafe(32),
            email=email,
            name=name,
            provider=provider,
            subject=subject,
            avatar_url=avatar_url,
            account_id=account_id,
            expires_at=datetime.now(UTC) + self.ttl,
        )
        self.store.put(KEY_PREFIX + ticket.ticket_id, ticket.to_dict(), ttl=self.ttl)
        return ticket

    def peek(self, ticket_id: str) -> PendingTicket | None:
        data = self.store.peek(KEY_PREFIX + ticket_id)
        return PendingTicket.from_dict(data) if data is not None else None

    def consume(self, ticket_id: str) -> PendingTicket | None:
        """Take the ticket; a second call for the same id returns ``None``."""
        data = self.store.take(KEY_PREFIX + ticket_id)
        return PendingTicket.from_dict(data) if data is not None else None
