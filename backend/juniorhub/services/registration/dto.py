from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class CompletionIn:
    """
    Input DTO for finishing a pending registration.

    :param ticket_id: Ticket returned by sign-up or a provider callback.
    :param role: ``junior`` or ``company``.
    :param profile: Role-specific fields.
    """

    ticket_id: str
    role: str | None
    profile: Mapping[str, Any] = field(default_factory=dict)
