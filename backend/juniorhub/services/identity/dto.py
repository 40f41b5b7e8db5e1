"""
DTOs for IdentityService.

They keep the service layer free of ORM models and request objects.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class RegisterIn:
    """
    Input DTO for password sign-up.

    :param email: Login email (normalized by the model).
    :param password: Raw password; hashed by the model.
    :param name: Display name.
    :param role: ``junior`` or ``company``; ``None`` defers the choice to
        registration completion.
    :param profile: Role-specific fields (``experience_level``,
        ``company_name`` ...).
    """

    email: str
    password: str
    name: str
    role: str | None = None
    profile: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class LoginIn:
    email: str
    password: str
