"""Role rules shared by password registration, federation and completion.

A junior must state an experience level; a company must name itself and its
industry. Skills, portfolio links and a website are optional extras.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from juniorhub.models.account import EXPERIENCE_LEVEL_VALUES, AccountRole
from juniorhub.services._shared.errors import (
    InvalidRoleError,
    InvalidRoleFieldsError,
    MissingRoleFieldsError,
)

#: Roles that may hold session tokens.
SESSION_ROLES = frozenset(
    {AccountRole.JUNIOR.value, AccountRole.COMPANY.value, AccountRole.ADMIN.value}
)

#: Roles a user may pick for themselves. Admins are created from the CLI.
ASSIGNABLE_ROLES = frozenset({AccountRole.JUNIOR.value, AccountRole.COMPANY.value})

REQUIRED_FIELDS: Mapping[str, tuple[str, ...]] = {
    AccountRole.JUNIOR.value: ("experience_level",),
    AccountRole.COMPANY.value: ("company_name", "industry"),
}

OPTIONAL_FIELDS: Mapping[str, tuple[str, ...]] = {
    AccountRole.JUNIOR.value: ("skills", "portfolio"),
    AccountRole.COMPANY.value: ("website",),
}


def ensure_assignable_role(role: str | None) -> str:
    """
    Validate a self-selected role.

    :raises InvalidRoleError: When ``role`` is missing, unknown, ``admin`` or
        ``unassigned``.
    """
    value = role.strip().lower() if isinstance(role, str) else None
    if value not in ASSIGNABLE_ROLES:
        raise InvalidRoleError(role)
    return value


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _as_list(value: Any) -> list[str]:
    # A single portfolio URL or skill arrives as a bare string from some clients
    if _blank(value):
        return []
    if isinstance(value, str):
        return [value.strip()]
    return [str(v).strip() for v in value if not _blank(v)]


def clean_role_fields(role: str, fields: Mapping[str, Any]) -> dict[str, Any]:
    """
    Check and normalize the profile fields for ``role``.

    Only the fields relevant to the role are returned; everything else in
    ``fields`` is ignored.

    :param role: An assignable role (see :func:`ensure_assignable_role`).
    :param fields: Raw profile payload.
    :returns: Mapping ready for :meth:`AccountRepository.assign_role`.
    :raises MissingRoleFieldsError: Naming every required field that is absent.
    :raises InvalidRoleFieldsError: When ``experience_level`` is not a known level.
    """
    missing = [name for name in REQUIRED_FIELDS.get(role, ()) if _blank(fields.get(name))]
    if missing:
        raise MissingRoleFieldsError(role, missing)

    if role == AccountRole.JUNIOR.value:
        level = str(fields["experience_level"]).strip().lower()
        if level not in EXPERIENCE_LEVEL_VALUES:
            raise InvalidRoleFieldsError(
                role,
                {
                    "experience_level": "Must be one of: "
                    + ", ".join(sorted(EXPERIENCE_LEVEL_VALUES))
                },
            )
        return {
            "experience_level": level,
            "skills": _as_list(fields.get("skills")),
            "portfolio": _as_list(fields.get("portfolio")),
        }

    website = fields.get("website")
    return {
        "company_name": str(fields["company_name"]).strip(),
        "industry": str(fields["industry"]).strip(),
        "website": None if _blank(website) else str(website).strip(),
    }


def completion_requirements() -> dict[str, dict[str, list[str]]]:
    """Describe, per assignable role, what a completion request must carry."""
    return {
        role: {
            "required": list(REQUIRED_FIELDS[role]),
            "optional": list(OPTIONAL_FIELDS[role]),
        }
        for role in sorted(ASSIGNABLE_ROLES)
    }
