"""Account and linked provider identity models."""

from __future__ import annotations

from enum import Enum
from typing import Any

from sqlalchemy import JSON, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates
from werkzeug.security import check_password_hash, generate_password_hash

from juniorhub.core.extensions import db

from .base import PKMixin, ReprMixin, TimestampMixin


class AccountRole(str, Enum):
    """Roles an account can hold.

    ``UNASSIGNED`` marks an account that exists but has not finished
    registration; such accounts never receive session tokens.
    """

    UNASSIGNED = "unassigned"
    JUNIOR = "junior"
    COMPANY = "company"
    ADMIN = "admin"


class ExperienceLevel(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


ROLE_VALUES = frozenset(r.value for r in AccountRole)
EXPERIENCE_LEVEL_VALUES = frozenset(e.value for e in ExperienceLevel)


class Account(PKMixin, ReprMixin, TimestampMixin, db.Model):
    """
    A marketplace participant: a junior developer, a company, or an admin.

    Fields
    ------
    email : str
        Login email, stored normalized (lowercase, trimmed). Unique.
    password_hash : str | None
        Hashed password. ``None`` for accounts created through a provider.
    name : str
        Display name.
    role : str
        One of :class:`AccountRole`.
    avatar_url : str | None
        Profile picture, usually supplied by an identity provider.
    experience_level, skills, portfolio : junior profile
    company_name, industry, website : company profile
    identities : list[FederatedIdentity]
        Provider subjects linked to this account.
    """

    __tablename__ = "accounts"
    __repr_fields__ = ("email", "role")

    email: Mapped[str] = mapped_column(String(254), nullable=False)
    password_hash: Mapped[str | None] = mapped_column(String(254), nullable=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default=AccountRole.UNASSIGNED.value
    )
    avatar_url: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # Junior profile
    experience_level: Mapped[str | None] = mapped_column(String(20), nullable=True)
    skills: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    portfolio: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    # Company profile
    company_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    industry: Mapped[str | None] = mapped_column(String(120), nullable=True)
    website: Mapped[str | None] = mapped_column(String(500), nullable=True)

    identities: Mapped[list[FederatedIdentity]] = relationship(
        back_populates="account",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        UniqueConstraint("email", name="uq_accounts_email"),
        Index("ix_accounts_email", "email"),
    )

    # -------------------- Password API --------------------
    @property
    def password(self) -> Any:  # pragma: no cover - explicit write-only contract
        """:raises AttributeError: Always; passwords are write-only."""
        raise AttributeError("Password is write-only.")

    @password.setter
    def password(self, raw: str) -> None:
        if not isinstance(raw, str) or not raw:
            raise ValueError("Password must be a non-empty string.")
        self.password_hash = generate_password_hash(raw)

    def verify_password(self, raw: str) -> bool:
        """
        Verify a password against the stored hash.

        :param raw: Plain text password candidate.
        :returns: ``True`` if it matches. Provider-only accounts always fail.
        :rtype: bool
        """
        if not self.password_hash:
            return False
        return bool(check_password_hash(self.password_hash, raw))

    # -------------------- Convenience --------------------
    @property
    def is_unassigned(self) -> bool:
        return self.role == AccountRole.UNASSIGNED.value

    @property
    def provider_ids(self) -> dict[str, str]:
        """Map of provider name to linked subject."""
        return {ident.provider: ident.subject for ident in self.identities}

    # -------------------- Validators --------------------
    @validates("email")
    def _normalize_email(self, key: str, value: str) -> str:
        """
        Normalize and validate email.

        :raises ValueError: If email is missing or malformed.
        """
        if not value or not isinstance(value, str):
            raise ValueError("Email is required.")
        v = value.strip().lower()
        # Minimal sanity check; full validation happens at API layer.
        if "@" not in v or "." not in v.split("@")[-1]:
            raise ValueError("Email format looks invalid.")
        return v

    @validates("name")
    def _normalize_name(self, key: str, value: str) -> str:
        v = value.strip() if isinstance(value, str) else ""
        if not v:
            raise ValueError("Name is required.")
        return v

    @validates("role")
    def _validate_role(self, key: str, value: str) -> str:
        v = value.value if isinstance(value, AccountRole) else value
        if v not in ROLE_VALUES:
            raise ValueError(f"Unknown role {value!r}.")
        return v

    @validates("experience_level")
    def _validate_experience_level(self, key: str, value: str | None) -> str | None:
        if value is None:
            return None
        v = value.value if isinstance(value, ExperienceLevel) else value
        if v not in EXPERIENCE_LEVEL_VALUES:
            raise ValueError(f"Unknown experience level {value!r}.")
        return v


class FederatedIdentity(PKMixin, ReprMixin, TimestampMixin, db.Model):
    """A provider subject (e.g. a Google ``sub``) linked to one account.

    ``(provider, subject)`` is globally unique, and an account links at most
    one subject per provider.
    """

    __tablename__ = "federated_identities"
    __repr_fields__ = ("provider", "subject")

    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False
    )
    provider: Mapped[str] = mapped_column(String(32), nullable=False)
    subject: Mapped[str] = mapped_column(String(255), nullable=False)

    account: Mapped[Account] = relationship(back_populates="identities")

    __table_args__ = (
        UniqueConstraint("provider", "subject", name="uq_federated_identities_provider_subject"),
        UniqueConstraint("account_id", "provider", name="uq_federated_identities_account_provider"),
        Index("ix_federated_identities_account_id", "account_id"),
    )
