"""Authentication-related Marshmallow schemas."""

from __future__ import annotations

from typing import Any

from marshmallow import EXCLUDE, Schema, fields, post_load, pre_load, validate

from juniorhub.models.account import EXPERIENCE_LEVEL_VALUES

# Role-specific fields accepted next to ``role``; the service decides which
# are required.
PROFILE_FIELDS = ("experience_level", "skills", "portfolio", "company_name", "industry", "website")


class _ProfileFieldsMixin(Schema):
    """Flat role fields, gathered into ``profile`` after loading."""

    class Meta:
        unknown = EXCLUDE

    role = fields.String(load_default=None, validate=validate.Length(max=20))
    experience_level = fields.String(
        load_default=None, validate=validate.OneOf(sorted(EXPERIENCE_LEVEL_VALUES))
    )
    skills = fields.List(fields.String(validate=validate.Length(max=100)), load_default=None)
    portfolio = fields.List(fields.String(validate=validate.Length(max=500)), load_default=None)
    company_name = fields.String(load_default=None, validate=validate.Length(max=200))
    industry = fields.String(load_default=None, validate=validate.Length(max=100))
    website = fields.String(load_default=None, validate=validate.Length(max=500))

    @pre_load
    def _normalize_level(self, data: Any, **_: Any) -> Any:
        # Levels are matched case-insensitively
        level = data.get("experience_level") if isinstance(data, dict) else None
        if isinstance(level, str):
            data = {**data, "experience_level": level.strip().lower() or None}
        return data

    @post_load
    def _collect_profile(self, data: dict[str, Any], **_: Any) -> dict[str, Any]:
        profile: dict[str, Any] = {}
        for name in PROFILE_FIELDS:
            value = data.pop(name, None)
            if value is not None:
                profile[name] = value
        data["profile"] = profile
        return data


class RegisterSchema(_ProfileFieldsMixin):
    """Input payload for password sign-up; ``role`` may be left for later."""

    email = fields.Email(required=True, validate=validate.Length(max=254))
    password = fields.String(required=True, validate=validate.Length(min=8, max=128))
    name = fields.String(required=True, validate=validate.Length(min=1, max=100))


class LoginSchema(Schema):
    """Input payload for authenticating an account."""

    email = fields.Email(required=True, validate=validate.Length(max=254))
    password = fields.String(required=True, validate=validate.Length(min=1, max=128))


class CompleteRegistrationSchema(_ProfileFieldsMixin):
    """Ticket plus the role and role fields chosen by the user."""

    ticket = fields.String(required=True, validate=validate.Length(min=1, max=128))


class RefreshSchema(Schema):
    refresh_token = fields.String(required=True, validate=validate.Length(min=1))


class FederationCallbackSchema(Schema):
    """Provider credential (Google ID token or Facebook access token) and login state."""

    class Meta:
        unknown = EXCLUDE

    credential = fields.String(required=True, validate=validate.Length(min=1))
    state = fields.String(required=True, validate=validate.Length(min=1, max=128))


# ---- responses ---- #


class AccountSchema(Schema):
    """Public representation of an account."""

    id = fields.Integer(required=True)
    email = fields.Email(required=True)
    name = fields.String(required=True)
    role = fields.String(required=True)
    avatar_url = fields.String(allow_none=True)
    providers = fields.List(fields.String())
    experience_level = fields.String(allow_none=True)
    skills = fields.List(fields.String())
    portfolio = fields.List(fields.String())
    company_name = fields.String(allow_none=True)
    industry = fields.String(allow_none=True)
    website = fields.String(allow_none=True)


class TokenPairSchema(Schema):
    access_token = fields.String(required=True)
    refresh_token = fields.String(required=True)
    expires_in = fields.Integer(required=True)
    token_type = fields.String(required=True)


class PendingTicketSchema(Schema):
    """What the client needs to render the completion form."""

    ticket = fields.String(attribute="ticket_id")
    email = fields.Email()
    name = fields.String()
    provider = fields.String(allow_none=True)
    avatar_url = fields.String(allow_none=True)
    expires_at = fields.DateTime()


class ProviderRedirectSchema(Schema):
    provider = fields.String()
    url = fields.String()
    state = fields.String()
