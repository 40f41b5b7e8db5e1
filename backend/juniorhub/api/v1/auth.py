"""Authentication endpoints using the service layer."""

from __future__ import annotations

from flask import Blueprint, Response, current_app, request

from juniorhub.api.deps import (
    current_claims,
    identity_service,
    json_response,
    registration_service,
    require_auth,
    ticket_book,
    timing,
    token_service,
)
from juniorhub.core.errors import NotFound
from juniorhub.core.extensions import limiter
from juniorhub.schemas import (
    AccountSchema,
    CompleteRegistrationSchema,
    LoginSchema,
    PendingTicketSchema,
    RefreshSchema,
    RegisterSchema,
    TokenPairSchema,
)
from juniorhub.services import AwaitingCompletion, CompletionIn, LoginIn, RegisterIn
from juniorhub.services._shared.dto import AuthOutcome

bp = Blueprint("auth", __name__, url_prefix="/auth")

register_schema = RegisterSchema()
login_schema = LoginSchema()
completion_schema = CompleteRegistrationSchema()
refresh_schema = RefreshSchema()
account_schema = AccountSchema()
token_schema = TokenPairSchema()
ticket_schema = PendingTicketSchema()


def _login_rate_limit() -> str:
    return str(current_app.config.get("AUTH_LOGIN_RATE_LIMIT", "10 per minute"))


def outcome_response(outcome: AuthOutcome) -> Response:
    """Render a sign-in outcome.

    A session answers 200 (201 for a new account); a pending registration
    answers 202 with the ticket and the per-role requirements.
    """
    if isinstance(outcome, AwaitingCompletion):
        body = {
            "status": "registration_required",
            "ticket": ticket_schema.dump(outcome.ticket),
            "requirements": outcome.requirements,
        }
        return json_response({"data": body}, status=202)
    body = {
        "status": "authenticated",
        "account": account_schema.dump(outcome.account),
        "tokens": token_schema.dump(outcome.tokens),
    }
    return json_response({"data": body}, status=201 if outcome.created else 200)


def _json_body() -> dict:
    return request.get_json(silent=True) or {}


@bp.post("/register")
@timing
def register():
    """Create a password account; without a role the caller gets a ticket."""

    data = register_schema.load(_json_body())
    outcome = identity_service().register(RegisterIn(**data))
    return outcome_response(outcome)


@bp.post("/login")
@limiter.limit(_login_rate_limit)
@timing
def login():
    """Authenticate credentials and issue a token pair."""

    data = login_schema.load(_json_body())
    outcome = identity_service().login(LoginIn(**data))
    return outcome_response(outcome)


@bp.post("/refresh")
@timing
def refresh():
    """Rotate a refresh token into a new pair of the same family."""

    data = refresh_schema.load(_json_body())
    pair = token_service().rotate(data["refresh_token"])
    return json_response({"data": token_schema.dump(pair)})


@bp.post("/logout")
@timing
def logout():
    data = refresh_schema.load(_json_body())
    revoked = token_service().revoke(data["refresh_token"])
    return json_response({"data": {"revoked": revoked}})


@bp.get("/me")
@require_auth
@timing
def me():
    """Return the authenticated account."""

    account = identity_service().get_account(current_claims().account_id)
    return json_response({"data": account_schema.dump(account)})


@bp.get("/tickets/<ticket_id>")
@timing
def show_ticket(ticket_id: str):
    """Prefill data for the completion form; does not consume the ticket."""

    ticket = ticket_book().peek(ticket_id)
    if ticket is None:
        raise NotFound("Registration ticket is invalid or expired")
    return json_response({"data": ticket_schema.dump(ticket)})


@bp.post("/complete-registration")
@timing
def complete_registration():
    """Assign a role to a pending identity and start its session."""

    data = completion_schema.load(_json_body())
    outcome = registration_service().complete(
        CompletionIn(ticket_id=data["ticket"], role=data["role"], profile=data["profile"])
    )
    return outcome_response(outcome)
