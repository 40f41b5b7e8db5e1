"""Sign-in through external identity providers."""

from __future__ import annotations

from flask import Blueprint, request

from juniorhub.api.deps import federation_broker, json_response, timing
from juniorhub.api.v1.auth import outcome_response
from juniorhub.schemas import FederationCallbackSchema, ProviderRedirectSchema

bp = Blueprint("federation", __name__)

callback_schema = FederationCallbackSchema()
redirect_schema = ProviderRedirectSchema()


@bp.get("/<provider>/start")
@timing
def start(provider: str):
    """Return the provider consent URL and the login ``state`` to echo back."""

    redirect = federation_broker().begin(provider)
    return json_response({"data": redirect_schema.dump(redirect)})


@bp.post("/<provider>/callback")
@timing
def callback(provider: str):
    """Verify the provider credential and resolve it to a session or a ticket."""

    data = callback_schema.load(request.get_json(silent=True) or {})
    outcome = federation_broker().callback_with_credential(
        provider, data["credential"], state=data["state"]
    )
    return outcome_response(outcome)
