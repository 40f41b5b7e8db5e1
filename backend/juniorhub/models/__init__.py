from juniorhub.models.account import (
    Account,
    AccountRole,
    ExperienceLevel,
    FederatedIdentity,
)

__all__ = [
    "Account",
    "AccountRole",
    "ExperienceLevel",
    "FederatedIdentity",
]
