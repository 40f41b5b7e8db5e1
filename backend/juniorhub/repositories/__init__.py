"""Persistence-layer repositories."""

from __future__ import annotations

from juniorhub.repositories.account import AccountRepository, normalize_email
from juniorhub.repositories.base import BaseRepository

__all__ = [
    "AccountRepository",
    "BaseRepository",
    "normalize_email",
]
