"""
Abstract Unit of Work contract.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from juniorhub.repositories.account import AccountRepository


class UnitOfWork(ABC):
    """
    Transactional boundary for a use case.

    Repositories exposed as attributes share one session; the scope commits
    on success and rolls back on error.
    """

    accounts: AccountRepository

    @abstractmethod
    def __enter__(self) -> UnitOfWork: ...
    @abstractmethod
    def __exit__(self, exc_type, exc, tb) -> None: ...
    @abstractmethod
    def commit(self) -> None: ...
    @abstractmethod
    def rollback(self) -> None: ...
