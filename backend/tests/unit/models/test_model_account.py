"""Tests for the Account and FederatedIdentity models."""

from __future__ import annotations

import pytest
from juniorhub.models import Account, AccountRole, FederatedIdentity
from sqlalchemy.exc import IntegrityError
from tests.factories.account import AccountFactory


class TestAccount:
    def test_password_hashing(self, session):
        a = Account(email="Test@Example.com", name="Tester")
        a.password = "secret123"
        session.add(a)
        session.flush()
        assert a.password_hash != "secret123"
        assert a.verify_password("secret123") is True
        assert a.verify_password("wrong") is False

    def test_password_is_write_only(self):
        a = Account(email="a@example.com", name="A")
        a.password = "x"
        with pytest.raises(AttributeError):
            _ = a.password

    def test_empty_password_rejected(self):
        with pytest.raises(ValueError):
            Account(email="a@example.com", name="A").password = ""

    def test_provider_only_account_never_verifies(self):
        a = Account(email="p@example.com", name="P")
        assert a.verify_password("") is False
        assert a.verify_password("anything") is False

    def test_email_normalized_and_unique(self, session):
        a1 = AccountFactory(email="  Alice@Example.com ")
        assert a1.email == "alice@example.com"

        session.add(Account(email="alice@example.com", name="Alice 2"))
        with pytest.raises(IntegrityError):
            session.flush()

    def test_new_accounts_are_unassigned(self, session):
        a = Account(email="n@example.com", name="New")
        session.add(a)
        session.flush()
        assert a.role == AccountRole.UNASSIGNED.value
        assert a.is_unassigned
        assert a.skills == [] and a.portfolio == []

    @pytest.mark.parametrize(
        "field,value",
        [
            ("email", ""),
            ("email", "no-at-sign"),
            ("name", "   "),
            ("role", "superuser"),
            ("experience_level", "guru"),
        ],
    )
    def test_basic_validations(self, field, value):
        with pytest.raises(ValueError):
            Account(**{field: value})

    def test_role_accepts_enum(self):
        a = Account(email="e@example.com", name="E", role=AccountRole.COMPANY)
        assert a.role == "company"

    def test_provider_ids(self, session):
        a = AccountFactory()
        session.add(FederatedIdentity(account=a, provider="google", subject="g-1"))
        session.flush()
        session.refresh(a)
        assert a.provider_ids == {"google": "g-1"}


class TestFederatedIdentity:
    def test_subject_is_unique_per_provider(self, session):
        a, b = AccountFactory(), AccountFactory()
        session.add(FederatedIdentity(account=a, provider="google", subject="same"))
        session.flush()

        session.add(FederatedIdentity(account=b, provider="google", subject="same"))
        with pytest.raises(IntegrityError):
            session.flush()

    def test_one_subject_per_provider_per_account(self, session):
        a = AccountFactory()
        session.add(FederatedIdentity(account=a, provider="facebook", subject="f-1"))
        session.flush()

        session.add(FederatedIdentity(account=a, provider="facebook", subject="f-2"))
        with pytest.raises(IntegrityError):
            session.flush()

    def test_deleting_account_cascades(self, session):
        a = AccountFactory()
        session.add(FederatedIdentity(account=a, provider="google", subject="g-9"))
        session.flush()

        session.delete(a)
        session.flush()

        assert session.query(FederatedIdentity).filter_by(subject="g-9").count() == 0
