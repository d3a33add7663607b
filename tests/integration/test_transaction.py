"""Tests for the transaction rollback extension."""

from __future__ import annotations

import pytest

from pytest_foundry import dialects
from pytest_foundry.transaction import transactional_session
from tests.factories.user import UserFactory
from tests.helpers.utils import count_rows
from tests.sample_app.models import User


def test_changes_are_rolled_back(db):
    original = db.session

    with transactional_session(db) as session:
        assert db.session is session
        session.add(User(email="temp@example.com", username="temp"))
        session.commit()
        assert count_rows(User) == 1

    assert db.session is original
    assert count_rows(User) == 0


def test_session_factory_entities_are_rolled_back(build_modules, db):
    if not dialects.supports_session_factory():
        pytest.skip("factory_boy without sqlalchemy_session_factory")
    container = build_modules(factories=[UserFactory], cleanup=True)
    container.before_suite()
    foundry = container.get("Foundry")

    with transactional_session(db):
        foundry.have_multiple(User, 2)
        assert count_rows(User) == 2

    assert count_rows(User) == 0


def test_legacy_entities_join_the_swapped_session(build_modules, legacy, db):
    container = build_modules(factories=[UserFactory])
    container.before_suite()
    foundry = container.get("Foundry")

    with transactional_session(db) as session:
        assert foundry.have(User).id is not None
        assert UserFactory._meta.sqlalchemy_session is session
        assert count_rows(User) == 1

    assert count_rows(User) == 0
    foundry.have(User)
    assert UserFactory._meta.sqlalchemy_session is db.session
