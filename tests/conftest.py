"""Pytest fixtures wiring the Foundry modules to the sample application.

Each test gets a fresh Flask app on an in-memory SQLite database so data
and schema changes never leak between cases.
"""

from __future__ import annotations

from collections.abc import Callable, Generator
from typing import Any

import pytest
from flask import Flask

from pytest_foundry import dialects
from pytest_foundry.modules import ModuleContainer, build_container
from tests.sample_app import create_app
from tests.sample_app.extensions import db as _db


@pytest.fixture()
def app() -> Generator[Flask, None, None]:
    """Create a Flask application with its schema inside an app context.

    Yields
    ------
    flask.Flask
        Application whose tables exist for the duration of the test.
    """
    application = create_app()
    application.logger.setLevel("WARNING")
    with application.app_context():
        _db.create_all()
        yield application
        _db.session.remove()
        _db.drop_all()


@pytest.fixture()
def db(app: Flask) -> Any:
    """Return the Flask-SQLAlchemy extension bound to ``app``."""
    return _db


@pytest.fixture(params=["legacy", "session_factory"])
def dialect_name(request: pytest.FixtureRequest, monkeypatch: pytest.MonkeyPatch) -> str:
    """Force the dialect the Foundry module detects.

    The session-factory dialect is skipped when the installed factory_boy
    predates ``sqlalchemy_session_factory``.
    """
    supported = dialects.supports_session_factory()
    if request.param == "session_factory" and not supported:
        pytest.skip("factory_boy without sqlalchemy_session_factory")
    monkeypatch.setattr(dialects, "supports_session_factory", lambda: request.param == "session_factory")
    return request.param


@pytest.fixture()
def legacy(monkeypatch: pytest.MonkeyPatch) -> None:
    """Force the legacy dialect."""
    monkeypatch.setattr(dialects, "supports_session_factory", lambda: False)


@pytest.fixture()
def build_modules(app: Flask) -> Callable[..., ModuleContainer]:
    """Factory building a Flask/SQLAlchemy/Foundry container for ``app``.

    Examples
    --------
    >>> def test_something(build_modules):
    ...     container = build_modules(factories=[UserFactory], cleanup=True)
    """

    def _build(factories=None, cleanup: bool = False, orm_cleanup: bool = True) -> ModuleContainer:
        return build_container(
            {
                "Flask": {"app": app},
                "SQLAlchemy": {"depends": "Flask", "cleanup": orm_cleanup},
                "Foundry": {"depends": "SQLAlchemy", "cleanup": cleanup, "factories": factories},
            }
        )

    return _build


@pytest.fixture()
def foundry(build_modules, dialect_name):
    """Booted Foundry module knowing the user and subject factories, for each dialect."""
    from tests.factories.subject import SubjectFactory
    from tests.factories.user import UserFactory

    container = build_modules(factories=[UserFactory, SubjectFactory])
    container.before_suite()
    yield container.get("Foundry")
    container.after_suite()
