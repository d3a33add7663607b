"""ORM module giving access to the Flask-SQLAlchemy extension of the app."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from flask_sqlalchemy import SQLAlchemy

from pytest_foundry.core.errors import ModuleConfigError

from .base import ORM, Framework, Module

DEPENDENCY_MESSAGE = """\
A framework module hosting a Flask application is required:
--
modules:
    Flask:
        app: myproject.app:create_app
    SQLAlchemy:
        depends: Flask
--
"""


class SQLAlchemyModule(Module, ORM):
    """Wrap the ``sqlalchemy`` extension registered on the Flask app.

    The ``cleanup`` option tells dependent modules whether they may wipe
    persisted state; ``create_schema`` creates all tables before the suite.
    """

    name = "SQLAlchemy"
    config = {"cleanup": True, "create_schema": False, "depends": None}

    def __init__(self, container, config: Mapping[str, Any] | None = None) -> None:
        super().__init__(container, config)
        self.framework: Framework | None = None

    def depends(self) -> dict[type, str]:
        return {Framework: DEPENDENCY_MESSAGE}

    def inject(self, dependency) -> None:
        self.framework = dependency

    def requires(self) -> dict[str, str]:
        return {"flask_sqlalchemy.SQLAlchemy": '"Flask-SQLAlchemy>=3.1"'}

    @property
    def db(self) -> SQLAlchemy:
        """Return the extension instance registered by ``db.init_app(app)``."""
        try:
            return self.framework.get_container()["sqlalchemy"]
        except KeyError:
            raise ModuleConfigError(
                "Flask-SQLAlchemy is not initialised on the application", module=self.name
            ) from None

    def before_suite(self, settings: Mapping[str, Any]) -> None:
        if self._config["create_schema"]:
            self.debug_section("SQLAlchemy", "Creating database schema.")
            self.db.create_all()

    def after_suite(self) -> None:
        self.db.session.remove()
