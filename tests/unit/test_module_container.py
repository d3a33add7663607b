"""Unit tests for the module container and module wiring."""

from __future__ import annotations

import logging

import pytest
from flask import Flask

from pytest_foundry.core.errors import (
    ModuleConfigError,
    ModuleDependencyError,
    ModuleNotFound,
    RequirementError,
)
from pytest_foundry.core.logger import current_suite_id
from pytest_foundry.modules import (
    FlaskModule,
    Foundry,
    Module,
    ModuleContainer,
    SQLAlchemyModule,
    build_container,
)
from pytest_foundry.modules.framework import load_app


class RecordingModule(Module):
    name = "Recording"
    config = {"label": "default"}
    calls: list[str] = []

    def before_suite(self, settings):
        self.calls.append(f"before:{self._config['label']}")

    def after_suite(self):
        self.calls.append(f"after:{self._config['label']}")

    def on_reconfigure(self, settings):
        self.calls.append(f"reconfigure:{self._config['label']}")


class NeedsMissingPackage(Module):
    name = "Needy"

    def requires(self):
        return {"not_a_real_package.Thing": '"not-a-real-package>=1.0"', "flask.Flask": '"Flask"'}


@pytest.fixture(autouse=True)
def _reset_recording():
    RecordingModule.calls = []
    yield


# ------------------------------ Creation ---------------------------------- #
def test_unknown_module_name_is_rejected(app):
    with pytest.raises(ModuleNotFound):
        build_container({"Doctrine2": {}})


def test_flask_module_requires_app():
    with pytest.raises(ModuleConfigError, match="app"):
        ModuleContainer().create("Flask", FlaskModule, {})


def test_flask_module_accepts_dotted_factory_path():
    module = ModuleContainer().create("Flask", FlaskModule, {"app": "tests.sample_app:create_app"})

    assert isinstance(module.kernel, Flask)
    assert module.get_container() is module.app.extensions


def test_load_app_rejects_non_flask_values():
    with pytest.raises(ModuleConfigError):
        load_app(lambda: "not an app")


def test_missing_requirements_are_listed():
    with pytest.raises(RequirementError) as excinfo:
        ModuleContainer().create("Needy", NeedsMissingPackage)

    assert excinfo.value.details["missing"] == {"not_a_real_package.Thing": '"not-a-real-package>=1.0"'}
    assert "not-a-real-package" in str(excinfo.value)


# ----------------------------- Dependencies ------------------------------- #
def test_foundry_without_depends_explains_configuration(app):
    container = ModuleContainer()
    container.create("Flask", FlaskModule, {"app": app})
    container.create("SQLAlchemy", SQLAlchemyModule, {"depends": "Flask"})

    with pytest.raises(ModuleDependencyError) as excinfo:
        container.create("Foundry", Foundry, {})

    assert "depends: SQLAlchemy" in str(excinfo.value)
    assert excinfo.value.module == "Foundry"


def test_foundry_depending_on_non_orm_module_fails(app):
    container = ModuleContainer()
    container.create("Flask", FlaskModule, {"app": app})

    with pytest.raises(ModuleDependencyError, match="does not implement ORM"):
        container.create("Foundry", Foundry, {"depends": "Flask"})


def test_dependency_must_be_enabled_first(app):
    container = ModuleContainer()
    container.create("Flask", FlaskModule, {"app": app})

    with pytest.raises(ModuleDependencyError, match="SQLAlchemy is required but not enabled"):
        container.create("Foundry", Foundry, {"depends": "SQLAlchemy"})


def test_dependencies_are_injected(build_modules):
    container = build_modules()

    foundry = container.get("Foundry")
    orm = container.get("SQLAlchemy")

    assert foundry.orm_module is orm
    assert orm.framework is container.get("Flask")


def test_cleanup_config_without_orm_explains_configuration():
    foundry = Foundry(ModuleContainer(), {"cleanup": True})

    with pytest.raises(ModuleDependencyError, match="depends: SQLAlchemy") as excinfo:
        foundry.get_cleanup_config()

    assert excinfo.value.module == "Foundry"


def test_get_unknown_module_raises():
    with pytest.raises(ModuleNotFound, match="Symfony"):
        ModuleContainer().get("Symfony")


# ------------------------------ Lifecycle --------------------------------- #
def test_suite_hooks_run_in_order_and_reverse():
    container = ModuleContainer()
    container.create("First", RecordingModule, {"label": "first"})
    container.create("Second", RecordingModule, {"label": "second"})

    container.before_suite()
    assert current_suite_id() is not None
    container.after_suite()

    assert RecordingModule.calls == ["before:first", "before:second", "after:second", "after:first"]
    assert current_suite_id() is None


def test_reconfigure_merges_and_reset_restores():
    container = ModuleContainer()
    module = container.create("Recording", RecordingModule)

    container.reconfigure("Recording", {"label": "changed"})
    assert module.get_config("label") == "changed"
    assert RecordingModule.calls == ["reconfigure:changed"]

    container.reset_config("Recording")
    assert module.get_config("label") == "default"


def test_debug_section_emits_prefixed_record(caplog):
    module = ModuleContainer().create("Recording", RecordingModule)

    with caplog.at_level(logging.DEBUG, logger="pytest_foundry.modules.base"):
        module.debug_section("Recording", "hello")

    assert "[Recording] hello" in caplog.text
    assert caplog.records[-1].section == "Recording"


def test_orm_module_creates_schema_when_asked(app, db):
    db.drop_all()
    container = ModuleContainer()
    container.create("Flask", FlaskModule, {"app": app})
    container.create("SQLAlchemy", SQLAlchemyModule, {"depends": "Flask", "create_schema": True})

    container.before_suite()

    from sqlalchemy import inspect

    assert "users" in inspect(db.engine).get_table_names()
    container.after_suite()


def test_flask_module_pushes_context_only_when_missing():
    application = Flask("standalone")
    container = ModuleContainer()
    module = container.create("Flask", FlaskModule, {"app": application})

    container.before_suite()
    assert module._ctx is not None
    container.after_suite()
    assert module._ctx is None


def test_flask_module_reuses_active_context(app):
    container = ModuleContainer()
    module = container.create("Flask", FlaskModule, {"app": app})

    container.before_suite()
    assert module._ctx is None
    container.after_suite()
