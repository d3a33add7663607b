"""pytest plugin running the module container around the test session.

Enable factories in ``pyproject.toml``::

    [tool.pytest.ini_options]
    foundry_factories = [
        "tests.factories.user.UserFactory",
    ]
    foundry_cleanup = true

and request the ``foundry`` fixture::

    def test_profile(foundry):
        user = foundry.have(User, {"username": "davert"})
"""

from __future__ import annotations

import logging
from collections.abc import Iterator

import pytest

from pytest_foundry.core.config import INI_OPTIONS, module_settings, read_option
from pytest_foundry.core.logger import configure_logging
from pytest_foundry.modules import Foundry, ModuleContainer, build_container
from pytest_foundry.transaction import transactional_session

log = logging.getLogger(__name__)


def pytest_addoption(parser: pytest.Parser) -> None:
    for option in INI_OPTIONS:
        parser.addini(option.name, option.help, type=option.type, default=option.resolve_default())


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "foundry_config(**overrides): reconfigure the Foundry module for the marked test module",
    )
    level = read_option(config.getini, "foundry_log_level")
    if level:
        configure_logging(level)


@pytest.fixture(scope="session")
def foundry_modules(request: pytest.FixtureRequest) -> Iterator[ModuleContainer]:
    """Enable the Flask, SQLAlchemy and Foundry modules for the session.

    The Flask application comes from the fixture named by
    ``foundry_app_fixture`` (``app`` by default), which must be session
    scoped.
    """
    app = request.getfixturevalue(read_option(request.config.getini, "foundry_app_fixture"))
    container = build_container(module_settings(request.config.getini, app))
    container.before_suite({})
    try:
        yield container
    finally:
        container.after_suite()


@pytest.fixture(scope="module", autouse=True)
def _foundry_module_config(request: pytest.FixtureRequest) -> Iterator[None]:
    """Apply a module's ``foundry_config`` marker for the duration of that module."""
    marker = request.node.get_closest_marker("foundry_config")
    if marker is None:
        yield
        return
    container: ModuleContainer = request.getfixturevalue("foundry_modules")
    log.debug("Reconfiguring Foundry for %s", request.node.nodeid)
    container.reconfigure("Foundry", marker.kwargs)
    try:
        yield
    finally:
        container.reset_config("Foundry")


@pytest.fixture()
def foundry(request: pytest.FixtureRequest, foundry_modules: ModuleContainer) -> Iterator[Foundry]:
    """Return the Foundry module, inside a rolled back transaction when enabled."""
    module = foundry_modules.get("Foundry")
    rollback = read_option(request.config.getini, "foundry_rollback")
    if not rollback:
        yield module
        return
    db = foundry_modules.get("SQLAlchemy").db
    with transactional_session(db):
        yield module
