"""Generate and persist test data with factory_boy factories.

The module boots factory_boy against the application's Flask-SQLAlchemy
session before a suite and, when cleanup is enabled, wipes what the suite
persisted afterwards. It should be used together with the SQLAlchemy and
Flask modules::

    Flask:
        app: myproject.app:create_app
    SQLAlchemy:
        depends: Flask
        cleanup: true
    Foundry:
        depends: SQLAlchemy
        factories:
            - tests.factories.user.UserFactory
        cleanup: true

With factory_boy >= 3.3 cleanup relies on the transaction rollback
extension (``foundry_rollback`` in the pytest plugin); with 3.2 the schema
is reset after the suite.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

import factory
from werkzeug.utils import ImportStringError, import_string

from pytest_foundry import dialects
from pytest_foundry.core.errors import ModuleDependencyError
from pytest_foundry.proxy import Proxy

from .base import ORM, Framework, Module

log = logging.getLogger(__name__)

DEPENDENCY_MESSAGE = """\
ORM module (like SQLAlchemy) is required:
--
modules:
    Foundry:
        depends: SQLAlchemy
--
"""


def entity_name(entity: Any) -> str:
    """Dotted name identifying an entity class (strings pass through)."""
    if isinstance(entity, str):
        return entity
    return f"{entity.__module__}.{entity.__qualname__}"


class Foundry(Module):
    """Expose ``have``/``make`` helpers backed by the configured factories."""

    name = "Foundry"
    config = {"cleanup": False, "factories": None, "depends": None}

    def __init__(self, container, config: Mapping[str, Any] | None = None) -> None:
        super().__init__(container, config)
        self.dialect = dialects.detect_dialect()
        self.orm_module: ORM | None = None
        self._factory_cache: list[Any] | None = None
        log.debug("Using %s dialect", self.dialect.name, extra={"dialect": self.dialect.name})

    # -- wiring -----------------------------------------------------------
    def depends(self) -> dict[type, str]:
        return {ORM: DEPENDENCY_MESSAGE}

    def inject(self, dependency) -> None:
        self.orm_module = dependency

    def requires(self) -> dict[str, str]:
        return self.dialect.requires()

    def get_framework(self) -> Framework:
        """Return the first enabled module hosting the application."""
        for module in self.container:
            if isinstance(module, Framework):
                return module
        return self.get_module("Flask")

    def get_cleanup_config(self) -> bool:
        if self.orm_module is None:
            raise ModuleDependencyError(f"This module depends on ORM\n{DEPENDENCY_MESSAGE}", module=self.name)
        return bool(self._config["cleanup"] and self.orm_module.get_config("cleanup"))

    # -- lifecycle --------------------------------------------------------
    def before_suite(self, settings: Mapping[str, Any]) -> None:
        self.debug_section("Foundry", "Booting foundry.")
        container = self.get_framework().get_container()
        self.dialect.boot(self._load_factories(), container)

    def after_suite(self) -> None:
        if not self.get_cleanup_config():
            return
        if not self.dialect.uses_transactions:
            self.debug_section("Foundry", "Resetting database schema.")
        self.dialect.cleanup(self.get_framework().kernel)

    def reconfigure(self, config: Mapping[str, Any], settings: Mapping[str, Any] | None = None) -> None:
        self._factory_cache = None
        super().reconfigure(config, settings)

    def reset_config(self) -> None:
        self._factory_cache = None
        super().reset_config()

    def on_reconfigure(self, settings: Mapping[str, Any]) -> None:
        if self.get_cleanup_config() and not self.dialect.uses_transactions:
            self.dialect.cleanup(self.get_framework().kernel)
        self.before_suite(settings)

    # -- factory lookup ---------------------------------------------------
    def _configured_factories(self) -> list[Any]:
        if self._factory_cache is None:
            self._factory_cache = list(self._config["factories"] or [])
        return self._factory_cache

    def _load_factories(self) -> list[type[factory.Factory]]:
        """Import the configured factories, skipping entries that fail."""
        loaded = []
        for position, entry in enumerate(self._configured_factories()):
            try:
                factory_cls = import_string(entry) if isinstance(entry, str) else entry
            except ImportStringError as exc:
                log.warning("Skipping factory %r while booting: %s", entry, exc)
                continue
            if not hasattr(factory_cls, "_meta"):
                log.warning("Skipping %r while booting: not a factory class", entry)
                continue
            # Remember the class so lookups don't import it again
            self._factory_cache[position] = factory_cls
            loaded.append(factory_cls)
        return loaded

    def get_factory_class(self, entity: Any) -> type[factory.Factory] | None:
        """Return the first configured factory producing ``entity``.

        Parameters
        ----------
        entity: type | str
            Model class or its dotted path.

        Returns
        -------
        type[factory.Factory] | None
            The matching factory, ``None`` when no factory produces it.
        """
        wanted = entity_name(entity)
        for entry in self._configured_factories():
            try:
                factory_cls = import_string(entry) if isinstance(entry, str) else entry
                model = factory_cls._meta.model
            except (ImportStringError, AttributeError) as exc:
                self.fail(str(exc))
            if model is entity or (model is not None and entity_name(model) == wanted):
                return factory_cls
        return None

    def _require_factory(self, entity: Any) -> type[factory.Factory]:
        factory_cls = self.get_factory_class(entity)
        if factory_cls is None:
            self.fail(f"No factory configured for {entity_name(entity)}")
        return factory_cls

    @staticmethod
    def _unwrap(proxies: Sequence[Proxy]) -> list[Any]:
        return [proxy.object() for proxy in proxies]

    # -- public API -------------------------------------------------------
    def have(self, entity: Any, attributes: Mapping[str, Any] | None = None) -> Any:
        """Generate and save one record."""
        factory_cls = self._require_factory(entity)
        handle = self.dialect.new_factory(factory_cls, attributes)
        return handle.create().object()

    def have_multiple(self, entity: Any, times: int, attributes: Mapping[str, Any] | None = None) -> list[Any]:
        """Generate and save ``times`` records."""
        factory_cls = self._require_factory(entity)
        handle = self.dialect.new_factory(factory_cls)
        return self._unwrap(handle.create_many(times, attributes))

    def make(self, entity: Any, attributes: Mapping[str, Any] | None = None) -> Any:
        """Generate one record instance without persisting it."""
        factory_cls = self._require_factory(entity)
        handle = self.dialect.new_factory(factory_cls).without_persisting()
        return handle.create(attributes).object()

    def make_multiple(self, entity: Any, times: int, attributes: Mapping[str, Any] | None = None) -> list[Any]:
        """Generate ``times`` record instances without persisting them."""
        factory_cls = self._require_factory(entity)
        handle = self.dialect.new_factory(factory_cls).without_persisting()
        return self._unwrap(handle.create_many(times, attributes))
