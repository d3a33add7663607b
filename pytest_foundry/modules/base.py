"""Module base class, capability interfaces and the container wiring them.

A module owns a config mapping, optional suite hooks and optional
dependencies on other modules. The container creates modules in order,
checks their package requirements, injects dependencies named through the
``depends`` config key and fans suite hooks out to every module.
"""

from __future__ import annotations

import copy
import logging
from abc import ABC, abstractmethod
from collections.abc import Iterator, Mapping
from typing import Any, ClassVar, NoReturn

import pytest
from werkzeug.utils import import_string

from pytest_foundry.core.errors import (
    ModuleConfigError,
    ModuleDependencyError,
    ModuleNotFound,
    RequirementError,
)
from pytest_foundry.core.logger import begin_suite, end_suite

log = logging.getLogger(__name__)


class Module:
    """Base class for container modules.

    Subclasses declare ``config`` defaults and ``required_fields``; the
    container passes user config at construction.
    """

    name: ClassVar[str] = "Module"
    config: ClassVar[Mapping[str, Any]] = {}
    required_fields: ClassVar[tuple[str, ...]] = ()

    def __init__(self, container: ModuleContainer, config: Mapping[str, Any] | None = None) -> None:
        self.container = container
        self._config: dict[str, Any] = {**self.config, **(config or {})}
        self._backup_config = copy.copy(self._config)
        self._validate_config()

    # -- config -----------------------------------------------------------
    def _validate_config(self) -> None:
        missing = [field for field in self.required_fields if self._config.get(field) is None]
        if missing:
            raise ModuleConfigError(
                f"Options: {', '.join(missing)} are required. Please update the configuration.",
                module=self.name,
            )

    def get_config(self, key: str | None = None) -> Any:
        """Return the whole config mapping or a single value."""
        if key is None:
            return dict(self._config)
        return self._config.get(key)

    def reconfigure(self, config: Mapping[str, Any], settings: Mapping[str, Any] | None = None) -> None:
        """Merge ``config`` into the current config and run :meth:`on_reconfigure`."""
        self._config.update(config)
        self._validate_config()
        self.on_reconfigure(settings or {})

    def reset_config(self) -> None:
        """Restore the config captured at construction."""
        self._config = copy.copy(self._backup_config)

    # -- hooks ------------------------------------------------------------
    def before_suite(self, settings: Mapping[str, Any]) -> None:
        """Run before the suite's first test."""

    def after_suite(self) -> None:
        """Run after the suite's last test."""

    def on_reconfigure(self, settings: Mapping[str, Any]) -> None:
        """Run after :meth:`reconfigure` merged new values."""

    # -- dependencies -----------------------------------------------------
    def depends(self) -> dict[type, str]:
        """Map required interface to the message shown when it is missing."""
        return {}

    def inject(self, dependency: Module) -> None:
        """Receive the module resolved for :meth:`depends`."""

    def requires(self) -> dict[str, str]:
        """Map importable symbol to the requirement that provides it."""
        return {}

    # -- helpers ----------------------------------------------------------
    def get_module(self, name: str) -> Module:
        return self.container.get(name)

    def has_module(self, name: str) -> bool:
        return self.container.has(name)

    def debug_section(self, title: str, message: Any) -> None:
        """Emit a debug record prefixed with ``[title]``."""
        log.debug("[%s] %s", title, message, extra={"section": title})

    def fail(self, message: str) -> NoReturn:
        """Abort the current test step."""
        pytest.fail(message, pytrace=False)


class ORM(ABC):
    """Interface of modules giving access to an object-relational mapper."""

    @abstractmethod
    def get_config(self, key: str | None = None) -> Any:
        """ORM modules expose at least a ``cleanup`` config value."""


class Framework(ABC):
    """Interface of modules hosting an application kernel and its container."""

    @abstractmethod
    def get_container(self) -> Mapping[str, Any]:
        """Return the dependency-injection container of the application."""

    @property
    @abstractmethod
    def kernel(self) -> Any:
        """Return the application kernel."""


class ModuleContainer:
    """Ordered registry of modules sharing one suite lifecycle."""

    def __init__(self) -> None:
        self._modules: dict[str, Module] = {}

    def __iter__(self) -> Iterator[Module]:
        return iter(self._modules.values())

    def __len__(self) -> int:
        return len(self._modules)

    def create(self, name: str, module_cls: type[Module], config: Mapping[str, Any] | None = None) -> Module:
        """Instantiate ``module_cls`` under ``name`` and wire its dependencies.

        Raises
        ------
        RequirementError
            If a symbol from :meth:`Module.requires` cannot be imported.
        ModuleDependencyError
            If a declared dependency is not configured or not enabled, or
            does not implement the required interface.
        """
        module = module_cls(self, config)
        self._check_requirements(name, module)
        self._inject_dependencies(name, module)
        self._modules[name] = module
        log.debug("Module %s enabled", name)
        return module

    def _check_requirements(self, name: str, module: Module) -> None:
        missing = {
            symbol: requirement
            for symbol, requirement in module.requires().items()
            if import_string(symbol, silent=True) is None
        }
        if missing:
            raise RequirementError(name, missing)

    def _inject_dependencies(self, name: str, module: Module) -> None:
        for interface, message in module.depends().items():
            dependency_name = module.get_config("depends")
            if not dependency_name:
                raise ModuleDependencyError(
                    f"This module depends on {interface.__name__}\n{message}", module=name
                )
            if not self.has(dependency_name):
                raise ModuleDependencyError(
                    f"Module {dependency_name} is required but not enabled\n{message}", module=name
                )
            dependency = self.get(dependency_name)
            if not isinstance(dependency, interface):
                raise ModuleDependencyError(
                    f"Module {dependency_name} does not implement {interface.__name__}\n{message}",
                    module=name,
                )
            module.inject(dependency)

    def get(self, name: str) -> Module:
        try:
            return self._modules[name]
        except KeyError:
            raise ModuleNotFound(name) from None

    def has(self, name: str) -> bool:
        return name in self._modules

    # -- suite lifecycle --------------------------------------------------
    def before_suite(self, settings: Mapping[str, Any] | None = None) -> None:
        suite_id = begin_suite()
        log.info("Suite %s starting with %d module(s)", suite_id, len(self))
        for module in self:
            module.before_suite(settings or {})

    def after_suite(self) -> None:
        try:
            for module in reversed(list(self)):
                module.after_suite()
        finally:
            log.info("Suite finished")
            end_suite()

    def reconfigure(self, name: str, config: Mapping[str, Any], settings: Mapping[str, Any] | None = None) -> None:
        """Reconfigure one module for a re-entered suite."""
        self.get(name).reconfigure(config, settings)

    def reset_config(self, name: str) -> None:
        self.get(name).reset_config()
