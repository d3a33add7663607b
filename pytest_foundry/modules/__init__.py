"""Container modules: the Flask host, the SQLAlchemy ORM and Foundry itself."""

from __future__ import annotations

from pytest_foundry.core.errors import ModuleNotFound

from .base import ORM, Framework, Module, ModuleContainer
from .foundry import Foundry
from .framework import FlaskModule
from .orm import SQLAlchemyModule

#: Modules the pytest plugin enables, in suite order
DEFAULT_MODULES: dict[str, type[Module]] = {
    "Flask": FlaskModule,
    "SQLAlchemy": SQLAlchemyModule,
    "Foundry": Foundry,
}


def build_container(settings: dict[str, dict]) -> ModuleContainer:
    """Create a container enabling the modules named in ``settings``, in order."""
    container = ModuleContainer()
    for name, config in settings.items():
        if name not in DEFAULT_MODULES:
            raise ModuleNotFound(name)
        container.create(name, DEFAULT_MODULES[name], config)
    return container


__all__ = [
    "DEFAULT_MODULES",
    "ORM",
    "FlaskModule",
    "Foundry",
    "Framework",
    "Module",
    "ModuleContainer",
    "SQLAlchemyModule",
    "build_container",
]
