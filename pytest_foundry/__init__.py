"""Generate test data from factory_boy factories inside pytest suites.

Expose the module classes and helpers at package level so callers can
``from pytest_foundry import Foundry`` without traversing the package.
"""

from __future__ import annotations

from .core.errors import (
    FoundryError,
    ModuleConfigError,
    ModuleDependencyError,
    ModuleNotFound,
    RequirementError,
)
from .dialects import LegacyDialect, SessionFactoryDialect, detect_dialect
from .modules import FlaskModule, Foundry, ModuleContainer, SQLAlchemyModule, build_container
from .proxy import FactoryHandle, Proxy

__all__ = [
    "FactoryHandle",
    "FlaskModule",
    "Foundry",
    "FoundryError",
    "LegacyDialect",
    "ModuleConfigError",
    "ModuleContainer",
    "ModuleDependencyError",
    "ModuleNotFound",
    "Proxy",
    "RequirementError",
    "SQLAlchemyModule",
    "SessionFactoryDialect",
    "build_container",
    "detect_dialect",
]
