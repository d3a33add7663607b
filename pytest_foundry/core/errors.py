"""Exceptions raised while building and running the module container."""

from __future__ import annotations

from typing import Any


class FoundryError(Exception):
    """
    Base error for the module container and its modules.

    Parameters
    ----------
    message : str
        Human-readable description shown in the pytest report.
    code : str, optional
        Stable machine-readable identifier. Defaults to ``"foundry_error"``.
    module : str | None, optional
        Name of the module the error relates to, when known.
    details : dict[str, Any] | None, optional
        Optional structured context (e.g. missing requirements).

    Attributes
    ----------
    message : str
        Error summary.
    code : str
        Stable machine-readable identifier.
    module : str | None
        Related module name.
    details : dict[str, Any]
        Arbitrary context specific to the error instance.
    """

    code = "foundry_error"

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        module: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.code
        self.module = module
        self.details = details or {}

    def __str__(self) -> str:
        if self.module:
            return f"[{self.module}] {self.message}"
        return self.message


class ModuleConfigError(FoundryError):
    """Module configuration is missing a field or holds an invalid value."""

    code = "module_config"


class ModuleDependencyError(ModuleConfigError):
    """A module's ``depends`` entry is missing or points at the wrong kind of module."""

    code = "module_dependency"


class ModuleNotFound(FoundryError):
    """Lookup of a module name the container does not hold."""

    code = "module_not_found"

    def __init__(self, name: str) -> None:
        super().__init__(f"Module {name} is not enabled", module=name)


class RequirementError(FoundryError):
    """Packages a module needs are not importable."""

    code = "requirement_missing"

    def __init__(self, module: str, missing: dict[str, str]) -> None:
        lines = "\n".join(f"  {symbol}: {requirement}" for symbol, requirement in missing.items())
        super().__init__(
            f"Module requires packages to be installed:\n{lines}",
            module=module,
            details={"missing": dict(missing)},
        )


__all__ = [
    "FoundryError",
    "ModuleConfigError",
    "ModuleDependencyError",
    "ModuleNotFound",
    "RequirementError",
]
