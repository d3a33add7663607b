"""Plugin settings sourced from pytest ini values and environment variables."""

from __future__ import annotations

import os
from collections.abc import Callable, Mapping
from typing import Any, Final

from dotenv import load_dotenv

# Prefix for every environment override read by the plugin
ENV_PREFIX: Final[str] = "FOUNDRY_"


# Loads .env when present (no-op otherwise)
load_dotenv()


def env_bool(name: str, default: bool = False) -> bool:
    """Parse a boolean flag from an environment variable.

    Parameters
    ----------
    name: str
        Environment variable to inspect.
    default: bool, optional
        Value returned when the variable is unset. Defaults to ``False``.

    Returns
    -------
    bool
        ``True`` if the value resembles ``{"1", "true", "yes", "y", "on"}``
        ignoring case; otherwise ``False`` or ``default`` when missing.
    """
    val = os.getenv(name)
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "y", "on"}


def as_bool(value: Any, default: bool = False) -> bool:
    """Coerce an ini value (``bool`` or string) into a boolean."""
    if value is None or value == "" or value == []:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "y", "on"}


class IniOption:
    """Description of one ``foundry_*`` ini option.

    Attributes
    ----------
    name: str
        Key under ``[pytest]`` / ``[tool.pytest.ini_options]``.
    help: str
        Text shown by ``pytest --help``.
    type: str | None
        pytest ini type (``"bool"``, ``"linelist"`` or ``None`` for string).
    env: str | None
        Optional environment variable supplying the default.
    default: Any
        Fallback when neither ini nor environment provide a value.
    """

    def __init__(
        self,
        name: str,
        help: str,
        type: str | None = None,
        env: str | None = None,
        default: Any = None,
    ) -> None:
        self.name = name
        self.help = help
        self.type = type
        self.env = env
        self.default = default

    def resolve_default(self) -> Any:
        """Return the default, honouring the environment override if any."""
        if self.env and self.type == "bool":
            return env_bool(self.env, bool(self.default))
        if self.env:
            return os.getenv(self.env, self.default)
        return self.default


INI_OPTIONS: tuple[IniOption, ...] = (
    IniOption(
        "foundry_factories",
        "Factory classes (dotted paths) used to generate entities, in lookup order.",
        type="linelist",
        default=[],
    ),
    IniOption(
        "foundry_cleanup",
        "Wipe persisted entities after the suite.",
        type="bool",
        env=f"{ENV_PREFIX}CLEANUP",
        default=False,
    ),
    IniOption(
        "foundry_orm_cleanup",
        "Allow the ORM module to clean persisted state.",
        type="bool",
        env=f"{ENV_PREFIX}ORM_CLEANUP",
        default=True,
    ),
    IniOption(
        "foundry_create_schema",
        "Create all tables before the suite starts.",
        type="bool",
        default=False,
    ),
    IniOption(
        "foundry_app_fixture",
        "Name of the fixture returning the Flask application.",
        default="app",
    ),
    IniOption(
        "foundry_rollback",
        "Run each test inside a rolled back transaction (session-factory dialect).",
        type="bool",
        env=f"{ENV_PREFIX}ROLLBACK",
        default=True,
    ),
    IniOption(
        "foundry_log_level",
        "Configure JSON logging at this level when set.",
        env=f"{ENV_PREFIX}LOG_LEVEL",
        default="",
    ),
)

OPTIONS_BY_NAME: Mapping[str, IniOption] = {opt.name: opt for opt in INI_OPTIONS}


def read_option(getini: Callable[[str], Any], name: str) -> Any:
    """Read an ini option, falling back to the environment-aware default.

    pytest returns an empty value for options absent from the ini file, so
    empty strings and lists are treated as unset.
    """
    option = OPTIONS_BY_NAME[name]
    value = getini(name)
    if option.type == "bool":
        return as_bool(value, option.resolve_default())
    if value in (None, "", []):
        return option.resolve_default()
    return value


def module_settings(getini: Callable[[str], Any], app: Any) -> dict[str, dict[str, Any]]:
    """Build the per-module configuration consumed by the module container.

    Parameters
    ----------
    getini: Callable[[str], Any]
        Usually :meth:`pytest.Config.getini`.
    app: Any
        Flask application (or factory / dotted path) for the framework module.

    Returns
    -------
    dict[str, dict[str, Any]]
        Ordered ``{"Flask": ..., "SQLAlchemy": ..., "Foundry": ...}`` mapping.
    """
    factories = [line.strip() for line in read_option(getini, "foundry_factories") if line.strip()]
    return {
        "Flask": {"app": app},
        "SQLAlchemy": {
            "depends": "Flask",
            "cleanup": read_option(getini, "foundry_orm_cleanup"),
            "create_schema": read_option(getini, "foundry_create_schema"),
        },
        "Foundry": {
            "depends": "SQLAlchemy",
            "cleanup": read_option(getini, "foundry_cleanup"),
            "factories": factories or None,
        },
    }
