"""The two calling conventions of factory_boy's SQLAlchemy integration.

factory_boy 3.2 factories hold a bound session instance in
``Meta.sqlalchemy_session``. From 3.3 on they can hold a
``Meta.sqlalchemy_session_factory`` callable resolved on every create. The
detected dialect decides how factories are booted, how handles are built
and how a suite is cleaned up.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator, Mapping
from typing import Any

import factory
from factory.alchemy import SQLAlchemyOptions

from pytest_foundry import resetter
from pytest_foundry.proxy import FactoryHandle

log = logging.getLogger(__name__)

FACTORY_REQUIREMENT = '"factory_boy>=3.2"'


def supports_session_factory() -> bool:
    """Whether the installed factory_boy declares ``sqlalchemy_session_factory``."""
    # _build_default_options is the hook every factory_boy option class has
    # overridden since 2.x; 3.3 added the session factory option to it
    options = SQLAlchemyOptions()._build_default_options()
    return any(option.name == "sqlalchemy_session_factory" for option in options)


def iter_factories(factories: Iterable[type[factory.Factory]]) -> Iterator[type[factory.Factory]]:
    """Yield ``factories`` and every factory reachable through their declarations.

    ``SubFactory`` and ``RelatedFactory`` targets are followed so nested
    entities are created in the same session as their parent.
    """
    seen: set[type] = set()
    pending = list(factories)
    while pending:
        factory_cls = pending.pop(0)
        if factory_cls in seen:
            continue
        seen.add(factory_cls)
        yield factory_cls
        for declaration in factory_cls._meta.declarations.values():
            if isinstance(declaration, (factory.SubFactory, factory.RelatedFactory)):
                pending.append(declaration.get_factory())


def _is_sqlalchemy_factory(factory_cls: type) -> bool:
    return isinstance(factory_cls._meta, SQLAlchemyOptions)


class Dialect(ABC):
    """Strategy for one factory_boy calling convention."""

    name = "base"
    #: Whether suites rely on the transaction rollback extension for cleanup
    uses_transactions = False

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"

    @abstractmethod
    def boot(self, factories: Iterable[type[factory.Factory]], container: Mapping[str, Any]) -> None:
        """Bind the application session to ``factories`` and those they reach."""

    @abstractmethod
    def new_factory(self, factory_cls: type[factory.Factory], attributes: Mapping[str, Any] | None = None) -> FactoryHandle:
        """Return a persisting handle on ``factory_cls``."""

    @abstractmethod
    def cleanup(self, kernel: Any) -> None:
        """Remove what a suite persisted."""

    def requires(self) -> dict[str, str]:
        return {
            "factory.alchemy.SQLAlchemyModelFactory": FACTORY_REQUIREMENT,
            "flask_sqlalchemy.SQLAlchemy": '"Flask-SQLAlchemy>=3.1"',
        }


class LegacyDialect(Dialect):
    """factory_boy 3.2: factories hold the session instance itself."""

    name = "legacy"

    def __init__(self) -> None:
        self.db: Any = None
        self._booted: list[type[factory.Factory]] = []

    @property
    def session(self) -> Any:
        """The extension's current session, following any swap of ``db.session``."""
        if self.db is None:
            return None
        return self.db.session

    def boot(self, factories: Iterable[type[factory.Factory]], container: Mapping[str, Any]) -> None:
        self.db = container["sqlalchemy"]
        self._booted = [cls for cls in iter_factories(factories) if _is_sqlalchemy_factory(cls)]
        for factory_cls in self._booted:
            self._bind(factory_cls)
        log.debug("Bound session to %d factories", len(self._booted), extra={"dialect": self.name})

    def _bind(self, factory_cls: type[factory.Factory]) -> None:
        meta = factory_cls._meta
        meta.sqlalchemy_session = self.session
        if hasattr(meta, "sqlalchemy_session_factory"):
            meta.sqlalchemy_session_factory = None

    def new_factory(self, factory_cls: type[factory.Factory], attributes: Mapping[str, Any] | None = None) -> FactoryHandle:
        # The bound instance goes stale when the rollback extension or a
        # reconfigure swaps db.session
        if self.db is not None and _is_sqlalchemy_factory(factory_cls):
            for related in iter_factories([factory_cls]):
                if _is_sqlalchemy_factory(related):
                    self._bind(related)
        return FactoryHandle(factory_cls, attributes)

    def cleanup(self, kernel: Any) -> None:
        resetter.reset_schema(kernel)


class SessionFactoryDialect(Dialect):
    """factory_boy >= 3.3: factories resolve their session on every create."""

    name = "session_factory"
    uses_transactions = True

    def boot(self, factories: Iterable[type[factory.Factory]], container: Mapping[str, Any]) -> None:
        db = container["sqlalchemy"]

        def current_session():
            return db.session

        count = 0
        for factory_cls in iter_factories(factories):
            if not _is_sqlalchemy_factory(factory_cls):
                continue
            factory_cls._meta.sqlalchemy_session = None
            factory_cls._meta.sqlalchemy_session_factory = current_session
            count += 1
        log.debug("Bound session factory to %d factories", count, extra={"dialect": self.name})

    def new_factory(self, factory_cls: type[factory.Factory], attributes: Mapping[str, Any] | None = None) -> FactoryHandle:
        return FactoryHandle(factory_cls, attributes)

    def cleanup(self, kernel: Any) -> None:
        log.debug("Leaving cleanup to the transaction rollback", extra={"dialect": self.name})

    def requires(self) -> dict[str, str]:
        return {
            **super().requires(),
            "factory.alchemy.SQLAlchemyModelFactory": '"factory_boy>=3.3"',
            "sqlalchemy.orm.DeclarativeBase": '"SQLAlchemy>=2.0"',
        }


def detect_dialect() -> Dialect:
    """Pick the dialect matching the installed factory_boy."""
    if supports_session_factory():
        return SessionFactoryDialect()
    return LegacyDialect()
