"""Factory handles and the proxies they return around created entities."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

import factory
from sqlalchemy import inspect
from sqlalchemy.orm import object_session


class Proxy:
    """Handle around an entity produced by a factory."""

    __slots__ = ("_object",)

    def __init__(self, obj: Any) -> None:
        self._object = obj

    def __repr__(self) -> str:
        return f"<Proxy {self._object!r}>"

    def object(self) -> Any:
        """Return the wrapped entity."""
        return self._object

    def is_persisted(self) -> bool:
        """Whether the entity is persistent in a SQLAlchemy session."""
        state = inspect(self._object, raiseerr=False)
        return bool(state is not None and state.persistent)

    def refresh(self) -> Proxy:
        """Reload the entity's attributes from its session."""
        session = object_session(self._object)
        if session is None:
            raise RuntimeError(f"{self._object!r} is not attached to a session")
        session.refresh(self._object)
        return self


class FactoryHandle:
    """Configured use of one factory_boy factory class.

    Parameters
    ----------
    factory_cls: type[factory.Factory]
        Factory producing the entities.
    attributes: Mapping[str, Any] | None
        Attribute overrides applied to every entity this handle creates.
    persist: bool
        ``True`` uses the factory's create strategy, ``False`` the build
        strategy (nothing is written to the database).
    """

    def __init__(
        self,
        factory_cls: type[factory.Factory],
        attributes: Mapping[str, Any] | None = None,
        *,
        persist: bool = True,
    ) -> None:
        self.factory_cls = factory_cls
        self.attributes = dict(attributes or {})
        self.persist = persist

    def __repr__(self) -> str:
        mode = "persisting" if self.persist else "in-memory"
        return f"<FactoryHandle {self.factory_cls.__name__} {mode}>"

    def without_persisting(self) -> FactoryHandle:
        """Return a copy of this handle that only builds entities in memory."""
        return FactoryHandle(self.factory_cls, self.attributes, persist=False)

    def _merge(self, attributes: Mapping[str, Any] | None) -> dict[str, Any]:
        return {**self.attributes, **(attributes or {})}

    def _flush(self, objects: Sequence[Any]) -> None:
        """Flush the sessions holding ``objects`` unless the factory already does.

        factory_boy only adds created entities to the session when
        ``sqlalchemy_session_persistence`` is unset.
        """
        if getattr(self.factory_cls._meta, "sqlalchemy_session_persistence", None):
            return
        flushed = []
        for obj in objects:
            session = object_session(obj)
            if session is None or any(session is seen for seen in flushed):
                continue
            session.flush()
            flushed.append(session)

    def create(self, attributes: Mapping[str, Any] | None = None) -> Proxy:
        """Produce one entity."""
        params = self._merge(attributes)
        if self.persist:
            obj = self.factory_cls.create(**params)
            self._flush([obj])
            return Proxy(obj)
        return Proxy(self.factory_cls.build(**params))

    def create_many(self, times: int, attributes: Mapping[str, Any] | None = None) -> list[Proxy]:
        """Produce ``times`` entities, in creation order."""
        params = self._merge(attributes)
        if self.persist:
            objects = self.factory_cls.create_batch(times, **params)
            self._flush(objects)
        else:
            objects = self.factory_cls.build_batch(times, **params)
        return [Proxy(obj) for obj in objects]
