"""Factory Boy base for the sample application's models.

Factories declare no session: the Foundry module binds one when it boots.
"""

from __future__ import annotations

import factory


class BaseFactory(factory.alchemy.SQLAlchemyModelFactory):
    """Base class configuring Factory Boy persistence for the tests."""

    class Meta:
        abstract = True
        sqlalchemy_session_persistence = "flush"
