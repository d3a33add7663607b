"""Roll back everything a test wrote by running it inside one transaction.

Each test runs inside a SAVEPOINT-backed transaction on a dedicated
connection, and the extension's session replaces ``db.session`` for the
duration, so data changes never leak between cases.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import event
from sqlalchemy.orm import scoped_session, sessionmaker

log = logging.getLogger(__name__)


@contextmanager
def transactional_session(db: SQLAlchemy) -> Iterator[scoped_session]:
    """Provide a SQLAlchemy session wrapped in a nested transaction.

    Parameters
    ----------
    db: flask_sqlalchemy.SQLAlchemy
        Database extension whose ``session`` attribute is temporarily
        reassigned. Must be used inside an application context.

    Yields
    ------
    sqlalchemy.orm.scoping.scoped_session
        Scoped session bound to the shared connection; rolled back on exit.

    Notes
    -----
    Follows the SQLAlchemy 2.0 pattern for transactional tests: begin a
    top-level transaction, start a SAVEPOINT, and reinstall the SAVEPOINT
    whenever the session ends one (e.g. after ``session.commit()``).
    """
    connection = db.engine.connect()

    # 1) Top-level transaction
    top_trans = connection.begin()

    # 2) Scoped session bound to the connection
    SessionFactory = sessionmaker(bind=connection, future=True)
    scoped = scoped_session(SessionFactory)

    # 3) SAVEPOINT
    nested = connection.begin_nested()

    # 4) Re-create SAVEPOINT when the previous nested transaction ends
    @event.listens_for(scoped(), "after_transaction_end")
    def _restart_savepoint(sess, trans):  # pragma: no cover
        if trans.nested and not trans._parent.nested:
            nonlocal nested
            nested = connection.begin_nested()

    # 5) Swap db.session so app code and factories use this scoped session
    original_session = db.session
    db.session.remove()
    db.session = scoped
    log.debug("Transactional session opened")

    try:
        yield scoped
    finally:
        scoped.remove()
        db.session = original_session
        top_trans.rollback()
        connection.close()
        log.debug("Transactional session rolled back")
