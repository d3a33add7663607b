"""Drop and recreate the application's database schema."""

from __future__ import annotations

import logging
from contextlib import nullcontext

from flask import Flask, current_app, has_app_context

log = logging.getLogger(__name__)


def reset_schema(kernel: Flask) -> None:
    """Drop every table known to the app's metadata and create them again.

    Parameters
    ----------
    kernel: flask.Flask
        Application whose ``sqlalchemy`` extension owns the metadata.

    Notes
    -----
    Runs in the active application context when it belongs to ``kernel``
    so the suite's own scoped session is the one removed before dropping.
    """
    db = kernel.extensions["sqlalchemy"]
    active = has_app_context() and current_app._get_current_object() is kernel
    with nullcontext() if active else kernel.app_context():
        db.session.remove()
        db.drop_all()
        db.create_all()
    log.info("Database schema reset for %s", kernel.name)
