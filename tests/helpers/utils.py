"""Tiny helpers shared across test modules."""

from __future__ import annotations

from sqlalchemy import func, select

from tests.sample_app.extensions import db


def count_rows(model) -> int:
    """Return how many rows of ``model`` the current session can see."""
    return db.session.scalar(select(func.count()).select_from(model))
