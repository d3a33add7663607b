"""Minimal Flask application the Foundry modules are exercised against."""

from __future__ import annotations

from .factory import create_app

__all__ = ["create_app"]
