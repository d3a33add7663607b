"""Framework module hosting the Flask application under test."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from flask import Flask, current_app, has_app_context
from flask.ctx import AppContext
from werkzeug.utils import import_string

from pytest_foundry.core.errors import ModuleConfigError

from .base import Framework, Module


def load_app(target: Any) -> Flask:
    """Resolve the ``app`` config value into a :class:`flask.Flask` instance.

    Parameters
    ----------
    target: Any
        A Flask instance, an application factory taking no arguments, or a
        dotted path (``"pkg.module:app"`` or ``"pkg.module.create_app"``)
        to either.

    Returns
    -------
    flask.Flask
        The application instance.

    Raises
    ------
    ModuleConfigError
        If the value does not lead to a Flask application.
    """
    if isinstance(target, str):
        target = import_string(target)
    if not isinstance(target, Flask) and callable(target):
        target = target()
    if not isinstance(target, Flask):
        raise ModuleConfigError(f"'app' must resolve to a Flask application, got {target!r}", module="Flask")
    return target


class FlaskModule(Module, Framework):
    """Expose the Flask app as kernel and ``app.extensions`` as container.

    Notes
    -----
    - ``push_context`` pushes an application context for the suite unless
      one for the same app is already active.
    """

    name = "Flask"
    config = {"app": None, "push_context": True}
    required_fields = ("app",)

    def __init__(self, container, config: Mapping[str, Any] | None = None) -> None:
        super().__init__(container, config)
        self.app = load_app(self._config["app"])
        self._ctx: AppContext | None = None

    @property
    def kernel(self) -> Flask:
        return self.app

    def get_container(self) -> Mapping[str, Any]:
        return self.app.extensions

    def before_suite(self, settings: Mapping[str, Any]) -> None:
        if not self._config["push_context"] or self._ctx is not None:
            return
        if has_app_context() and current_app._get_current_object() is self.app:
            return
        self._ctx = self.app.app_context()
        self._ctx.push()
        self.debug_section("Flask", f"Application context pushed for {self.app.name}")

    def after_suite(self) -> None:
        if self._ctx is None:
            return
        self._ctx.pop()
        self._ctx = None
        self.debug_section("Flask", "Application context popped")
