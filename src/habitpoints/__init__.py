"""HabitPoints application factory."""

from __future__ import annotations

from importlib import import_module
from typing import Iterable, Optional

from flask import Flask

from . import cli as _cli
from .config import BaseConfig, DevConfig, TestConfig
from .logging_config import setup_logging
from .services.awards import Clock

_CONFIG_MAP = {
    "development": DevConfig,
    "testing": TestConfig,
    "default": BaseConfig,
}


def _resolve_config(name: str | None) -> type[BaseConfig]:
    """Return the config class for the provided environment name."""

    if not name:
        return BaseConfig
    return _CONFIG_MAP.get(name.lower(), BaseConfig)


def _blueprint_paths() -> Iterable[str]:
    yield "habitpoints.blueprints.callables"


def create_app(
    config_name: str | None = None,
    *,
    config: Optional[BaseConfig] = None,
    clock: Optional[Clock] = None,
) -> Flask:
    """Create and configure the Flask application instance.

    ``config`` takes precedence over ``config_name``. ``clock`` replaces the
    UTC wall clock used by every callable.
    """

    app = Flask(__name__, instance_relative_config=True)
    config_obj = config or _resolve_config(config_name)()
    app.config.from_object(config_obj)
    app.config["HABITPOINTS_CONFIG"] = config_obj

    if not app.config.get("TESTING"):
        setup_logging(config_obj)

    _register_blueprints(app)
    # Imported lazily so model classes can be used without building an engine.
    from .extensions import init_store

    init_store(app, clock=clock)
    _cli.init_app(app)
    return app


def _register_blueprints(app: Flask) -> None:
    """Import and register all blueprints declared in `_blueprint_paths`."""

    for dotted_path in _blueprint_paths():
        module = import_module(dotted_path)
        blueprint = getattr(module, "bp")
        app.register_blueprint(blueprint)


__all__ = ["BaseConfig", "DevConfig", "TestConfig", "create_app"]
