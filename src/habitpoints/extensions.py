"""Database and store wiring for the HabitPoints web app."""

from __future__ import annotations

from typing import Optional

from flask import Flask, current_app

from .callables import CallableContext
from .config import BaseConfig
from .infra.database import bootstrap_database
from .infra.repositories import SQLModelDocumentStore
from .services.awards import Clock, utc_clock

EXTENSION_KEY = "habitpoints"


def init_store(app: Flask, clock: Optional[Clock] = None) -> CallableContext:
    """Create the engine, schema and document store for ``app``."""

    config: BaseConfig = app.config["HABITPOINTS_CONFIG"]
    engine, session_factory = bootstrap_database(config)
    store = SQLModelDocumentStore(session_factory, max_attempts=config.TRANSACTION_MAX_ATTEMPTS)
    context = CallableContext(
        store=store,
        clock=clock or utc_clock,
        history_window_days=config.HISTORY_WINDOW_DAYS,
    )
    app.extensions[EXTENSION_KEY] = context
    app.extensions[f"{EXTENSION_KEY}.engine"] = engine
    return context


def get_context() -> CallableContext:
    """Return the callable context of the active app."""

    context = current_app.extensions.get(EXTENSION_KEY)
    if context is None:  # pragma: no cover - create_app always initializes it
        raise RuntimeError("Document store not initialized")
    return context


def get_engine():
    """Return the engine of the active app."""

    return current_app.extensions[f"{EXTENSION_KEY}.engine"]
