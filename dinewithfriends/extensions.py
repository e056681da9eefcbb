"""Flask extensions for the application."""

from __future__ import annotations

from flask import Flask, current_app

from .core.store import InMemoryStore, Store


def init_store(app: Flask) -> Store:
    """Build the store selected by ``STORE_BACKEND`` and attach it to the app."""
    backend = app.config.get("STORE_BACKEND", "firestore").lower()
    max_attempts = int(app.config["TRANSACTION_MAX_ATTEMPTS"])

    store: Store
    if backend == "memory":
        store = InMemoryStore(max_attempts=max_attempts)
    elif backend == "firestore":
        from .core.firestore_store import FirestoreStore  # noqa: PLC0415

        store = FirestoreStore(
            timeout=float(app.config["PERSISTENCE_TIMEOUT"]),
            max_attempts=max_attempts,
        )
    else:
        raise ValueError(f"Unknown STORE_BACKEND: {backend}")

    app.extensions["store"] = store
    app.logger.info(f"Using {type(store).__name__} persistence backend.")
    return store


def get_store() -> Store:
    """Return the store attached to the current app."""
    return current_app.extensions["store"]
