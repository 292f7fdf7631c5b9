from fastapi import Request

from backoffice.db.store import EntityStore


def get_store(request: Request) -> EntityStore:
    """The store injected into the running app by ``create_app``."""
    return request.app.state.store
